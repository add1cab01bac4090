#!/usr/bin/env python3
"""
Entry point for a one-off hotspot ingestion pass.

Usage:
    python3 scripts/ingest_hotspots.py --output datasets/hotspots/snapshot.json
"""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.services.hotspot_ingestion import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
