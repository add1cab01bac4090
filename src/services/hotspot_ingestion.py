"""
Hourly hotspot ingestion: pull the latest GKG feed, rank places per category, attach nearby
live cameras and publish the result as the current snapshot. The module exposes a reusable
`HotspotIngestor`, a background `HourlyScheduler` used by the API, and a CLI for one-off runs.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from src.services.gdelt_feed import DEFAULT_FEED_URL, FeedFetchError, GkgFeedSource, iter_event_facts
from src.services.hotspots import DEFAULT_TOP_N, build_rankings
from src.services.snapshot import Snapshot, SnapshotStore, build_snapshot
from src.services.webcams import (
    DEFAULT_MAX_CAMS,
    DEFAULT_RADIUS_KM,
    CameraEnricher,
    WindyWebcamSource,
    YouTubeLiveSource,
)

LOGGER = logging.getLogger(__name__)

DOTENV_PATH = Path(__file__).resolve().parents[2] / ".env"
DEFAULT_INTERVAL_SECONDS = 3600


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%r; using %s.", name, raw, default)
        return default


@dataclass
class HotspotSettings:
    windy_key: str = ""
    youtube_key: str = ""
    radius_km: int = DEFAULT_RADIUS_KM
    top_n: int = DEFAULT_TOP_N
    max_cams: int = DEFAULT_MAX_CAMS
    feed_url: str = DEFAULT_FEED_URL
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS

    @classmethod
    def from_env(cls) -> "HotspotSettings":
        return cls(
            windy_key=os.getenv("WINDY_WEBCAMS_KEY", ""),
            youtube_key=os.getenv("YOUTUBE_API_KEY", ""),
            radius_km=_env_int("RADIUS_KM_FOR_CAMS", DEFAULT_RADIUS_KM),
            top_n=_env_int("TOP_PLACES_PER_CATEGORY", DEFAULT_TOP_N),
            max_cams=_env_int("MAX_CAMS_PER_PLACE", DEFAULT_MAX_CAMS),
            feed_url=os.getenv("GKG_FEED_URL") or DEFAULT_FEED_URL,
            interval_seconds=_env_int("INGEST_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS),
        )


def load_settings() -> HotspotSettings:
    if load_dotenv(dotenv_path=DOTENV_PATH):
        LOGGER.debug("Loaded environment variables from .env file.")
    return HotspotSettings.from_env()


class HotspotIngestor:
    """Runs ingestion passes; at most one pass executes at a time."""

    def __init__(
        self,
        feed: GkgFeedSource,
        enricher: CameraEnricher,
        store: SnapshotStore,
        top_n: int = DEFAULT_TOP_N,
    ) -> None:
        self.feed = feed
        self.enricher = enricher
        self.store = store
        self.top_n = top_n
        self._run_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: HotspotSettings, store: SnapshotStore) -> "HotspotIngestor":
        enricher = CameraEnricher(
            primary=WindyWebcamSource(
                settings.windy_key or None,
                radius_km=settings.radius_km,
                max_results=settings.max_cams,
            ),
            secondary=YouTubeLiveSource(settings.youtube_key or None),
            max_cams=settings.max_cams,
        )
        if not enricher.primary.enabled:
            LOGGER.warning("WINDY_WEBCAMS_KEY not set; primary camera lookups are disabled.")
        if not enricher.secondary.enabled:
            LOGGER.info("YOUTUBE_API_KEY not set; live-search fallback is disabled.")
        return cls(
            feed=GkgFeedSource(settings.feed_url),
            enricher=enricher,
            store=store,
            top_n=settings.top_n,
        )

    @property
    def running(self) -> bool:
        return self._run_lock.locked()

    def run(self) -> Snapshot | None:
        """Execute one pass and publish it. Returns None when skipped or failed."""
        if not self._run_lock.acquire(blocking=False):
            LOGGER.info("Ingestion already in progress; skipping this trigger.")
            return None
        try:
            return self._run_locked()
        finally:
            self._run_lock.release()

    def _run_locked(self) -> Snapshot | None:
        LOGGER.info("Starting hotspot ingestion (top_n=%s, max_cams=%s)", self.top_n, self.enricher.max_cams)
        try:
            text = self.feed.fetch_text()
        except FeedFetchError:
            LOGGER.exception("Feed fetch failed; keeping the previous snapshot.")
            return None
        self.enricher.reset_stats()
        ranked = build_rankings(iter_event_facts(text), top_n=self.top_n)
        snapshot = build_snapshot(ranked, self.enricher.find_cameras)
        self.store.publish(snapshot)
        LOGGER.info("Camera provider stats: %s", self.enricher.stats)
        return snapshot


class HourlyScheduler:
    """Background thread that runs the ingestor at start-up and then on a fixed interval."""

    def __init__(self, ingestor: HotspotIngestor, interval_seconds: int = DEFAULT_INTERVAL_SECONDS) -> None:
        self.ingestor = ingestor
        self.interval_seconds = max(1, interval_seconds)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="hotspot-ingest", daemon=True)
        self._thread.start()
        LOGGER.info("Scheduled hotspot ingestion every %ss", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.ingestor.run()
            except Exception:  # noqa: BLE001
                LOGGER.exception("Scheduled ingestion failed.")
            if self._stop.wait(self.interval_seconds):
                break


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build a hotspot + live camera snapshot from GDELT.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the snapshot JSON to this file (default: print to stdout).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO).",
    )
    parser.add_argument("--feed-url", default=None, help="Override GKG_FEED_URL.")
    parser.add_argument("--radius-km", type=int, default=None, help="Override RADIUS_KM_FOR_CAMS.")
    parser.add_argument("--top-n", type=int, default=None, help="Override TOP_PLACES_PER_CATEGORY.")
    parser.add_argument("--max-cams", type=int, default=None, help="Override MAX_CAMS_PER_PLACE.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        force=True,
    )
    settings = load_settings()
    if args.feed_url:
        settings.feed_url = args.feed_url
    if args.radius_km is not None:
        settings.radius_km = args.radius_km
    if args.top_n is not None:
        settings.top_n = args.top_n
    if args.max_cams is not None:
        settings.max_cams = args.max_cams

    ingestor = HotspotIngestor.from_settings(settings, SnapshotStore())
    snapshot = ingestor.run()
    if snapshot is None:
        return 1
    payload = json.dumps(snapshot.to_serializable(), indent=2)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(payload + "\n", encoding="utf-8")
        LOGGER.info("Wrote snapshot to %s", args.output)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
