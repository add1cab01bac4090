"""
Immutable hotspot snapshots and the process-wide store readers pull them from.

A snapshot is built completely in isolation and then swapped into the store in a single
assignment, so readers only ever see a finished pass.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from src.services.hotspots import RankedPlace
from src.services.webcams import Camera

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaceEntry:
    place: RankedPlace
    cams: Tuple[Camera, ...]

    def to_category_item(self) -> dict[str, Any]:
        return {
            "place": self.place.to_serializable(),
            "cams": [cam.to_summary() for cam in self.cams],
        }

    def to_place_record(self) -> dict[str, Any]:
        return {
            "category": self.place.category,
            "name": self.place.name,
            "country": self.place.country,
            "lat": self.place.lat,
            "lon": self.place.lon,
            "score": self.place.score,
            "counts": dict(self.place.counts),
            "cams": [cam.to_serializable() for cam in self.cams],
        }


@dataclass(frozen=True)
class Snapshot:
    updated_at: Optional[datetime] = None
    categories: Tuple[Tuple[str, Tuple[PlaceEntry, ...]], ...] = ()

    @property
    def places(self) -> List[PlaceEntry]:
        return [entry for _, entries in self.categories for entry in entries]

    def to_serializable(self) -> dict[str, Any]:
        return {
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "categories": {
                category: [entry.to_category_item() for entry in entries]
                for category, entries in self.categories
            },
            "places": [entry.to_place_record() for entry in self.places],
        }


EMPTY_SNAPSHOT = Snapshot()


class SnapshotStore:
    """Holds the latest published snapshot. One writer, any number of lock-free readers."""

    def __init__(self, initial: Snapshot = EMPTY_SNAPSHOT) -> None:
        self._current = initial
        self._write_lock = threading.Lock()

    def current(self) -> Snapshot:
        return self._current

    def publish(self, snapshot: Snapshot) -> None:
        with self._write_lock:
            self._current = snapshot
        LOGGER.info(
            "Published snapshot %s with %s places",
            snapshot.updated_at.isoformat() if snapshot.updated_at else None,
            len(snapshot.places),
        )


def build_snapshot(
    ranked: Mapping[str, Sequence[RankedPlace]],
    find_cameras: Callable[[RankedPlace], Sequence[Camera]],
    now: Optional[datetime] = None,
) -> Snapshot:
    """Enrich every ranked place with cameras and freeze the result.

    Places without cameras are left out, as are places whose lookup raised. Cameras are
    looked up once per place even when it ranks in several categories.
    """
    cache: Dict[str, Tuple[Camera, ...]] = {}
    categories: List[Tuple[str, Tuple[PlaceEntry, ...]]] = []
    for category, places in ranked.items():
        entries: List[PlaceEntry] = []
        for place in places:
            cams = cache.get(place.key)
            if cams is None:
                try:
                    cams = tuple(find_cameras(place))
                except Exception:  # noqa: BLE001
                    LOGGER.exception("Camera lookup failed for %s; skipping place.", place.name)
                    continue
                cache[place.key] = cams
            if not cams:
                LOGGER.debug("No cameras near %s (%s); excluding.", place.name, category)
                continue
            entries.append(PlaceEntry(place=place, cams=cams))
        LOGGER.info("Category %s: %s of %s places have cameras", category, len(entries), len(places))
        categories.append((category, tuple(entries)))
    return Snapshot(
        updated_at=now or datetime.now(timezone.utc),
        categories=tuple(categories),
    )
