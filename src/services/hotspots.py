"""
Aggregation of classified event facts into place buckets and per-category ranking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from src.services.categories import classify_themes
from src.services.gdelt_feed import EventFact, GeoMention

LOGGER = logging.getLogger(__name__)

DEFAULT_TOP_N = 8


def place_key(lat: float, lon: float, name: str) -> str:
    """Bucket identity: coordinates rounded to 3 decimals (~110 m) plus the place name.

    Mentions that round to the same key merge even if their raw coordinates differ; the
    same name at coordinates rounding apart stays in separate buckets.
    """
    return f"{lat:.3f},{lon:.3f}:{name}"


@dataclass
class PlaceBucket:
    name: str
    lat: float
    lon: float
    country: str = ""
    counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_mention(cls, mention: GeoMention) -> "PlaceBucket":
        return cls(name=mention.name, lat=mention.lat, lon=mention.lon, country=mention.country or "")


@dataclass(frozen=True)
class RankedPlace:
    name: str
    lat: float
    lon: float
    country: str
    category: str
    score: int
    counts: Tuple[Tuple[str, int], ...] = ()

    @property
    def key(self) -> str:
        return place_key(self.lat, self.lon, self.name)

    def to_serializable(self) -> dict:
        return {
            "name": self.name,
            "country": self.country,
            "lat": self.lat,
            "lon": self.lon,
            "score": self.score,
        }


def aggregate_places(classified: Iterable[Tuple[str, EventFact]]) -> Dict[str, PlaceBucket]:
    """Fold classified facts into buckets keyed by `place_key`, counting one hit per mention."""
    buckets: Dict[str, PlaceBucket] = {}
    for category, fact in classified:
        for mention in fact.locations:
            key = place_key(mention.lat, mention.lon, mention.name)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = PlaceBucket.from_mention(mention)
                buckets[key] = bucket
            bucket.counts[category] = bucket.counts.get(category, 0) + 1
    return buckets


def rank_places(
    buckets: Dict[str, PlaceBucket],
    top_n: int = DEFAULT_TOP_N,
) -> Dict[str, List[RankedPlace]]:
    """Group buckets by category, highest count first, keeping the top `top_n` of each.

    Equal scores keep the buckets' first-seen order.
    """
    grouped: Dict[str, List[RankedPlace]] = {}
    for bucket in buckets.values():
        counts = tuple(bucket.counts.items())
        for category, count in bucket.counts.items():
            grouped.setdefault(category, []).append(
                RankedPlace(
                    name=bucket.name,
                    lat=bucket.lat,
                    lon=bucket.lon,
                    country=bucket.country,
                    category=category,
                    score=count,
                    counts=counts,
                )
            )
    limit = max(0, top_n)
    ranked: Dict[str, List[RankedPlace]] = {}
    for category, places in grouped.items():
        ranked[category] = sorted(places, key=lambda place: place.score, reverse=True)[:limit]
    return ranked


def build_rankings(
    facts: Iterable[EventFact],
    top_n: int = DEFAULT_TOP_N,
    stats: Optional[Dict[str, int]] = None,
) -> Dict[str, List[RankedPlace]]:
    """Classify, aggregate and rank one pass worth of facts."""
    parsed = 0
    classified: List[Tuple[str, EventFact]] = []
    for fact in facts:
        parsed += 1
        category = classify_themes(fact.themes)
        if category is not None:
            classified.append((category, fact))
    buckets = aggregate_places(classified)
    ranked = rank_places(buckets, top_n=top_n)
    LOGGER.info(
        "Parsed %s facts, classified %s, aggregated %s places across %s categories",
        parsed,
        len(classified),
        len(buckets),
        len(ranked),
    )
    if stats is not None:
        stats.update(facts=parsed, classified=len(classified), places=len(buckets))
    return ranked
