"""
Parsing and fetching of the GDELT Global Knowledge Graph (GKG) hourly feed. The parser turns
tab-delimited GKG rows into `EventFact` records carrying theme tags and geographic mentions;
the source client only knows how to download the raw text.
"""

from __future__ import annotations

import io
import logging
import math
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import requests

LOGGER = logging.getLogger(__name__)

DEFAULT_FEED_URL = "http://data.gdeltproject.org/gdeltv2/lasthour-gkg.csv"

THEMES_COLUMN = 4
LOCATIONS_COLUMN = 8

# Field positions inside one '#'-delimited location token.
TOKEN_NAME = 0
TOKEN_COUNTRY = 2
TOKEN_LAT = 4
TOKEN_LON = 5


class FeedFetchError(RuntimeError):
    """Raised when the feed cannot be downloaded or decoded as a whole."""


@dataclass(frozen=True)
class GeoMention:
    name: str
    lat: float
    lon: float
    country: str = ""


@dataclass
class EventFact:
    themes: List[str] = field(default_factory=list)
    locations: List[GeoMention] = field(default_factory=list)


def _parse_coordinate(raw: str) -> Optional[float]:
    try:
        value = float(raw.strip())
    except (AttributeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_location_token(token: str) -> Optional[GeoMention]:
    """Return the mention described by one location token, or None when it is unusable."""
    parts = token.split("#")
    name = parts[TOKEN_NAME].strip() if len(parts) > TOKEN_NAME else ""
    if not name:
        return None
    lat = _parse_coordinate(parts[TOKEN_LAT]) if len(parts) > TOKEN_LAT else None
    lon = _parse_coordinate(parts[TOKEN_LON]) if len(parts) > TOKEN_LON else None
    if lat is None or lon is None:
        LOGGER.debug("Dropping location token without coordinates: %r", token)
        return None
    country = parts[TOKEN_COUNTRY].strip() if len(parts) > TOKEN_COUNTRY else ""
    return GeoMention(name=name, lat=lat, lon=lon, country=country)


def parse_row(line: str) -> EventFact:
    cols = line.split("\t")
    raw_themes = cols[THEMES_COLUMN] if len(cols) > THEMES_COLUMN else ""
    raw_locations = cols[LOCATIONS_COLUMN] if len(cols) > LOCATIONS_COLUMN else ""
    themes = [tag.strip() for tag in raw_themes.split(";") if tag.strip()]
    locations: List[GeoMention] = []
    for token in raw_locations.split(";"):
        if not token:
            continue
        mention = parse_location_token(token)
        if mention is not None:
            locations.append(mention)
    return EventFact(themes=themes, locations=locations)


def iter_event_facts(text: str) -> Iterator[EventFact]:
    """Lazily yield one `EventFact` per feed row. Never raises on malformed input."""
    if not text:
        return
    # Records are separated by "\n" only; tabs at either end are empty columns.
    for line in text.rstrip("\r\n").split("\n"):
        yield parse_row(line.rstrip("\r"))


def _unzip_first_member(payload: bytes) -> str:
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            names = archive.namelist()
            if not names:
                raise FeedFetchError("GKG archive is empty")
            return archive.read(names[0]).decode("utf-8", errors="replace")
    except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
        raise FeedFetchError(f"GKG archive is corrupt: {exc}") from exc


class GkgFeedSource:
    """Download the latest hour of GKG records as raw text."""

    def __init__(self, url: str = DEFAULT_FEED_URL, timeout: int = 20) -> None:
        self.url = url
        self.timeout = timeout

    def fetch_text(self) -> str:
        LOGGER.info("Downloading GKG feed from %s", self.url)
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FeedFetchError(f"GKG feed request failed: {exc}") from exc
        payload = response.content
        if self.url.lower().endswith(".zip") or payload[:2] == b"PK":
            text = _unzip_first_member(payload)
        else:
            text = payload.decode("utf-8", errors="replace")
        LOGGER.info("Fetched GKG feed (%s bytes)", len(payload))
        return text
