"""
Live camera lookup for hotspot places. Cameras come from the Windy Webcams API (geo proximity)
with a YouTube live-search fallback; both sources report an explicit `ProviderResult` so a
degraded provider can be told apart from an unreachable one, and neither ever raises into the
enrichment loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import requests

LOGGER = logging.getLogger(__name__)

PRIMARY = "primary"
SECONDARY = "secondary"

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_DISABLED = "disabled"
STATUS_FAILED = "failed"

DEFAULT_RADIUS_KM = 100
DEFAULT_MAX_CAMS = 10

# Appended to the place name, one secondary search per phrase, in this order.
DEFAULT_SEARCH_PHRASES = [
    "live cam",
    "traffic cam",
    "weather cam",
    "city cam",
    "library cam",
    "airport cam",
    "public cam",
    "webcam live",
]


class PlaceLike(Protocol):
    name: str
    lat: float
    lon: float


@dataclass(frozen=True)
class Camera:
    id: str
    title: str
    url: str
    source: str
    provider: str
    image: Optional[str] = None
    player: Optional[str] = None
    verified: bool = True

    @property
    def identity_key(self) -> str:
        return self.url or self.player or self.id

    def to_serializable(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "image": self.image,
            "player": self.player,
            "url": self.url,
            "source": self.source,
            "provider": self.provider,
            "verified": self.verified,
        }

    def to_summary(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "image": self.image,
            "source": self.source,
            "player": self.player,
        }


@dataclass
class ProviderResult:
    status: str
    cameras: List[Camera] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_cameras(cls, cameras: List[Camera]) -> "ProviderResult":
        return cls(status=STATUS_OK if cameras else STATUS_EMPTY, cameras=cameras)

    @classmethod
    def disabled(cls) -> "ProviderResult":
        return cls(status=STATUS_DISABLED)

    @classmethod
    def failed(cls, exc: BaseException) -> "ProviderResult":
        return cls(status=STATUS_FAILED, error=str(exc) or exc.__class__.__name__)


def dedupe_cameras(cameras: Iterable[Camera], limit: Optional[int] = None) -> List[Camera]:
    """Keep the first camera per identity key, preserving order, optionally truncated."""
    seen: set[str] = set()
    unique: List[Camera] = []
    for camera in cameras:
        key = camera.identity_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(camera)
    if limit is not None:
        return unique[: max(0, limit)]
    return unique


def _dig(payload: Any, *path: str) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


class WindyWebcamSource:
    """Nearby public webcams from the Windy Webcams API v3."""

    name = "windy"
    endpoint = "https://api.windy.com/webcams/api/v3/webcams"

    def __init__(
        self,
        api_key: str | None,
        radius_km: int = DEFAULT_RADIUS_KM,
        max_results: int = DEFAULT_MAX_CAMS,
        timeout: int = 15,
    ) -> None:
        self.api_key = api_key
        self.radius_km = radius_km
        self.max_results = max_results
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def nearby(self, lat: float, lon: float) -> ProviderResult:
        if not self.enabled:
            LOGGER.debug("Skipping Windy lookup because WINDY_WEBCAMS_KEY is not configured.")
            return ProviderResult.disabled()
        params = {
            "nearby": f"{lat},{lon},{self.radius_km}",
            "include": "location,images,player,urls",
            "limit": 50,
        }
        headers = {"x-windy-key": self.api_key}
        try:
            response = requests.get(self.endpoint, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            LOGGER.warning("Windy request failed for %s,%s: %s", lat, lon, exc)
            return ProviderResult.failed(exc)
        except ValueError as exc:
            LOGGER.warning("Windy returned non-JSON response for %s,%s", lat, lon)
            return ProviderResult.failed(exc)
        webcams = _dig(payload, "webcams") or _dig(payload, "result", "webcams") or []
        cameras = [cam for cam in (self._project(raw) for raw in webcams) if cam is not None]
        return ProviderResult.from_cameras(cameras[: self.max_results])

    @staticmethod
    def _project(raw: Any) -> Optional[Camera]:
        if not isinstance(raw, dict):
            return None
        status = str(raw.get("status") or "").lower()
        live = _dig(raw, "player", "live")
        if isinstance(live, dict):
            live_available = bool(live.get("available"))
            embed = live.get("embed")
            link = live.get("link")
        else:
            # v3 returns the embed URL itself when a live stream exists.
            live_available = bool(live)
            embed = live if isinstance(live, str) else None
            link = None
        if status != "active" or not live_available:
            return None
        image = (
            _dig(raw, "images", "current", "preview")
            or _dig(raw, "image", "current", "preview")
        )
        url = (
            link
            or _dig(raw, "urls", "detail")
            or _dig(raw, "url", "current", "desktop")
            or ""
        )
        camera_id = raw.get("webcamId") or raw.get("id") or ""
        return Camera(
            id=str(camera_id),
            title=raw.get("title") or "",
            image=image,
            player=embed,
            url=url,
            source=PRIMARY,
            provider="windy",
        )


class YouTubeLiveSource:
    """Keyword search for live YouTube streams."""

    name = "youtube"
    endpoint = "https://www.googleapis.com/youtube/v3/search"

    def __init__(self, api_key: str | None, max_results: int = 10, timeout: int = 15) -> None:
        self.api_key = api_key
        self.max_results = max_results
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def search(self, query: str) -> ProviderResult:
        if not self.enabled:
            return ProviderResult.disabled()
        params = {
            "key": self.api_key,
            "part": "snippet",
            "q": query,
            "type": "video",
            "eventType": "live",
            "maxResults": self.max_results,
        }
        try:
            response = requests.get(self.endpoint, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            LOGGER.warning("YouTube search failed for '%s': %s", query, exc)
            return ProviderResult.failed(exc)
        except ValueError as exc:
            LOGGER.warning("YouTube returned non-JSON response for '%s'", query)
            return ProviderResult.failed(exc)
        cameras: List[Camera] = []
        for item in _dig(payload, "items") or []:
            video_id = _dig(item, "id", "videoId")
            if not video_id:
                continue
            cameras.append(
                Camera(
                    id=video_id,
                    title=_dig(item, "snippet", "title") or "",
                    image=_dig(item, "snippet", "thumbnails", "medium", "url"),
                    player=f"https://www.youtube.com/embed/{video_id}",
                    url=f"https://www.youtube.com/watch?v={video_id}",
                    source=SECONDARY,
                    provider="youtube",
                )
            )
        return ProviderResult.from_cameras(cameras)


class CameraEnricher:
    """Collect up to `max_cams` unique cameras for a place, primary source first."""

    def __init__(
        self,
        primary: WindyWebcamSource,
        secondary: YouTubeLiveSource,
        max_cams: int = DEFAULT_MAX_CAMS,
        phrases: Sequence[str] | None = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.max_cams = max_cams
        self.phrases = list(DEFAULT_SEARCH_PHRASES if phrases is None else phrases)
        self.stats: Dict[str, int] = {}
        self.reset_stats()

    def reset_stats(self) -> None:
        self.stats = {
            "primary_calls": 0,
            "primary_failures": 0,
            "secondary_calls": 0,
            "secondary_failures": 0,
        }

    @staticmethod
    def _guarded(label: str, call, *args: Any) -> ProviderResult:
        try:
            return call(*args)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("%s lookup raised %s: %s", label, exc.__class__.__name__, exc)
            return ProviderResult.failed(exc)

    def find_cameras(self, place: PlaceLike) -> List[Camera]:
        cameras: List[Camera] = []
        seen: set[str] = set()

        def absorb(candidates: Iterable[Camera]) -> None:
            for camera in candidates:
                if len(cameras) >= self.max_cams:
                    return
                key = camera.identity_key
                if key in seen:
                    continue
                seen.add(key)
                cameras.append(camera)

        result = self._guarded(self.primary.name, self.primary.nearby, place.lat, place.lon)
        if result.status != STATUS_DISABLED:
            self.stats["primary_calls"] += 1
        if result.status == STATUS_FAILED:
            self.stats["primary_failures"] += 1
        absorb(result.cameras)

        if len(cameras) < self.max_cams and self.secondary.enabled:
            for phrase in self.phrases:
                if len(cameras) >= self.max_cams:
                    break
                query = f"{place.name} {phrase}"
                found = self._guarded(self.secondary.name, self.secondary.search, query)
                self.stats["secondary_calls"] += 1
                if found.status == STATUS_FAILED:
                    self.stats["secondary_failures"] += 1
                    LOGGER.debug("Secondary search '%s' failed: %s", query, found.error)
                    continue
                absorb(found.cameras)

        LOGGER.info(
            "Found %s cameras for %s (primary %s: %s)",
            len(cameras),
            place.name,
            result.status,
            len(result.cameras),
        )
        return dedupe_cameras(cameras, limit=self.max_cams)
