"""
FastAPI app serving the latest hotspot snapshot and the map page that renders it.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from src.services.hotspot_ingestion import HotspotIngestor, HourlyScheduler, load_settings
from src.services.snapshot import SnapshotStore

STATIC_DIR = Path(__file__).resolve().parent / "static"
LOGGER = logging.getLogger("hotspots_api")
if not LOGGER.handlers:
    LOGGER.setLevel(logging.INFO)
    LOG_PATH = Path("logs")
    LOG_PATH.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(LOG_PATH / "api_requests.log")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    file_handler.setFormatter(formatter)
    LOGGER.addHandler(file_handler)

STORE = SnapshotStore()


class PlaceOut(BaseModel):
    name: str
    country: str = ""
    lat: float = Field(..., description="Latitude in decimal degrees")
    lon: float = Field(..., description="Longitude in decimal degrees")
    score: int


class CamSummaryOut(BaseModel):
    title: str = ""
    url: str = ""
    image: Optional[str] = None
    source: str
    player: Optional[str] = None


class CategoryEntryOut(BaseModel):
    place: PlaceOut
    cams: List[CamSummaryOut]


class CameraOut(CamSummaryOut):
    id: str
    provider: str
    verified: bool = True


class PlaceRecordOut(PlaceOut):
    category: str
    counts: Dict[str, int] = Field(default_factory=dict)
    cams: List[CameraOut]


class SnapshotOut(BaseModel):
    updatedAt: Optional[str] = None
    categories: Dict[str, List[CategoryEntryOut]] = Field(default_factory=dict)
    places: List[PlaceRecordOut] = Field(default_factory=list)


def _scheduler_disabled() -> bool:
    return os.getenv("HOTSPOTS_DISABLE_SCHEDULER", "").strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if _scheduler_disabled():
        LOGGER.info("Background ingestion disabled via HOTSPOTS_DISABLE_SCHEDULER.")
    else:
        settings = load_settings()
        scheduler = HourlyScheduler(
            HotspotIngestor.from_settings(settings, STORE),
            interval_seconds=settings.interval_seconds,
        )
        scheduler.start()
    yield
    if scheduler is not None:
        scheduler.stop()


app = FastAPI(title="Hotspot Cams API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> dict[str, Optional[str]]:
    updated_at = STORE.current().updated_at
    return {"status": "ok", "updatedAt": updated_at.isoformat() if updated_at else None}


@app.get("/api/state", response_model=SnapshotOut)
def get_state() -> SnapshotOut:
    snapshot = STORE.current()
    LOGGER.info("Serving snapshot updatedAt=%s places=%s", snapshot.updated_at, len(snapshot.places))
    return SnapshotOut(**snapshot.to_serializable())


@app.get("/", include_in_schema=False)
def index() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")
