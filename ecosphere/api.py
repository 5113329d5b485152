"""HTTP API for sample ingestion and heatmap/Green Index reads."""

import hmac
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from ecosphere.config import settings
from ecosphere.domain import CycleResult, ScoredPoint
from ecosphere.errors import InvalidSample
from ecosphere.runtime import Runtime
from ecosphere.scoring_engine import green_index, heatmap_color
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate X-API-Key against the configured key; open when none is set."""
    if not settings.api_key:
        return
    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")
    if not hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        logger.debug("Invalid API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def get_runtime(request: Request) -> Runtime:
    """Return the runtime attached to the app by its lifespan."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up")
    return runtime


router = APIRouter(dependencies=[Depends(require_api_key)])


class SampleRequest(BaseModel):
    """One raw location fix from the device."""
    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None


class SampleResponse(BaseModel):
    batch_size: int


class NoiseRequest(BaseModel):
    """Average power reading from the microphone, in dBFS."""
    decibels: float


class NoiseResponse(BaseModel):
    intensity: float


class HeatmapPoint(BaseModel):
    """Serialized scored point with its render colour."""
    latitude: float
    longitude: float
    score: float
    green_index: float
    color: tuple[float, float, float, float]
    breakdown: dict[str, float]
    created_at: datetime


class HeatmapResponse(BaseModel):
    count: int
    points: list[HeatmapPoint]


class LatestResponse(BaseModel):
    """Latest published point plus its details-panel strings."""
    point: HeatmapPoint
    details: dict[str, str]
    sample_count: int


class CycleResponse(BaseModel):
    outcome: str
    sample_count: int
    point: HeatmapPoint | None = None


def _serialize_point(point: ScoredPoint) -> HeatmapPoint:
    return HeatmapPoint(
        latitude=point.latitude,
        longitude=point.longitude,
        score=point.score,
        green_index=green_index(point),
        color=heatmap_color(point.score),
        breakdown=point.breakdown.to_dict(),
        created_at=point.created_at,
    )


def _serialize_cycle(result: CycleResult) -> CycleResponse:
    return CycleResponse(
        outcome=result.outcome.value,
        sample_count=result.sample_count,
        point=_serialize_point(result.point) if result.point else None,
    )


@router.post("/samples", status_code=status.HTTP_202_ACCEPTED, response_model=SampleResponse)
def record_sample(req: SampleRequest, runtime: Runtime = Depends(get_runtime)):
    """Add a location sample to the current batch."""
    try:
        size = runtime.store.record_coordinates(req.latitude, req.longitude, req.timestamp)
    except InvalidSample as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return SampleResponse(batch_size=size)


@router.post("/noise", status_code=status.HTTP_202_ACCEPTED, response_model=NoiseResponse)
def record_noise(req: NoiseRequest, runtime: Runtime = Depends(get_runtime)):
    """Update the current ambient noise level."""
    try:
        intensity = runtime.noise.update_decibels(req.decibels)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return NoiseResponse(intensity=intensity)


@router.get("/heatmap", response_model=HeatmapResponse)
def get_heatmap(runtime: Runtime = Depends(get_runtime)):
    """Return every scored point of the session."""
    points = [_serialize_point(p) for p in runtime.heatmap.snapshot()]
    return HeatmapResponse(count=len(points), points=points)


@router.delete("/heatmap", status_code=status.HTTP_204_NO_CONTENT)
def reset_heatmap(runtime: Runtime = Depends(get_runtime)):
    """Clear the session's heatmap and noise level."""
    runtime.reset_session()


@router.get("/latest", response_model=LatestResponse)
def get_latest(runtime: Runtime = Depends(get_runtime)):
    """Return the latest Green Index with per-factor details."""
    latest = runtime.scheduler.latest
    if latest is None or latest.point is None or latest.record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No cycle has been published yet.")
    return LatestResponse(
        point=_serialize_point(latest.point),
        details=latest.record.to_display_strings(latest.hour or 0),
        sample_count=latest.sample_count,
    )


@router.post("/cycle", response_model=CycleResponse)
def run_cycle_now(runtime: Runtime = Depends(get_runtime)):
    """Run one cycle immediately instead of waiting for the next tick."""
    result = runtime.scheduler.run_cycle()
    logger.info("Manual cycle finished", extra={"outcome": result.outcome.value})
    return _serialize_cycle(result)
