import asyncio
import math
from typing import AsyncIterator, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import StreamingResponse

from hddapi.config import get_settings
from hddapi.models.snapshot import DriveSnapshot, VolumeList
from hddapi.services import drive_monitor
from hddapi.services.smartctl import SmartctlUnavailableError

router = APIRouter()


def parse_interval(raw: Optional[str], default: float) -> float:
    """Seconds between two stream events; absent, invalid or non-positive -> default."""
    if raw is None:
        return default
    try:
        seconds = float(raw)
    except ValueError:
        return default
    if not math.isfinite(seconds) or seconds <= 0:
        return default
    return seconds


def format_event(snapshot: DriveSnapshot) -> str:
    payload = snapshot.model_dump_json(by_alias=True, include={"drives"})
    return f"data: {payload}\n\n"


async def drive_events(request: Request, interval_seconds: float) -> AsyncIterator[str]:
    """
    Yield the current drive list immediately, then every `interval_seconds`.

    Only reads the published snapshot; a disconnecting client ends this
    generator without touching the poller or other subscribers.
    """
    while not await request.is_disconnected():
        yield format_event(drive_monitor.get_poller().current())
        await asyncio.sleep(interval_seconds)


@router.get(
    "",
    response_model=DriveSnapshot,
    summary="Drive snapshot",
)
async def drives_snapshot() -> DriveSnapshot:
    """
    Return the most recently published snapshot: all drives (sorted by
    Device, failed reads as {Device, error, message}) plus volumes.

    If no cycle has completed yet because smartctl cannot be run at all,
    a HTTP 503 Service Unavailable is returned with the reason in detail.
    """
    poller = drive_monitor.get_poller()
    snapshot = poller.current()
    if snapshot.version == 0 and poller.last_error:
        raise HTTPException(status_code=503, detail=poller.last_error)
    return snapshot


@router.get(
    "/volumes",
    response_model=VolumeList,
    summary="Volume usage",
)
async def drives_volumes() -> VolumeList:
    """Return free/used space per mounted volume from the current snapshot."""
    return VolumeList(volumes=drive_monitor.get_poller().current().volumes)


@router.get("/stream", summary="Drive update stream")
async def drives_stream(
    request: Request,
    interval: Optional[str] = Query(
        None,
        description="Seconds between two events; invalid values fall back to the default",
    ),
) -> StreamingResponse:
    """Server-Sent Events stream re-sending the drive list at a fixed cadence."""
    seconds = parse_interval(interval, get_settings().stream_interval_seconds)
    return StreamingResponse(
        drive_events(request, seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-store", "Connection": "keep-alive"},
    )


@router.post(
    "/refresh",
    response_model=DriveSnapshot,
    summary="Trigger a poll cycle",
    responses={202: {"description": "A cycle was already running; one follow-up cycle is queued."}},
)
def drives_refresh(response: Response) -> DriveSnapshot:
    """
    Poll all drives now and return the resulting snapshot.

    Runs in FastAPI's threadpool since it blocks on smartctl. If a cycle is
    already in flight, the request is coalesced into a single follow-up
    cycle and the current snapshot is returned with HTTP 202.
    """
    poller = drive_monitor.get_poller()
    try:
        ran = poller.refresh()
    except SmartctlUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    if not ran:
        response.status_code = 202
    return poller.current()
