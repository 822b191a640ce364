from fastapi import APIRouter

from hddapi.models.snapshot import ServiceHealth
from hddapi.services import drive_monitor

router = APIRouter()


@router.get("", response_model=ServiceHealth, summary="Service health")
async def service_health() -> ServiceHealth:
    """Report whether the poller is busy and which snapshot is being served."""
    poller = drive_monitor.get_poller()
    return ServiceHealth(
        poller_state=poller.state.value,
        snapshot_version=poller.current().version,
        last_error=poller.last_error,
    )
