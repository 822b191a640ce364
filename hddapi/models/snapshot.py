from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from hddapi.models.drive import DriveEntry
from hddapi.models.volume import VolumeRecord


class DriveSnapshot(BaseModel):
    """Result of one complete poll cycle; replaced wholesale, never edited."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int = Field(
        0,
        alias="Version",
        ge=0,
        description="Incremented on every publish; 0 until the first cycle completed.",
    )
    generated_at: Optional[datetime] = Field(None, alias="GeneratedAt")
    scan_failed: bool = Field(
        False,
        alias="ScanFailed",
        description="True if device enumeration failed, as opposed to finding no drives.",
    )
    drives: Tuple[DriveEntry, ...] = Field(
        (),
        alias="Drives",
        description="Drive records and per-device errors, sorted by Device.",
    )
    volumes: Tuple[VolumeRecord, ...] = Field((), alias="Volumes")


class VolumeList(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    volumes: Tuple[VolumeRecord, ...] = Field((), alias="Volumes")


class ServiceHealth(BaseModel):
    """Liveness information about the API and its background poller."""

    status: str = Field("ok", description="Always 'ok' while the process serves requests.")
    poller_state: str = Field(..., description="'idle' or 'polling'")
    snapshot_version: int = Field(..., ge=0)
    last_error: Optional[str] = Field(
        None,
        description="Reason the most recent poll cycle failed as a whole, if it did.",
    )
