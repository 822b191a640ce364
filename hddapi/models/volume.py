from pydantic import BaseModel, ConfigDict, Field


class VolumeRecord(BaseModel):
    """Free/used space of one mounted volume."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    drive_letter: str = Field(
        ...,
        alias="DriveLetter",
        description="Drive letter (Windows, e.g. C:) or mountpoint (POSIX, e.g. /home)",
    )
    volume_name: str = Field("", alias="VolumeName")
    free_gb: float = Field(..., alias="FreeGB", ge=0)
    used_gb: float = Field(..., alias="UsedGB", ge=0)
    usage_percent: float = Field(
        ...,
        alias="UsagePercent",
        ge=0,
        le=100,
        description="Used space in percent of the volume size",
    )
