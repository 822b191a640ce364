from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DriveType(str, Enum):
    """Device family; selects the conversion branch of the normalizer."""

    NVME = "nvme"
    ATA = "ata"
    SCSI = "scsi"
    UNKNOWN = "unknown"


class DriveRecord(BaseModel):
    """Canonical health/performance record for a single storage device."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    device: str = Field(
        ...,
        alias="Device",
        min_length=1,
        description="Device identifier as reported by smartctl --scan, e.g. /dev/sda",
    )
    device_type: DriveType = Field(..., alias="Type")
    model: str = Field("", alias="Model")
    serial: str = Field("", alias="Serial")
    health_percent: Optional[int] = Field(
        None,
        alias="HealthPercent",
        ge=0,
        le=100,
        description="Remaining life in percent; null when the drive offers no usable signal.",
    )
    written_gb: float = Field(
        0.0,
        alias="WrittenGB",
        ge=0,
        description="Total host writes in GiB, rounded to two decimals.",
    )
    power_cycles: int = Field(0, alias="PowerCycles", ge=0)
    power_on_hours: int = Field(0, alias="PowerOnHours", ge=0)
    unsafe_shutdowns: int = Field(0, alias="UnsafeShutdowns", ge=0)

    # NVMe health log; zero for every other family
    data_units_read: int = Field(0, alias="DataUnitsRead", ge=0)
    data_units_written: int = Field(0, alias="DataUnitsWritten", ge=0)
    host_read_commands: int = Field(0, alias="HostReadCommands", ge=0)
    host_write_commands: int = Field(0, alias="HostWriteCommands", ge=0)
    controller_busy_time_minutes: int = Field(0, alias="ControllerBusyTimeMinutes", ge=0)
    media_data_integrity_errors: int = Field(0, alias="MediaDataIntegrityErrors", ge=0)
    error_log_entries: int = Field(0, alias="ErrorLogEntries", ge=0)
    composite_temperature_k: Optional[int] = Field(
        None,
        alias="CompositeTemperatureK",
        description="NVMe composite temperature in Kelvin, if reported.",
    )
    live_temperature_c: Optional[int] = Field(
        None,
        alias="LiveTemperatureC",
        description="Current temperature in degrees Celsius, if any source provided one.",
    )
    critical_warning: int = Field(0, alias="CriticalWarning", ge=0)
    available_spare_percent: int = Field(0, alias="AvailableSparePercent", ge=0)
    available_spare_threshold: int = Field(0, alias="AvailableSpareThreshold", ge=0)
    percentage_used: int = Field(0, alias="PercentageUsed", ge=0)
    warning_temp_time_minutes: int = Field(0, alias="WarningTempTimeMinutes", ge=0)
    critical_temp_time_minutes: int = Field(0, alias="CriticalTempTimeMinutes", ge=0)


class DriveError(BaseModel):
    """Placeholder record for a device that could not be read at all."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    device: str = Field(..., alias="Device", min_length=1)
    error: bool = Field(True, description="Always true; marks the entry as a failed read.")
    message: str = Field(..., description="Human-readable reason the device could not be read.")


DriveEntry = Union[DriveRecord, DriveError]
