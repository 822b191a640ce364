"""
Turn one `smartctl -a -j` payload into a canonical DriveRecord.

The payload is first parsed into a small typed representation
(DeviceTelemetry with optional NVMe/SCSI parts) by total extraction
functions: a missing or non-numeric value becomes None (absent) or 0
(counter), never an exception. Derived fields (written data, health,
temperature) are then resolved from ordered strategy tuples, first
non-None result wins.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from hddapi.models.drive import DriveRecord, DriveType

Number = Union[int, float]

GIB = 1024 ** 3
NVME_DATA_UNIT_BYTES = 512_000
LBA_BYTES = 512
SCSI_GIGABYTE_BYTES = 1000 ** 3
KELVIN_OFFSET = 273

# device.type tag -> family. Only the part before a comma counts ("sat,12" -> "sat").
_TYPE_ALIASES: Dict[str, DriveType] = {
    "nvme": DriveType.NVME,
    "sntasmedia": DriveType.NVME,
    "sntjmicron": DriveType.NVME,
    "sntrealtek": DriveType.NVME,
    "ata": DriveType.ATA,
    "sat": DriveType.ATA,
    "usbcypress": DriveType.ATA,
    "usbjmicron": DriveType.ATA,
    "usbprolific": DriveType.ATA,
    "usbsunplus": DriveType.ATA,
    "scsi": DriveType.SCSI,
}

# device.protocol, consulted only when the type tag is unknown (RAID passthrough etc.)
_PROTOCOL_ALIASES: Dict[str, DriveType] = {
    "nvme": DriveType.NVME,
    "ata": DriveType.ATA,
    "scsi": DriveType.SCSI,
}

# Total_LBAs_Written and friends; ID and name must both match.
_WRITTEN_ATTRIBUTE_IDS = (241, 242)
_WRITTEN_ATTRIBUTE_NAME = re.compile(r"Written", re.IGNORECASE)

# Remaining-life attributes, by ID priority first, then by name.
_LIFE_ATTRIBUTE_IDS = (231, 202, 177)
_LIFE_ATTRIBUTE_NAME = re.compile(r"Wear|Life|Percent", re.IGNORECASE)

_TEMPERATURE_ATTRIBUTE_IDS = (194, 190)
# raw.value of 194/190 often packs min/max into the upper bytes
_PLAUSIBLE_CELSIUS = (-40, 150)
_FIRST_INTEGER = re.compile(r"-?\d+")

# (NvmeHealthLog field, smartctl keys in priority order)
_NVME_COUNTER_KEYS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("data_units_read", ("data_units_read",)),
    ("data_units_written", ("data_units_written",)),
    ("host_read_commands", ("host_reads", "host_read_commands")),
    ("host_write_commands", ("host_writes", "host_write_commands")),
    ("controller_busy_time_minutes", ("controller_busy_time",)),
    ("critical_warning", ("critical_warning",)),
    ("available_spare", ("available_spare",)),
    ("available_spare_threshold", ("available_spare_threshold",)),
    ("warning_temp_time_minutes", ("warning_composite_temperature_time", "warning_temp_time")),
    ("critical_temp_time_minutes", ("critical_composite_temperature_time", "critical_comp_time")),
)


# --- coercion --------------------------------------------------------------


def to_number(value: Any, fallback: Optional[Number] = 0) -> Optional[Number]:
    """
    Return `value` as a finite int/float, or `fallback`.

    Accepts ints, floats and numeric strings. Booleans, None, containers,
    NaN and infinities give the fallback. Never raises.
    """
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else fallback
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return fallback
        return number if math.isfinite(number) else fallback
    return fallback


def to_counter(value: Any) -> int:
    """Numeric-or-0, truncated to int and floored at 0."""
    return max(0, int(to_number(value)))


def _optional_number(value: Any) -> Optional[Number]:
    return to_number(value, fallback=None)


def _get(source: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(source, dict):
            return None
        source = source.get(key)
    return source


def _first_number(source: Dict[str, Any], keys: Sequence[str]) -> Optional[Number]:
    for key in keys:
        number = _optional_number(source.get(key))
        if number is not None:
            return number
    return None


def _coalesce(*values: Optional[Number]) -> Optional[Number]:
    for value in values:
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _gib(byte_count: Number) -> float:
    return round(byte_count / GIB, 2)


def _round_half_up(value: Number) -> int:
    # halves round up: 309.5 K -> 37 C
    return int(math.floor(value + 0.5))


# --- typed representation --------------------------------------------------


@dataclass(frozen=True)
class SmartAttribute:
    """One row of `ata_smart_attributes.table`."""

    id: Optional[int]
    name: str = ""
    value: Optional[Number] = None
    raw_value: Optional[Number] = None
    raw_string: str = ""


@dataclass(frozen=True)
class NvmeHealthLog:
    data_units_read: int = 0
    data_units_written: int = 0
    host_read_commands: int = 0
    host_write_commands: int = 0
    controller_busy_time_minutes: int = 0
    critical_warning: int = 0
    available_spare: int = 0
    available_spare_threshold: int = 0
    warning_temp_time_minutes: int = 0
    critical_temp_time_minutes: int = 0
    percentage_used: Optional[Number] = None
    composite_temperature_k: Optional[Number] = None
    first_sensor_k: Optional[Number] = None
    power_on_hours: Optional[Number] = None
    power_cycles: Optional[Number] = None
    unsafe_shutdowns: Optional[Number] = None
    media_errors: Optional[Number] = None
    error_log_entries: Optional[Number] = None


@dataclass(frozen=True)
class ScsiHealthLog:
    percentage_used: Optional[Number] = None
    gigabytes_written: Optional[Number] = None
    start_stop_cycles: Optional[Number] = None


@dataclass(frozen=True)
class DeviceTelemetry:
    device_type: DriveType = DriveType.UNKNOWN
    model: str = ""
    serial: str = ""
    current_temperature: Optional[Number] = None
    smart_passed: Optional[bool] = None
    power_on_hours: Optional[Number] = None
    power_cycles: Optional[Number] = None
    unsafe_shutdowns: Optional[Number] = None
    media_errors: Optional[Number] = None
    error_log_entries: Optional[Number] = None
    attributes: Tuple[SmartAttribute, ...] = ()
    nvme: Optional[NvmeHealthLog] = None
    scsi: Optional[ScsiHealthLog] = None

    @property
    def is_nvme(self) -> bool:
        return self.device_type is DriveType.NVME


def detect_device_type(payload: Dict[str, Any]) -> DriveType:
    tag = _get(payload, "device", "type")
    if isinstance(tag, str) and tag.strip():
        family = _TYPE_ALIASES.get(tag.split(",", 1)[0].strip().lower())
        if family is not None:
            return family

    protocol = _get(payload, "device", "protocol")
    if isinstance(protocol, str):
        return _PROTOCOL_ALIASES.get(protocol.strip().lower(), DriveType.UNKNOWN)
    return DriveType.UNKNOWN


def _parse_attributes(payload: Dict[str, Any]) -> Tuple[SmartAttribute, ...]:
    table = _get(payload, "ata_smart_attributes", "table")
    if not isinstance(table, list):
        return ()

    attributes = []
    for entry in table:
        if not isinstance(entry, dict):
            continue
        attribute_id = _optional_number(entry.get("id"))
        attributes.append(
            SmartAttribute(
                id=int(attribute_id) if attribute_id is not None else None,
                name=_text(entry.get("name")),
                value=_optional_number(entry.get("value")),
                raw_value=_optional_number(_get(entry, "raw", "value")),
                raw_string=_text(_get(entry, "raw", "string")),
            )
        )
    return tuple(attributes)


def _parse_nvme_log(payload: Dict[str, Any]) -> NvmeHealthLog:
    log = payload.get("nvme_smart_health_information_log")
    if not isinstance(log, dict):
        return NvmeHealthLog()

    counters = {field: to_counter(_first_number(log, keys)) for field, keys in _NVME_COUNTER_KEYS}
    sensors = log.get("temperature_sensors")
    first_sensor = _optional_number(sensors[0]) if isinstance(sensors, list) and sensors else None

    return NvmeHealthLog(
        percentage_used=_optional_number(log.get("percentage_used")),
        composite_temperature_k=_optional_number(log.get("composite_temperature")),
        first_sensor_k=first_sensor,
        power_on_hours=_optional_number(log.get("power_on_hours")),
        power_cycles=_optional_number(log.get("power_cycles")),
        unsafe_shutdowns=_optional_number(log.get("unsafe_shutdowns")),
        media_errors=_optional_number(log.get("media_errors")),
        error_log_entries=_optional_number(log.get("num_err_log_entries")),
        **counters,
    )


def _parse_scsi_log(payload: Dict[str, Any]) -> ScsiHealthLog:
    return ScsiHealthLog(
        percentage_used=_optional_number(payload.get("scsi_percentage_used_endurance_indicator")),
        gigabytes_written=_optional_number(
            _get(payload, "scsi_error_counter_log", "write", "gigabytes_processed")
        ),
        start_stop_cycles=_optional_number(
            _get(payload, "scsi_start_stop_cycle_counter", "accumulated_start_stop_cycles")
        ),
    )


def parse_telemetry(payload: Any) -> DeviceTelemetry:
    """Extract everything the normalizer needs; any input shape is accepted."""
    if not isinstance(payload, dict):
        payload = {}

    device_type = detect_device_type(payload)
    passed = _get(payload, "smart_status", "passed")

    return DeviceTelemetry(
        device_type=device_type,
        model=(
            _text(payload.get("model_name"))
            or _text(payload.get("model_family"))
            or _text(payload.get("scsi_model_name"))
        ),
        serial=_text(payload.get("serial_number")),
        current_temperature=_optional_number(_get(payload, "temperature", "current")),
        smart_passed=passed if isinstance(passed, bool) else None,
        power_on_hours=_optional_number(_get(payload, "power_on_time", "hours")),
        power_cycles=_optional_number(payload.get("power_cycle_count")),
        unsafe_shutdowns=_optional_number(payload.get("unsafe_shutdowns")),
        media_errors=_optional_number(payload.get("media_and_data_integrity_errors")),
        error_log_entries=_optional_number(payload.get("number_of_error_information_log_entries")),
        attributes=_parse_attributes(payload),
        nvme=_parse_nvme_log(payload) if device_type is DriveType.NVME else None,
        scsi=_parse_scsi_log(payload) if device_type is DriveType.SCSI else None,
    )


# --- derived fields --------------------------------------------------------

Strategy = Callable[[DeviceTelemetry], Optional[Number]]


def _first_result(strategies: Sequence[Strategy], telemetry: DeviceTelemetry) -> Optional[Number]:
    for strategy in strategies:
        result = strategy(telemetry)
        if result is not None:
            return result
    return None


def _find_attribute(
    attributes: Sequence[SmartAttribute],
    ids: Sequence[int],
    name_pattern: "re.Pattern[str]",
) -> Optional[SmartAttribute]:
    """First attribute with a numeric value, by ID priority, then by name."""
    for attribute_id in ids:
        for attribute in attributes:
            if attribute.id == attribute_id and attribute.value is not None:
                return attribute
    for attribute in attributes:
        if name_pattern.search(attribute.name) and attribute.value is not None:
            return attribute
    return None


def _written_from_nvme_data_units(telemetry: DeviceTelemetry) -> Optional[float]:
    if not telemetry.is_nvme or telemetry.nvme is None:
        return None
    return _gib(telemetry.nvme.data_units_written * NVME_DATA_UNIT_BYTES)


def _written_from_lba_attribute(telemetry: DeviceTelemetry) -> Optional[float]:
    if telemetry.is_nvme:
        return None
    for attribute in telemetry.attributes:
        if attribute.id in _WRITTEN_ATTRIBUTE_IDS and _WRITTEN_ATTRIBUTE_NAME.search(attribute.name):
            return _gib(to_counter(attribute.raw_value) * LBA_BYTES)
    return None


def _written_from_scsi_log(telemetry: DeviceTelemetry) -> Optional[float]:
    if telemetry.scsi is None or telemetry.scsi.gigabytes_written is None:
        return None
    return _gib(max(0, telemetry.scsi.gigabytes_written) * SCSI_GIGABYTE_BYTES)


WRITTEN_GB_STRATEGIES: Tuple[Strategy, ...] = (
    _written_from_nvme_data_units,
    _written_from_lba_attribute,
    _written_from_scsi_log,
)


def _health_from_nvme_wear(telemetry: DeviceTelemetry) -> Optional[Number]:
    if telemetry.nvme is None or telemetry.nvme.percentage_used is None:
        return None
    return 100 - telemetry.nvme.percentage_used


def _health_from_scsi_endurance(telemetry: DeviceTelemetry) -> Optional[Number]:
    if telemetry.scsi is None or telemetry.scsi.percentage_used is None:
        return None
    return 100 - telemetry.scsi.percentage_used


def _health_from_life_attribute(telemetry: DeviceTelemetry) -> Optional[Number]:
    if telemetry.is_nvme:
        return None
    attribute = _find_attribute(telemetry.attributes, _LIFE_ATTRIBUTE_IDS, _LIFE_ATTRIBUTE_NAME)
    return attribute.value if attribute is not None else None


def _health_from_smart_status(telemetry: DeviceTelemetry) -> Optional[Number]:
    if telemetry.smart_passed is None:
        return None
    return 100 if telemetry.smart_passed else 0


HEALTH_STRATEGIES: Tuple[Strategy, ...] = (
    _health_from_nvme_wear,
    _health_from_scsi_endurance,
    _health_from_life_attribute,
    _health_from_smart_status,
)


def _kelvin_to_celsius(kelvin: Optional[Number]) -> Optional[Number]:
    return kelvin - KELVIN_OFFSET if kelvin is not None else None


def _temperature_from_current(telemetry: DeviceTelemetry) -> Optional[Number]:
    return telemetry.current_temperature


def _temperature_from_nvme_composite(telemetry: DeviceTelemetry) -> Optional[Number]:
    if telemetry.nvme is None:
        return None
    return _kelvin_to_celsius(telemetry.nvme.composite_temperature_k)


def _temperature_from_nvme_sensor(telemetry: DeviceTelemetry) -> Optional[Number]:
    if telemetry.nvme is None:
        return None
    return _kelvin_to_celsius(telemetry.nvme.first_sensor_k)


def _temperature_from_attributes(telemetry: DeviceTelemetry) -> Optional[Number]:
    low, high = _PLAUSIBLE_CELSIUS
    for attribute_id in _TEMPERATURE_ATTRIBUTE_IDS:
        for attribute in telemetry.attributes:
            if attribute.id != attribute_id:
                continue
            if attribute.raw_value is not None and low <= attribute.raw_value <= high:
                return attribute.raw_value
            match = _FIRST_INTEGER.search(attribute.raw_string)
            if match:
                return int(match.group())
    return None


TEMPERATURE_STRATEGIES: Tuple[Strategy, ...] = (
    _temperature_from_current,
    _temperature_from_nvme_composite,
    _temperature_from_nvme_sensor,
    _temperature_from_attributes,
)


def written_gb(telemetry: DeviceTelemetry) -> float:
    result = _first_result(WRITTEN_GB_STRATEGIES, telemetry)
    return float(result) if result is not None else 0.0


def health_percent(telemetry: DeviceTelemetry) -> Optional[int]:
    result = _first_result(HEALTH_STRATEGIES, telemetry)
    if result is None:
        return None
    return max(0, min(100, _round_half_up(result)))


def live_temperature_c(telemetry: DeviceTelemetry) -> Optional[int]:
    result = _first_result(TEMPERATURE_STRATEGIES, telemetry)
    return _round_half_up(result) if result is not None else None


def normalize(device: str, payload: Any) -> DriveRecord:
    """
    Build the canonical record for `device` from its smartctl JSON payload.

    Pure and total: absent or malformed fields fall back to 0 / None without
    affecting the rest of the record.
    """
    telemetry = parse_telemetry(payload)
    nvme = telemetry.nvme or NvmeHealthLog()
    scsi = telemetry.scsi or ScsiHealthLog()
    composite_k = nvme.composite_temperature_k

    return DriveRecord(
        device=device,
        device_type=telemetry.device_type,
        model=telemetry.model,
        serial=telemetry.serial,
        health_percent=health_percent(telemetry),
        written_gb=written_gb(telemetry),
        power_cycles=to_counter(
            _coalesce(telemetry.power_cycles, nvme.power_cycles, scsi.start_stop_cycles)
        ),
        power_on_hours=to_counter(_coalesce(telemetry.power_on_hours, nvme.power_on_hours)),
        unsafe_shutdowns=to_counter(_coalesce(telemetry.unsafe_shutdowns, nvme.unsafe_shutdowns)),
        data_units_read=nvme.data_units_read,
        data_units_written=nvme.data_units_written,
        host_read_commands=nvme.host_read_commands,
        host_write_commands=nvme.host_write_commands,
        controller_busy_time_minutes=nvme.controller_busy_time_minutes,
        media_data_integrity_errors=to_counter(_coalesce(telemetry.media_errors, nvme.media_errors)),
        error_log_entries=to_counter(_coalesce(telemetry.error_log_entries, nvme.error_log_entries)),
        composite_temperature_k=_round_half_up(composite_k) if composite_k is not None else None,
        live_temperature_c=live_temperature_c(telemetry),
        critical_warning=nvme.critical_warning,
        available_spare_percent=nvme.available_spare,
        available_spare_threshold=nvme.available_spare_threshold,
        percentage_used=to_counter(nvme.percentage_used),
        warning_temp_time_minutes=nvme.warning_temp_time_minutes,
        critical_temp_time_minutes=nvme.critical_temp_time_minutes,
    )
