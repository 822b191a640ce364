import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from hddapi.services.smartctl import (
    ProbeError,
    ProbeExecutor,
    SmartctlUnavailableError,
    parse_json_output,
)

logger = logging.getLogger(__name__)

SCAN_ARGS = ("--scan", "-j")


@dataclass(frozen=True)
class DeviceScan:
    devices: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def _failed_scan(reason: str) -> DeviceScan:
    logger.warning("Device scan failed: %s", reason)
    return DeviceScan(devices=(), error=reason)


def scan_devices(executor: ProbeExecutor) -> DeviceScan:
    """
    Ask smartctl for the devices it can address (`smartctl --scan -j`).

    A scan that cannot be run or parsed yields an empty DeviceScan with the
    reason in `error`; it never raises, except SmartctlUnavailableError when
    the binary itself is missing.
    """
    try:
        output = executor.run(SCAN_ARGS)
    except SmartctlUnavailableError:
        raise
    except ProbeError as exc:
        return _failed_scan(str(exc))

    if output.is_fatal:
        return _failed_scan(
            f"smartctl --scan exited with status {output.returncode}: {output.stderr.strip()}"
        )

    payload = parse_json_output(output.stdout)
    if payload is None:
        return _failed_scan("smartctl --scan returned no valid JSON")

    entries = payload.get("devices")
    if not isinstance(entries, list):
        return _failed_scan("smartctl --scan output has no 'devices' list")

    devices: List[str] = []
    for entry in entries:
        name = entry.get("name") if isinstance(entry, dict) else None
        if isinstance(name, str) and name.strip() and name not in devices:
            devices.append(name)

    logger.debug("smartctl --scan found %d device(s): %s", len(devices), devices)
    return DeviceScan(devices=tuple(devices))
