import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from hddapi.services.smartctl import (
    ProbeError,
    ProbeExecutor,
    SmartctlUnavailableError,
    parse_json_output,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessMode:
    """One way of addressing a device, e.g. through a USB-to-SATA bridge."""

    name: str
    device_args: Tuple[str, ...] = ()

    def build_args(self, device: str) -> List[str]:
        return ["-a", "-j", *self.device_args, device]


# Tried in this order; the first mode returning a usable payload wins.
ACCESS_MODES: Tuple[AccessMode, ...] = (
    AccessMode("auto"),
    AccessMode("sat", ("-d", "sat")),
    AccessMode("sat,12", ("-d", "sat,12")),
    AccessMode("scsi", ("-d", "scsi")),
)


class NoUsableTelemetryError(RuntimeError):
    """Every access mode failed for a device."""

    def __init__(self, device: str, attempts: Sequence[Tuple[str, str]]):
        self.device = device
        self.attempts = tuple(attempts)
        details = "; ".join(f"{mode}: {reason}" for mode, reason in self.attempts)
        super().__init__(f"No usable SMART data for {device} ({details})")


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_usable_payload(payload: Dict[str, Any]) -> bool:
    """A payload is usable if it names a model, a serial number or a device type."""
    device_info = payload.get("device")
    device_type = device_info.get("type") if isinstance(device_info, dict) else None
    return (
        _non_empty_str(payload.get("model_name"))
        or _non_empty_str(payload.get("serial_number"))
        or _non_empty_str(device_type)
    )


def read_device(
    executor: ProbeExecutor,
    device: str,
    access_modes: Sequence[AccessMode] = ACCESS_MODES,
) -> Dict[str, Any]:
    """
    Return the first usable `smartctl -a -j` payload for a device.

    Probe failures and unparseable output only skip to the next access mode.
    NoUsableTelemetryError is raised once all modes are exhausted;
    SmartctlUnavailableError propagates immediately since no mode can work
    without the binary.
    """
    attempts: List[Tuple[str, str]] = []

    for mode in access_modes:
        try:
            output = executor.run(mode.build_args(device))
        except SmartctlUnavailableError:
            raise
        except ProbeError as exc:
            attempts.append((mode.name, str(exc)))
            logger.debug("Access mode %s failed for %s: %s", mode.name, device, exc)
            continue

        if output.is_fatal:
            attempts.append((mode.name, f"exit status {output.returncode}"))
            logger.debug(
                "Access mode %s failed for %s: exit status %d",
                mode.name,
                device,
                output.returncode,
            )
            continue

        payload = parse_json_output(output.stdout)
        if payload is None:
            attempts.append((mode.name, "invalid JSON"))
            continue
        if not is_usable_payload(payload):
            attempts.append((mode.name, "no model, serial or device type"))
            continue

        logger.debug("Read %s using access mode %s", device, mode.name)
        return payload

    raise NoUsableTelemetryError(device, attempts)
