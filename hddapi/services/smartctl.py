import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

# smartctl exit status is a bit mask; only these two bits mean "no usable output":
#   bit 0: command line did not parse
#   bit 1: device open failed
# Higher bits report SMART findings (failing disk, logged errors) on valid output.
_FATAL_EXIT_BITS = 0b011

# Keeps smartctl.exe from flashing a console window on Windows; 0 elsewhere.
_CREATION_FLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0)


class ProbeError(RuntimeError):
    """A smartctl invocation did not produce output."""


class ProbeTimeoutError(ProbeError):
    """smartctl did not finish within the configured timeout."""


class SmartctlUnavailableError(ProbeError):
    """smartctl cannot be started at all (missing binary, no permission, bad executable)."""


@dataclass(frozen=True)
class ProbeOutput:
    returncode: int
    stdout: str
    stderr: str

    @property
    def is_fatal(self) -> bool:
        return is_fatal_exit(self.returncode)


class ProbeExecutor(Protocol):
    def run(self, args: Sequence[str]) -> ProbeOutput:
        ...


def is_fatal_exit(returncode: int) -> bool:
    """True if smartctl's exit status says the output cannot be trusted."""
    return returncode < 0 or bool(returncode & _FATAL_EXIT_BITS)


def parse_json_output(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse smartctl's `-j` output.

    Returns None for empty output, malformed JSON or a JSON document that is
    not an object; callers treat all three the same way.
    """
    if not text or not text.strip():
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class SmartctlExecutor:
    """
    Run smartctl with a bounded execution time.

    Any exit status is returned to the caller together with stdout/stderr;
    interpretation (fatal or not) is left to the reader and the scanner.
    """

    def __init__(self, smartctl_path: str = "smartctl", timeout_seconds: float = 30.0):
        self.smartctl_path = smartctl_path
        self.timeout_seconds = timeout_seconds

    def run(self, args: Sequence[str]) -> ProbeOutput:
        command = [self.smartctl_path, *args]
        logger.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                check=False,  # exit status is a bit mask, evaluated by the caller
                capture_output=True,
                # USB bridges can report model/serial bytes that are not UTF-8
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                creationflags=_CREATION_FLAGS,
            )
        except FileNotFoundError as exc:
            raise SmartctlUnavailableError(
                f"smartctl binary not found at {self.smartctl_path!r}; "
                "install smartmontools on the host"
            ) from exc
        except PermissionError as exc:
            raise SmartctlUnavailableError(
                f"smartctl at {self.smartctl_path!r} is not executable: {exc}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ProbeTimeoutError(
                f"smartctl {' '.join(args)} timed out after {self.timeout_seconds:g}s"
            ) from exc
        except OSError as exc:
            # e.g. ENOEXEC or WinError 193: present but not runnable
            raise SmartctlUnavailableError(
                f"smartctl at {self.smartctl_path!r} could not be started: {exc}"
            ) from exc

        return ProbeOutput(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
