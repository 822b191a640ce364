import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Callable, List, Optional, Sequence

from hddapi.config import get_settings
from hddapi.models.drive import DriveEntry, DriveError
from hddapi.models.snapshot import DriveSnapshot
from hddapi.models.volume import VolumeRecord
from hddapi.services import volume_monitor
from hddapi.services.device_reader import NoUsableTelemetryError, read_device
from hddapi.services.device_scan import DeviceScan, scan_devices
from hddapi.services.normalizer import normalize
from hddapi.services.smartctl import ProbeExecutor, SmartctlExecutor, SmartctlUnavailableError

logger = logging.getLogger(__name__)

VolumeCollector = Callable[[], List[VolumeRecord]]


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class SnapshotStore:
    """
    Holds the most recently published DriveSnapshot.

    Readers call current() and never wait for a poll cycle; publish()
    replaces the whole snapshot in one reference swap.
    """

    def __init__(self, initial: Optional[DriveSnapshot] = None):
        self._snapshot = initial or DriveSnapshot()
        self._publish_lock = threading.Lock()

    def current(self) -> DriveSnapshot:
        return self._snapshot

    def publish(
        self,
        drives: Sequence[DriveEntry],
        volumes: Sequence[VolumeRecord] = (),
        scan_failed: bool = False,
    ) -> DriveSnapshot:
        with self._publish_lock:
            snapshot = DriveSnapshot(
                version=self._snapshot.version + 1,
                generated_at=datetime.now(timezone.utc),
                scan_failed=scan_failed,
                drives=tuple(drives),
                volumes=tuple(volumes),
            )
            self._snapshot = snapshot
        return snapshot


class SnapshotPoller:
    """
    Runs poll cycles (scan, read, normalize, sort, publish) one at a time.

    refresh() is safe to call from any thread: a call arriving while a cycle
    is in flight does not start a second sweep, it schedules exactly one
    follow-up cycle (all such calls coalesce) and returns False.
    """

    def __init__(
        self,
        executor: ProbeExecutor,
        store: Optional[SnapshotStore] = None,
        devices: Optional[Sequence[str]] = None,
        volume_collector: Optional[VolumeCollector] = None,
        max_workers: int = 1,
    ):
        self.executor = executor
        self.store = store or SnapshotStore()
        self.devices = tuple(devices) if devices else None
        self.volume_collector = volume_collector
        self.max_workers = max(1, max_workers)
        self.last_error: Optional[str] = None

        self._state_lock = threading.Lock()
        self._polling = False
        self._rerun_requested = False

    @property
    def state(self) -> PollerState:
        return PollerState.POLLING if self._polling else PollerState.IDLE

    def current(self) -> DriveSnapshot:
        return self.store.current()

    def refresh(self) -> bool:
        """
        Run a poll cycle now, or coalesce into the one already running.

        Returns True if this call ran the cycle(s), False if it was folded
        into an in-flight cycle. A cycle-level failure (SmartctlUnavailableError
        or anything unexpected) is recorded in `last_error` and propagates; the
        previous snapshot stays published in that case.
        """
        with self._state_lock:
            if self._polling:
                self._rerun_requested = True
                return False
            self._polling = True

        try:
            while True:
                self._run_cycle()
                with self._state_lock:
                    # back to idle under the same lock a concurrent trigger checks
                    if not self._rerun_requested:
                        self._polling = False
                        return True
                    self._rerun_requested = False
                logger.debug("Running coalesced follow-up poll cycle")
        except BaseException:
            with self._state_lock:
                self._polling = False
                self._rerun_requested = False
            raise

    async def run_forever(self, interval_seconds: float) -> None:
        """Background loop for the FastAPI lifespan; cancel the task to stop it."""
        while True:
            try:
                await asyncio.to_thread(self.refresh)
            except SmartctlUnavailableError as exc:
                logger.error("Poll cycle failed, keeping previous snapshot: %s", exc)
            except Exception:
                logger.exception("Unexpected error in poll cycle, keeping previous snapshot")
            await asyncio.sleep(interval_seconds)

    def _scan(self) -> DeviceScan:
        if self.devices is not None:
            return DeviceScan(devices=self.devices)
        return scan_devices(self.executor)

    def _read_entry(self, device: str) -> DriveEntry:
        try:
            payload = read_device(self.executor, device)
            return normalize(device, payload)
        except SmartctlUnavailableError:
            raise
        except NoUsableTelemetryError as exc:
            logger.warning("%s", exc)
            return DriveError(device=device, message=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error while reading %s", device)
            return DriveError(device=device, message=f"Failed to read {device}: {exc}")

    def _read_all(self, devices: Sequence[str]) -> List[DriveEntry]:
        if self.max_workers == 1 or len(devices) <= 1:
            return [self._read_entry(device) for device in devices]
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="smartctl") as pool:
            return list(pool.map(self._read_entry, devices))

    def _collect_volumes(self) -> List[VolumeRecord]:
        if self.volume_collector is None:
            return []
        try:
            return list(self.volume_collector())
        except Exception:
            logger.exception("Volume collection failed, publishing drives without volumes")
            return []

    def _run_cycle(self) -> DriveSnapshot:
        try:
            scan = self._scan()
            entries = self._read_all(scan.devices)
        except Exception as exc:
            self.last_error = str(exc) or type(exc).__name__
            raise

        entries.sort(key=lambda entry: entry.device)
        volumes = self._collect_volumes()

        snapshot = self.store.publish(entries, volumes, scan_failed=scan.failed)
        self.last_error = None
        failed = sum(1 for entry in entries if isinstance(entry, DriveError))
        logger.info(
            "Published snapshot v%d: %d drive(s), %d failed, %d volume(s)",
            snapshot.version,
            len(entries),
            failed,
            len(volumes),
        )
        return snapshot


@lru_cache(maxsize=1)
def get_poller() -> SnapshotPoller:
    settings = get_settings()
    return SnapshotPoller(
        executor=SmartctlExecutor(
            smartctl_path=settings.smartctl_path,
            timeout_seconds=settings.smartctl_timeout_seconds,
        ),
        devices=settings.smart_devices,
        volume_collector=volume_monitor.get_volumes if settings.include_volumes else None,
        max_workers=settings.probe_workers,
    )
