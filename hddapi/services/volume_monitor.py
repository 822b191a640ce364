import logging
import os
from typing import List, Optional

import psutil

from hddapi.models.volume import VolumeRecord

logger = logging.getLogger(__name__)

_GIB = 1024 ** 3


def _drive_letter(mountpoint: str) -> str:
    # "C:\\" -> "C:" on Windows; POSIX mountpoints are kept as they are
    if os.name == "nt":
        return mountpoint.rstrip("\\/") or mountpoint
    return mountpoint


def _volume_record(partition) -> Optional[VolumeRecord]:
    try:
        usage = psutil.disk_usage(partition.mountpoint)
    except OSError as exc:
        # Empty card readers, CD drives, stale network mounts
        logger.debug("Skipping volume %s: %s", partition.mountpoint, exc)
        return None

    if usage.total <= 0:
        return None

    free_gb = round(usage.free / _GIB, 2)
    used_gb = round((usage.total - usage.free) / _GIB, 2)
    usage_percent = round(used_gb / (usage.total / _GIB) * 100, 1)

    return VolumeRecord(
        drive_letter=_drive_letter(partition.mountpoint),
        volume_name=partition.device or "",
        free_gb=max(0.0, free_gb),
        used_gb=max(0.0, used_gb),
        usage_percent=min(100.0, max(0.0, usage_percent)),
    )


def get_volumes() -> List[VolumeRecord]:
    """
    Collect free/used space for all mounted physical volumes.

    This is independent of smartctl. A failing partition listing yields an
    empty list; a single unreadable volume is skipped.
    """
    try:
        partitions = psutil.disk_partitions(all=False)
    except OSError as exc:
        logger.warning("Could not list disk partitions: %s", exc)
        return []

    volumes: List[VolumeRecord] = []
    for partition in partitions:
        record = _volume_record(partition)
        if record is not None:
            volumes.append(record)

    return volumes
