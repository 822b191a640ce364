from collections import namedtuple

from hddapi.services import volume_monitor

Partition = namedtuple("Partition", "device mountpoint fstype opts")
Usage = namedtuple("Usage", "total used free percent")

GIB = 1024 ** 3


def test_get_volumes_computes_sizes_in_gib(monkeypatch):
    partitions = [
        Partition("/dev/sda1", "/", "ext4", "rw"),
        Partition("/dev/sdb1", "/data", "xfs", "rw"),
    ]
    usages = {
        "/": Usage(total=100 * GIB, used=70 * GIB, free=25 * GIB, percent=73.7),
        "/data": Usage(total=400 * GIB, used=100 * GIB, free=300 * GIB, percent=25.0),
    }
    monkeypatch.setattr(volume_monitor.psutil, "disk_partitions", lambda all=False: partitions)
    monkeypatch.setattr(volume_monitor.psutil, "disk_usage", lambda path: usages[path])
    monkeypatch.setattr(volume_monitor.os, "name", "posix")

    root, data = volume_monitor.get_volumes()

    assert root.drive_letter == "/"
    assert root.volume_name == "/dev/sda1"
    assert root.free_gb == 25.0
    # used = total - free, reserved blocks included
    assert root.used_gb == 75.0
    assert root.usage_percent == 75.0

    assert data.drive_letter == "/data"
    assert data.usage_percent == 25.0


def test_unreadable_and_empty_volumes_are_skipped(monkeypatch):
    partitions = [
        Partition("/dev/sr0", "/media/cdrom", "iso9660", "ro"),
        Partition("/dev/sdc1", "/mnt/empty", "vfat", "rw"),
        Partition("/dev/sda1", "/", "ext4", "rw"),
    ]

    def fake_disk_usage(path):
        if path == "/media/cdrom":
            raise PermissionError(13, "Permission denied")
        if path == "/mnt/empty":
            return Usage(total=0, used=0, free=0, percent=0.0)
        return Usage(total=10 * GIB, used=5 * GIB, free=5 * GIB, percent=50.0)

    monkeypatch.setattr(volume_monitor.psutil, "disk_partitions", lambda all=False: partitions)
    monkeypatch.setattr(volume_monitor.psutil, "disk_usage", fake_disk_usage)

    volumes = volume_monitor.get_volumes()

    assert [volume.volume_name for volume in volumes] == ["/dev/sda1"]


def test_partition_listing_failure_yields_no_volumes(monkeypatch):
    def broken(all=False):
        raise OSError("no /proc")

    monkeypatch.setattr(volume_monitor.psutil, "disk_partitions", broken)

    assert volume_monitor.get_volumes() == []


def test_windows_drive_letter_drops_trailing_backslash(monkeypatch):
    monkeypatch.setattr(volume_monitor.os, "name", "nt")

    assert volume_monitor._drive_letter("C:\\") == "C:"
