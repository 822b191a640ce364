import subprocess

import pytest

from fakes import CannedExecutor, ok
from hddapi.services.device_scan import SCAN_ARGS, scan_devices
from hddapi.services.smartctl import ProbeOutput, ProbeTimeoutError, SmartctlExecutor, SmartctlUnavailableError


def test_scan_returns_device_names_in_reported_order():
    executor = CannedExecutor(
        {
            SCAN_ARGS: ok(
                {
                    "devices": [
                        {"name": "/dev/sdb", "type": "sat"},
                        {"name": "/dev/nvme0", "type": "nvme"},
                        {"name": "/dev/sda", "type": "sat"},
                    ]
                }
            )
        }
    )

    scan = scan_devices(executor)

    assert scan.devices == ("/dev/sdb", "/dev/nvme0", "/dev/sda")
    assert scan.failed is False
    assert executor.calls == [SCAN_ARGS]


def test_scan_skips_unnamed_and_duplicate_entries():
    executor = CannedExecutor(
        {
            SCAN_ARGS: ok(
                {
                    "devices": [
                        {"name": "/dev/sda"},
                        {"type": "sat"},
                        {"name": ""},
                        "bogus",
                        {"name": "/dev/sda"},
                        {"name": "/dev/sdb"},
                    ]
                }
            )
        }
    )

    assert scan_devices(executor).devices == ("/dev/sda", "/dev/sdb")


def test_scan_with_no_devices_is_not_a_failure():
    scan = scan_devices(CannedExecutor({SCAN_ARGS: ok({"devices": []})}))

    assert scan.devices == ()
    assert scan.failed is False


@pytest.mark.parametrize(
    "outcome",
    [
        ProbeOutput(returncode=0, stdout="definitely not json", stderr=""),
        ProbeOutput(returncode=1, stdout="", stderr="bad option"),
        ok({"json_format_version": [1, 0]}),
        ok({"devices": "nope"}),
        ProbeTimeoutError("smartctl --scan -j timed out after 30s"),
    ],
)
def test_scan_failure_degrades_to_empty_result(outcome):
    scan = scan_devices(CannedExecutor({SCAN_ARGS: outcome}))

    assert scan.devices == ()
    assert scan.failed is True
    assert scan.error


def test_missing_binary_is_escalated():
    executor = CannedExecutor({SCAN_ARGS: SmartctlUnavailableError("smartctl binary not found")})

    with pytest.raises(SmartctlUnavailableError):
        scan_devices(executor)


def test_undecodable_scan_output_degrades_to_empty_result(monkeypatch):
    def fake_run(command, **kwargs):
        stdout = b"\xff\xfe".decode(kwargs["encoding"], kwargs["errors"])
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    monkeypatch.setattr("hddapi.services.smartctl.subprocess.run", fake_run)

    scan = scan_devices(SmartctlExecutor())

    assert scan.devices == ()
    assert scan.failed is True
