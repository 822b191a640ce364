"""Canned smartctl executors and payloads shared by the tests."""
import json
import threading
from typing import Dict, List, Sequence, Tuple, Union

from hddapi.services.smartctl import ProbeOutput

Outcome = Union[ProbeOutput, Exception]


def ok(payload) -> ProbeOutput:
    return ProbeOutput(returncode=0, stdout=json.dumps(payload), stderr="")


class CannedExecutor:
    """Answers smartctl calls from a table keyed by the argument tuple."""

    def __init__(self, outcomes: Dict[Tuple[str, ...], Outcome]):
        self.outcomes = outcomes
        self.calls: List[Tuple[str, ...]] = []
        self._lock = threading.Lock()

    def run(self, args: Sequence[str]) -> ProbeOutput:
        key = tuple(args)
        with self._lock:
            self.calls.append(key)
        outcome = self.outcomes.get(key)
        if outcome is None:
            return ProbeOutput(returncode=2, stdout="", stderr="Smartctl open device failed")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def scan_output(*names: str) -> ProbeOutput:
    return ok({"devices": [{"name": name, "type": "ata"} for name in names]})


NVME_PAYLOAD = {
    "device": {"name": "/dev/nvme0", "type": "nvme", "protocol": "NVMe"},
    "model_name": "Samsung SSD 980 PRO 1TB",
    "serial_number": "S5GXNF0R123456",
    "smart_status": {"passed": True},
    "power_on_time": {"hours": 1234},
    "power_cycle_count": 321,
    "nvme_smart_health_information_log": {
        "critical_warning": 0,
        "available_spare": 100,
        "available_spare_threshold": 10,
        "percentage_used": 3,
        "data_units_read": 2000000,
        "data_units_written": 1000000,
        "host_reads": 55555,
        "host_writes": 44444,
        "controller_busy_time": 77,
        "power_cycles": 999,
        "unsafe_shutdowns": 12,
        "media_errors": 0,
        "num_err_log_entries": 4,
        "warning_temp_time": 2,
        "critical_comp_time": 1,
        "composite_temperature": 310,
    },
}

ATA_PAYLOAD = {
    "device": {"name": "/dev/sda", "type": "sat", "protocol": "ATA"},
    "model_name": "CT1000MX500SSD1",
    "serial_number": "2117E59AAAAA",
    "smart_status": {"passed": True},
    "power_on_time": {"hours": 8760},
    "power_cycle_count": 150,
    "ata_smart_attributes": {
        "table": [
            {"id": 9, "name": "Power_On_Hours", "value": 100, "raw": {"value": 8760, "string": "8760"}},
            {
                "id": 194,
                "name": "Temperature_Celsius",
                "value": 64,
                "raw": {"value": 107375181860, "string": "36 (Min/Max 0/65)"},
            },
            {"id": 202, "name": "Percent_Lifetime_Remain", "value": 95, "raw": {"value": 5, "string": "5"}},
            {"id": 246, "name": "Total_LBAs_Written", "value": 100, "raw": {"value": 1, "string": "1"}},
            {
                "id": 241,
                "name": "Total_LBAs_Written",
                "value": 100,
                "raw": {"value": 4194304000, "string": "4194304000"},
            },
        ]
    },
}
