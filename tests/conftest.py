import copy

import pytest

from fakes import ATA_PAYLOAD, NVME_PAYLOAD
from hddapi.config import get_settings
from hddapi.services import drive_monitor


@pytest.fixture
def nvme_payload():
    return copy.deepcopy(NVME_PAYLOAD)


@pytest.fixture
def ata_payload():
    return copy.deepcopy(ATA_PAYLOAD)


@pytest.fixture(autouse=True)
def _fresh_singletons():
    get_settings.cache_clear()
    drive_monitor.get_poller.cache_clear()
    yield
    get_settings.cache_clear()
    drive_monitor.get_poller.cache_clear()
