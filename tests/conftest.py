
# tests/conftest.py
import pytest

from tickbus.console import RecordingConsole
from tickbus.core import log
from tickbus.core import metrics


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging():
    # reads LOG_LEVEL / LOG_JSON / .env if available
    log.setup()
    yield


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield


@pytest.fixture
def console():
    return RecordingConsole()
