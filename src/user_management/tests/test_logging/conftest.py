import pytest

from user_management.core.logging.builder import setup_logging, stop_queue_logging
from user_management.tests.conftest import make_test_settings


@pytest.fixture(autouse=True)
def restore_logging():
    """Tests here reconfigure global logging; put the suite's config back afterwards."""
    yield
    stop_queue_logging()
    setup_logging(make_test_settings("sqlite+aiosqlite://"))
