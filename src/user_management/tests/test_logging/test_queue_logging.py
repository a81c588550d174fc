import json
import logging
import queue

from user_management.core.logging.builder import (
    NonBlockingQueueHandler,
    get_queue_stats,
    setup_logging,
    stop_queue_logging,
)
from user_management.core.logging.filters import reset_request_id, set_request_id
from user_management.tests.conftest import make_test_settings


def test_queue_listener_writes_file(tmp_path):
    settings = make_test_settings(
        "sqlite+aiosqlite://",
        LOG_TO_STDOUT=False,
        LOG_DIR=tmp_path,
        LOG_FORMAT="json",
        LOG_USE_QUEUE=True,
    )
    setup_logging(settings)
    assert get_queue_stats()["queue_present"] is True

    logger = logging.getLogger("user_management.test.queue")
    token = set_request_id("test-req-1")
    try:
        for i in range(10):
            logger.info("test message %d", i, extra={"iteration": i})
    finally:
        reset_request_id(token)

    # stop() drains the queue before returning
    stop_queue_logging()
    assert get_queue_stats()["queue_present"] is False

    lines = (tmp_path / "user-management.log").read_text().splitlines()
    records = [json.loads(line) for line in lines]
    ours = [r for r in records if r["logger"] == "user_management.test.queue"]
    assert [r["iteration"] for r in ours] == list(range(10))
    assert all(r["request_id"] == "test-req-1" for r in ours)


def test_non_blocking_handler_drops_when_full():
    q: queue.Queue = queue.Queue(maxsize=1)
    handler = NonBlockingQueueHandler(q, warn_every=0)
    before = get_queue_stats()["dropped_logs"]

    for i in range(3):
        handler.emit(logging.LogRecord("t", logging.INFO, __file__, 1, "m%d", (i,), None))

    assert q.qsize() == 1
    assert get_queue_stats()["dropped_logs"] == before + 2
