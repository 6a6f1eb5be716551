"""
Module: conftest.py
Description: Shared pytest fixtures for SQS poller tests.

Provides an in-memory SQS transport, test settings and poller
instances. The fake transport redelivers every message that was not
deleted on the next receive call, incrementing its receive count the
way SQS does once a visibility timeout expires.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from sqs_poller.config.settings import PollerSettings
from sqs_poller.poller.poller import SqsPoller

QUEUE_URL = "https://sqs.eu-west-1.amazonaws.com/123456789012/sqs-poller-test-queue"


class FakeSQS:
    """In-memory stand-in for SQSClient."""

    def __init__(self, visibility_timeout: int = 30, long_poll_seconds: float = 0.02):
        self.visibility_timeout = visibility_timeout
        self.long_poll_seconds = long_poll_seconds
        self.attribute_calls = 0
        self.receive_requests: List[Dict[str, Any]] = []
        self.deleted: List[str] = []
        self.visibility_changes: List[Tuple[str, int]] = []
        self.attribute_error: Optional[Exception] = None
        self.receive_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.change_error: Optional[Exception] = None
        self.extra_messages: List[Dict[str, Any]] = []
        self._queue: List[Dict[str, Any]] = []
        self._in_flight: Dict[str, Dict[str, Any]] = {}
        self._next_id = 0

    def send(self, body: str) -> str:
        self._next_id += 1
        message_id = f"msg-{self._next_id}"
        self._queue.append({"MessageId": message_id, "Body": body, "count": 0})
        return message_id

    async def get_visibility_timeout(self) -> int:
        self.attribute_calls += 1
        if self.attribute_error is not None:
            raise self.attribute_error
        return self.visibility_timeout

    async def receive_messages(self, request: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.receive_requests.append(request)
        if self.receive_error is not None:
            raise self.receive_error

        # Anything not deleted since the last receive becomes visible again
        self._queue.extend(self._in_flight.values())
        self._in_flight.clear()

        if not self._queue and not self.extra_messages:
            await asyncio.sleep(self.long_poll_seconds)
            return []

        batch_size = request.get("MaxNumberOfMessages", 10)
        batch, self._queue = self._queue[:batch_size], self._queue[batch_size:]
        messages = []
        for record in batch:
            record["count"] += 1
            receipt_handle = f"{record['MessageId']}-receipt-{record['count']}"
            self._in_flight[receipt_handle] = record
            messages.append({
                "MessageId": record["MessageId"],
                "ReceiptHandle": receipt_handle,
                "Body": record["Body"],
                "Attributes": {"ApproximateReceiveCount": str(record["count"])},
            })

        messages.extend(self.extra_messages)
        self.extra_messages = []
        return messages

    async def delete_message(self, receipt_handle: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(receipt_handle)
        self._in_flight.pop(receipt_handle, None)

    async def change_message_visibility(self, receipt_handle: str, visibility_timeout: int) -> None:
        self.visibility_changes.append((receipt_handle, visibility_timeout))
        if self.change_error is not None:
            raise self.change_error


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met within timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def queue_url():
    """Provide the URL of the test queue."""
    return QUEUE_URL


@pytest.fixture
def wait_until():
    """Provide a helper that polls a predicate until it holds or times out."""
    return _wait_until


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Shortens the watchdog and error pause so tests run quickly and
    disables .env loading for predictable tests.
    """
    return PollerSettings(
        _env_file=None,
        log_level="DEBUG",
        handler_timeout_ms=2000,
        poll_error_delay_seconds=0.01
    )


@pytest.fixture
def fake_sqs():
    """Provide an empty in-memory SQS transport."""
    return FakeSQS()


@pytest.fixture
def handler():
    """Provide a handler that always succeeds."""
    return AsyncMock(return_value=None)


@pytest_asyncio.fixture
async def poller(fake_sqs, handler, test_settings):
    """
    Provide an SqsPoller wired to the fake transport.

    The poller is stopped and its poll loop drained on teardown.
    """
    sqs_poller = SqsPoller(QUEUE_URL, handler, sqs=fake_sqs, settings=test_settings)

    yield sqs_poller

    await sqs_poller.stop()
    if sqs_poller._poll_task is not None:
        await asyncio.wait([sqs_poller._poll_task], timeout=2.0)
    for task in list(sqs_poller._detached):
        task.cancel()


@pytest.fixture
def errors(poller):
    """Collect every error the poller reports."""
    collected: List[BaseException] = []
    poller.on("error", collected.append)
    return collected
