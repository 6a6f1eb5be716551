"""
Package: sqs_poller
Description: Long-running asyncio consumer for Amazon SQS queues.

Receives batches of messages, runs an async handler for each one,
deletes messages whose handler succeeds and backs off the visibility
timeout of messages whose handler fails.
"""

from sqs_poller.config.settings import settings
from sqs_poller.utils.logger import configure_logging

configure_logging(settings.log_level)

from sqs_poller.models import BatchResult, ReceiveOptions, ReceivedMessage  # noqa: E402
from sqs_poller.poller import (  # noqa: E402
    HandlerError,
    PollerError,
    PollerState,
    RequestAbortedError,
    SqsPoller,
)
from sqs_poller.poller.backoff import backoff  # noqa: E402
from sqs_poller.sqs_queue import SQSClient  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "BatchResult",
    "HandlerError",
    "PollerError",
    "PollerState",
    "ReceiveOptions",
    "ReceivedMessage",
    "RequestAbortedError",
    "SQSClient",
    "SqsPoller",
    "backoff",
]
