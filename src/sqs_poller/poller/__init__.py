"""
Package: poller
Description: Poll loop, per-message processing and error types.
"""

from .errors import HandlerError, PollerError, RequestAbortedError
from .events import EventEmitter
from .poller import PollerState, SqsPoller
from .processor import MessageProcessor

__all__ = [
    "EventEmitter",
    "HandlerError",
    "MessageProcessor",
    "PollerError",
    "PollerState",
    "RequestAbortedError",
    "SqsPoller",
]
