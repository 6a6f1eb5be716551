"""
Module: errors.py
Description: Errors reported by the SQS poller.

HandlerError wraps failures of the user supplied handler, PollerError
signals misuse of the poller or a batch that never finished, and
RequestAbortedError marks a receive call cancelled by stop().
"""

from typing import Any, Optional


class HandlerError(Exception):
    """
    A message handler failed.

    Attributes:
        cause: The exception raised by the handler, if any
        payload: Parsed message body the handler was called with, if any
    """

    def __init__(self, msg: str, cause: Optional[BaseException] = None, payload: Any = None):
        super().__init__(msg)
        self.cause = cause
        self.payload = payload
        if cause is not None:
            self.__cause__ = cause
            self.__traceback__ = cause.__traceback__


class PollerError(Exception):
    """The poller was misused or a batch overran the handler timeout."""


class RequestAbortedError(Exception):
    """The in-flight receive call was cancelled by stop()."""
