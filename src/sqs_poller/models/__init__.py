"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains the data models used by the SQS poller:
- ReceivedMessage: Validated view of one SQS delivery
- BatchResult: Summary emitted after a processed batch
- ReceiveOptions: Arguments for the receive_message call

All models are exported here for convenient importing.
"""

from .message import BatchResult, ReceivedMessage
from .receive import ReceiveOptions

__all__ = [
    "BatchResult",
    "ReceivedMessage",
    "ReceiveOptions",
]
