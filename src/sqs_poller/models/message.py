"""
Module: message.py
Description: Message and batch models for the SQS poller.

Defines the validated view of a received SQS message and the summary
emitted once a batch has been processed.

Key Components:
- ReceivedMessage: receipt handle, receive count and body of a delivery
- ReceivedMessage.from_raw(): tolerant parser that drops malformed messages
- BatchResult: received/successful counts for a processed batch

Dependencies: pydantic, typing
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

RECEIVE_COUNT_ATTRIBUTE = "ApproximateReceiveCount"


class ReceivedMessage(BaseModel):
    """
    A single delivery of an SQS message.

    Attributes:
        receipt_handle: Opaque handle needed to delete or extend the delivery
        receive_count: Number of times the message has been received
        body: Raw (JSON encoded) message body
        raw: The message dict exactly as returned by receive_message
    """

    model_config = ConfigDict(frozen=True)

    receipt_handle: str = Field(..., min_length=1, description="Delivery receipt handle")
    receive_count: int = Field(..., ge=0, description="ApproximateReceiveCount of the delivery")
    body: str = Field(..., min_length=1, description="JSON encoded message body")
    raw: Dict[str, Any] = Field(default_factory=dict, description="Untouched transport message")

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> Optional["ReceivedMessage"]:
        """
        Build a ReceivedMessage from a receive_message entry.

        Returns None when the receipt handle, a numeric receive count or
        the body is missing. Such messages are skipped by the poller.

        Args:
            raw: One entry of the "Messages" list

        Returns:
            ReceivedMessage, or None for a malformed message
        """
        if not isinstance(raw, dict):
            return None

        attributes = raw.get("Attributes") or {}
        receive_count = attributes.get(RECEIVE_COUNT_ATTRIBUTE)
        if not raw.get("ReceiptHandle") or not raw.get("Body") or not receive_count:
            return None

        try:
            return cls(
                receipt_handle=raw["ReceiptHandle"],
                receive_count=int(receive_count),
                body=raw["Body"],
                raw=raw
            )
        except (ValueError, ValidationError):
            return None


class BatchResult(BaseModel):
    """Outcome of one processed batch, emitted as "batch-complete"."""

    received: int = Field(..., ge=0, description="Messages returned by the receive call")
    successful: int = Field(..., ge=0, description="Messages whose handler succeeded")
