"""
Module: processor.py
Description: Per-message processing for the SQS poller.

Invokes the handler for one delivery, deletes the message when the
handler succeeds and pushes its visibility timeout out along the
backoff schedule when it fails. Failures never raise out of process();
they are handed to the poller's error channel.
"""

import inspect
import json
from typing import Any, Awaitable, Callable, Dict, Protocol, Sequence

from sqs_poller.models.message import ReceivedMessage
from sqs_poller.poller.backoff import backoff
from sqs_poller.poller.errors import HandlerError
from sqs_poller.utils.logger import get_logger

logger = get_logger(__name__)

MessageHandler = Callable[[Any], Awaitable[None]]


class Transport(Protocol):
    """SQS operations consumed by the poller."""

    async def receive_messages(self, request: Dict[str, Any]) -> list: ...

    async def delete_message(self, receipt_handle: str) -> None: ...

    async def change_message_visibility(self, receipt_handle: str, visibility_timeout: int) -> None: ...

    async def get_visibility_timeout(self) -> int: ...


class PollerContext(Protocol):
    """Poller state and channels the processor reads and reports to."""

    visibility_timeout: int
    max_backoff_seconds: int
    backoff_multipliers: Sequence[float]

    def report_error(self, err: BaseException) -> None: ...

    def notify_message(self, raw_message: Dict[str, Any]) -> None: ...


class MessageProcessor:
    """
    Processes single deliveries on behalf of a poller.

    One processor is shared by every message of a poller; process() keeps
    no state between calls and is safe to run concurrently.
    """

    def __init__(self, poller: PollerContext, sqs: Transport, handler: MessageHandler):
        self.poller = poller
        self.sqs = sqs
        self.handler = handler

    async def process(self, raw_message: Dict[str, Any]) -> bool:
        """
        Run the handler for one delivery and acknowledge or back off.

        Args:
            raw_message: One entry of the receive_message "Messages" list

        Returns:
            True if the handler succeeded, False otherwise (including
            malformed messages, which are skipped silently)
        """
        message = ReceivedMessage.from_raw(raw_message)
        if message is None:
            logger.debug("Skipping malformed message", message_id=_message_id(raw_message))
            return False

        self.poller.notify_message(raw_message)

        try:
            body = json.loads(message.body)
        except ValueError as e:
            self.poller.report_error(HandlerError(f"Message body is not valid JSON: {e}", e))
            return False

        try:
            result = self.handler(body)
        except Exception as e:
            # A handler raising before returning its awaitable counts as a rejection
            return await self._handle_failure(message, body, e)

        if not inspect.isawaitable(result):
            self.poller.report_error(HandlerError("Handler function doesn't return an awaitable"))
            return False

        try:
            await result
        except Exception as e:
            return await self._handle_failure(message, body, e)

        await self._delete_message(message)
        return True

    async def _handle_failure(self, message: ReceivedMessage, body: Any, err: Exception) -> bool:
        self.poller.report_error(HandlerError(str(err), err, body))
        await self._set_visibility(message)
        return False

    async def _delete_message(self, message: ReceivedMessage) -> None:
        try:
            await self.sqs.delete_message(message.receipt_handle)
        except Exception as e:
            self.poller.report_error(e)

    async def _set_visibility(self, message: ReceivedMessage) -> None:
        base = self.poller.visibility_timeout
        visibility_timeout = int(backoff(
            base,
            message.receive_count,
            self.poller.backoff_multipliers,
            self.poller.max_backoff_seconds
        ))

        if visibility_timeout == base:
            return

        logger.info(
            "Extending message visibility",
            message_id=_message_id(message.raw),
            receive_count=message.receive_count,
            visibility_timeout=visibility_timeout
        )

        try:
            await self.sqs.change_message_visibility(message.receipt_handle, visibility_timeout)
        except Exception as e:
            self.poller.report_error(e)


def _message_id(raw_message: Any) -> Any:
    return raw_message.get("MessageId") if isinstance(raw_message, dict) else None
