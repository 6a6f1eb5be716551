"""
Module: poller.py
Description: Long-running SQS poll loop.

SqsPoller receives batches from an SQS queue, runs the handler for every
message of a batch concurrently, waits for the batch under a watchdog
and repeats until stopped. Handler failures push the message's
visibility timeout out along a backoff schedule keyed to its receive
count.

Key Components:
- SqsPoller: start()/stop()/simulate()/join() and the poll cycle
- PollerState: lifecycle states of a poller
- Error channel: every failure is reported as an "error" event; with no
  "error" listener the failure stops the poller and is raised from join()

Dependencies: asyncio, pydantic, structlog
"""

import asyncio
import json
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import TypeAdapter

from sqs_poller.config.settings import MAX_VISIBILITY_TIMEOUT_SECONDS, PollerSettings
from sqs_poller.config.settings import settings as default_settings
from sqs_poller.models.message import BatchResult
from sqs_poller.models.receive import ReceiveOptions
from sqs_poller.poller.errors import PollerError, RequestAbortedError
from sqs_poller.poller.events import (
    EVENT_ABORTED,
    EVENT_BATCH_COMPLETE,
    EVENT_ERROR,
    EVENT_MESSAGE,
    EventEmitter,
)
from sqs_poller.poller.processor import MessageHandler, MessageProcessor, Transport
from sqs_poller.sqs_queue.sqs import SQSClient
from sqs_poller.utils.logger import get_logger

logger = get_logger(__name__)

_JSON = TypeAdapter(Any)


class PollerState(str, Enum):
    """Lifecycle states of a poller."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class SqsPoller(EventEmitter):
    """
    Poll an SQS queue and dispatch messages to an async handler.

    Events:
        message: raw message dict, before its handler runs
        batch-complete: BatchResult once every handler of a batch settled
        aborted: RequestAbortedError when stop() cancelled a receive call
        error: any reported failure (HandlerError, PollerError, ClientError, ...)

    Register an "error" listener or await join(). Without a listener the
    first reported failure stops the poller and is only surfaced by join()
    and a critical log line.

    Attributes:
        queue_url: URL of the polled queue
        handler: Async callable invoked with each parsed message body
        sqs: Transport used for every SQS call
        receive_options: Arguments sent with every receive call
        handler_timeout_ms: Watchdog period for one batch, in milliseconds
        backoff_multipliers: Per-receive visibility timeout multipliers
        visibility_timeout: Queue visibility timeout read at start()

    Example:
        >>> poller = SqsPoller(queue_url, handle_order)
        >>> poller.on("error", lambda err: logger.warning("Poller error", error=str(err)))
        >>> await poller.start()
        >>> ...
        >>> await poller.stop()
    """

    def __init__(
        self,
        queue_url: str,
        handler: MessageHandler,
        receive_options: Union[ReceiveOptions, Mapping[str, Any], None] = None,
        region: Optional[str] = None,
        *,
        sqs: Optional[Transport] = None,
        settings: Optional[PollerSettings] = None,
        backoff_multipliers: Optional[Sequence[float]] = None,
        max_backoff_seconds: Optional[int] = None
    ):
        """
        Initialize the poller.

        Args:
            queue_url: URL of the SQS queue
            handler: Async callable receiving each parsed message body
            receive_options: Overrides for the receive call; caller values win
            region: AWS region, defaults to settings.aws_region
            sqs: Optional transport (an SQSClient is built if omitted)
            settings: Optional settings overriding the global instance
            backoff_multipliers: Optional backoff schedule
            max_backoff_seconds: Optional visibility timeout ceiling

        Raises:
            ValueError: If queue_url is empty or handler is not callable
            PollerError: If the backoff schedule or ceiling is invalid
        """
        super().__init__()
        if not queue_url or not isinstance(queue_url, str):
            raise ValueError("queue_url must be a non-empty string")
        if not callable(handler):
            raise ValueError("handler must be callable")

        settings = settings or default_settings
        self.queue_url = queue_url
        self.handler = handler
        self.sqs = sqs or SQSClient(queue_url, region=region, settings=settings)
        self.receive_options = ReceiveOptions.from_overrides(
            receive_options,
            max_number_of_messages=settings.max_number_of_messages,
            wait_time_seconds=settings.wait_time_seconds
        )
        self.handler_timeout_ms = settings.handler_timeout_ms  # Mostly exposed for testing
        self.poll_error_delay_seconds = settings.poll_error_delay_seconds
        self.backoff_multipliers = _validate_multipliers(
            settings.backoff_multipliers if backoff_multipliers is None else backoff_multipliers
        )
        self.max_backoff_seconds = (
            settings.max_backoff_seconds if max_backoff_seconds is None else max_backoff_seconds
        )
        self.visibility_timeout = 0

        self.state = PollerState.STOPPED
        self._processor = MessageProcessor(self, self.sqs, handler)
        self._current_request: Optional[asyncio.Future] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._closed: Optional[asyncio.Future] = None
        self._generation = 0
        self._detached: set = set()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def max_backoff_seconds(self) -> int:
        return self._max_backoff_seconds

    @max_backoff_seconds.setter
    def max_backoff_seconds(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            valid = False
        else:
            valid = 0 < value <= MAX_VISIBILITY_TIMEOUT_SECONDS
        if not valid:
            raise PollerError(
                f"max_backoff_seconds must be an integer greater than 0 and at most "
                f"{MAX_VISIBILITY_TIMEOUT_SECONDS}, got {value!r}"
            )
        self._max_backoff_seconds = value

    @property
    def running(self) -> bool:
        return self.state in (PollerState.STARTING, PollerState.RUNNING)

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Read the queue's visibility timeout and start polling.

        Starting a running poller reports a PollerError and leaves the
        running loop untouched. A failure to read the visibility timeout
        is reported and returns the poller to the stopped state.
        """
        if self.running:
            self._throw(PollerError("Poller is already started, ignoring"))
            return

        loop = asyncio.get_running_loop()
        self.state = PollerState.STARTING
        self._generation += 1
        generation = self._generation
        self._closed = closed = loop.create_future()
        logger.info("Starting poller", queue_url=self.queue_url)

        try:
            self.visibility_timeout = await self.sqs.get_visibility_timeout()
        except Exception as e:
            self._throw(e)
            if generation == self._generation:
                self.state = PollerState.STOPPED
            loop.call_soon(_resolve, closed)
            return

        if generation != self._generation or self.state is not PollerState.STARTING:
            # stop() was called while the attribute read was pending
            loop.call_soon(_resolve, closed)
            return

        self.state = PollerState.RUNNING
        self._poll_task = asyncio.ensure_future(self._run_poll(generation, closed))
        logger.info(
            "Poller started",
            queue_url=self.queue_url,
            visibility_timeout=self.visibility_timeout,
            max_backoff_seconds=self.max_backoff_seconds
        )

    async def stop(self) -> None:
        """
        Stop polling and cancel the in-flight receive call, if any.

        Handlers already running are not cancelled; their delete and
        visibility calls still happen after stop() returns. Stopping a
        stopped poller is a no-op.
        """
        if not self.running:
            return

        self.state = PollerState.STOPPING
        if self._current_request is not None:
            self._current_request.cancel()
        self._current_request = None
        self.state = PollerState.STOPPED
        logger.info("Poller stopped", queue_url=self.queue_url)

    async def simulate(self, message: Any) -> None:
        """
        Invoke the handler directly, bypassing SQS.

        The message is round-tripped through JSON to mimic a real delivery
        (datetimes become ISO 8601 strings). Handler failures propagate to
        the caller instead of the error channel.

        Args:
            message: JSON serializable message body

        Raises:
            PollerError: If the poller isn't started
        """
        if not self.running:
            raise PollerError("Poller wasn't started, so no handler would have been invoked")

        await self.handler(json.loads(_JSON.dump_json(message)))

    async def join(self) -> None:
        """
        Wait until the current run's poll loop has exited.

        Raises:
            Exception: The first failure reported while no "error"
                listener was registered
        """
        if self._closed is not None:
            await asyncio.shield(self._closed)

    # ------------------------------------------------------------------
    # Channels used by MessageProcessor
    # ------------------------------------------------------------------

    def report_error(self, err: BaseException) -> None:
        self._throw(err)

    def notify_message(self, raw_message: Dict[str, Any]) -> None:
        asyncio.get_running_loop().call_soon(self.emit, EVENT_MESSAGE, raw_message)

    # ------------------------------------------------------------------
    # Error channel
    # ------------------------------------------------------------------

    def _throw(self, err: BaseException) -> None:
        asyncio.get_running_loop().call_soon(self._dispatch_error, err)

    def _dispatch_error(self, err: BaseException) -> None:
        if self.listener_count(EVENT_ERROR) > 0:
            logger.warning(
                "Poller error reported",
                queue_url=self.queue_url,
                error=str(err),
                error_type=type(err).__name__
            )
            self.emit(EVENT_ERROR, err)
            return

        logger.critical(
            "Unhandled poller error, stopping",
            queue_url=self.queue_url,
            error=str(err),
            error_type=type(err).__name__
        )
        self.state = PollerState.STOPPED
        if self._current_request is not None:
            self._current_request.cancel()
            self._current_request = None

        if self._closed is not None and not self._closed.done():
            self._closed.set_exception(err)
        else:
            asyncio.get_running_loop().call_exception_handler({
                "message": "Unhandled SqsPoller error",
                "exception": err,
            })

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return self.running and generation == self._generation

    async def _run_poll(self, generation: int, closed: asyncio.Future) -> None:
        try:
            while self._is_current(generation):
                await self._poll_once()
        except Exception as e:
            self._throw(e)
        finally:
            asyncio.get_running_loop().call_soon(_resolve, closed)

    async def _poll_once(self) -> None:
        try:
            messages = await self._receive()
            await self._process_batch(messages)
        except RequestAbortedError as e:
            logger.info("Receive request aborted", queue_url=self.queue_url)
            self.emit(EVENT_ABORTED, e)
        except Exception as e:
            self._throw(e)
            await asyncio.sleep(self.poll_error_delay_seconds)

    async def _receive(self) -> List[Dict[str, Any]]:
        request = asyncio.ensure_future(
            self.sqs.receive_messages(self.receive_options.to_request(self.queue_url))
        )
        self._current_request = request
        try:
            await asyncio.wait([request])
        except asyncio.CancelledError:
            request.cancel()
            raise
        finally:
            if self._current_request is request:
                self._current_request = None

        if request.cancelled():
            raise RequestAbortedError("Receive request was aborted by stop()")
        return request.result() or []

    async def _process_batch(self, messages: List[Dict[str, Any]]) -> None:
        tasks = [asyncio.ensure_future(self._processor.process(message)) for message in messages]

        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=self.handler_timeout_ms / 1000)
            if pending:
                for task in tasks:
                    self._detach(task)
                self._throw(PollerError(
                    "Poller batch didn't finish within the handler timeout period, this means "
                    "you have handler code that never resolves/rejects and needs to be fixed"
                ))
                return

        results = [task.result() for task in tasks]
        batch = BatchResult(received=len(messages), successful=sum(1 for result in results if result))
        logger.debug(
            "Batch complete",
            queue_url=self.queue_url,
            received=batch.received,
            successful=batch.successful
        )
        asyncio.get_running_loop().call_soon(self.emit, EVENT_BATCH_COMPLETE, batch)

    def _detach(self, task: asyncio.Future) -> None:
        self._detached.add(task)
        task.add_done_callback(self._on_detached_done)

    def _on_detached_done(self, task: asyncio.Future) -> None:
        self._detached.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._throw(task.exception())


def _resolve(closed: asyncio.Future) -> None:
    if not closed.done():
        closed.set_result(None)


def _validate_multipliers(multipliers: Sequence[float]) -> List[float]:
    multipliers = list(multipliers)
    if not multipliers or any(
        not isinstance(multiplier, (int, float)) or multiplier <= 0 for multiplier in multipliers
    ):
        raise PollerError("backoff_multipliers must be a non-empty sequence of positive numbers")
    return multipliers
