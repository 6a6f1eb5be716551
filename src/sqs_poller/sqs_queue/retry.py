"""
Module: sqs_queue/retry.py
Description: Retry policy for acknowledge/extend/attribute SQS calls.

Retries throttling, server-side and connection failures with
exponential backoff before the error reaches the poller's error
channel. receive_message is not wrapped: the poll loop pauses and
retries on its own, and the call has to stay cancellable.
"""

from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError
from botocore.exceptions import ConnectionError as BotoConnectionError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from sqs_poller.utils.logger import get_logger

logger = get_logger(__name__)

TRANSIENT_ERROR_CODES = {
    "InternalError",
    "InternalFailure",
    "RequestThrottled",
    "ServiceUnavailable",
    "ThrottlingException",
    "Throttling",
    "KmsThrottled",
}


def is_transient_error(exc: BaseException) -> bool:
    """
    Decide whether an SQS failure is worth retrying.

    Args:
        exc: Exception raised by the SQS call

    Returns:
        True for throttling, 5xx and connection errors
    """
    if isinstance(exc, (BotoConnectionError, EndpointConnectionError, ReadTimeoutError)):
        return True
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return error.get("Code") in TRANSIENT_ERROR_CODES or status >= 500
    return False


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        "Retrying SQS call",
        call=getattr(retry_state.fn, "__name__", "unknown"),
        attempt=retry_state.attempt_number,
        error=str(exc),
        error_type=type(exc).__name__
    )


# Configure retry decorator for acknowledge/extend calls
sqs_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception(is_transient_error),
    before_sleep=_log_retry,
    reraise=True
)
