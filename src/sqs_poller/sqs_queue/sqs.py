"""
Module: sqs.py
Description: SQS client used by the poller as its transport.

Wraps the SQS operations the poller consumes (receive, delete, change
visibility, read the queue's visibility timeout) plus send_message for
producers and test harnesses. Every call opens its own aioboto3 client,
so cancelling a pending receive only tears down that one request.
"""

import json
from typing import Any, Dict, List, Optional

from aioboto3 import Session
from botocore.config import Config
from botocore.exceptions import ClientError

from sqs_poller.config.settings import PollerSettings, settings as default_settings
from sqs_poller.sqs_queue.retry import sqs_retry
from sqs_poller.utils.logger import get_logger

logger = get_logger(__name__)

SQS_API_VERSION = "2012-11-05"


class SQSClient:
    """
    Async SQS client bound to a single queue.

    Attributes:
        queue_url: URL of the SQS queue
        region: AWS region of the queue
        session: aioboto3 session used to open clients
        client_config: botocore Config applied to every client
    """

    def __init__(
        self,
        queue_url: str,
        region: Optional[str] = None,
        session: Optional[Session] = None,
        settings: Optional[PollerSettings] = None
    ):
        """
        Initialize SQS client.

        Args:
            queue_url: URL of the SQS queue
            region: AWS region, defaults to settings.aws_region
            session: Optional aioboto3 session (one is created if omitted)
            settings: Optional settings overriding the global instance

        Raises:
            ValueError: If queue_url is empty or invalid
        """
        if not queue_url or not isinstance(queue_url, str):
            raise ValueError("queue_url must be a non-empty string")

        settings = settings or default_settings
        self.queue_url = queue_url
        self.region = region or settings.aws_region
        self.session = session or Session()
        self.client_config = Config(
            read_timeout=settings.http_timeout_seconds,
            retries={"max_attempts": settings.max_retries}
        )

        logger.info(
            "SQS client initialized",
            queue_url=queue_url,
            region=self.region
        )

    def _client(self):
        return self.session.client(
            "sqs",
            region_name=self.region,
            api_version=SQS_API_VERSION,
            config=self.client_config
        )

    async def receive_messages(self, request: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Receive a batch of messages.

        Cancelling the awaiting task aborts the underlying request.

        Args:
            request: receive_message keyword arguments (including QueueUrl)

        Returns:
            The received messages, possibly empty
        """
        async with self._client() as sqs:
            response = await sqs.receive_message(**request)

        messages = response.get("Messages", [])
        logger.debug(
            "Messages received from SQS",
            count=len(messages),
            queue_url=self.queue_url
        )
        return messages

    @sqs_retry
    async def delete_message(self, receipt_handle: str) -> None:
        """
        Delete (acknowledge) a delivered message.

        Args:
            receipt_handle: Receipt handle of the delivery

        Raises:
            ClientError: If SQS operation fails
        """
        try:
            async with self._client() as sqs:
                await sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)

            logger.debug("Message deleted from SQS", queue_url=self.queue_url)

        except ClientError as e:
            logger.error(
                "Failed to delete message from SQS",
                queue_url=self.queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    @sqs_retry
    async def change_message_visibility(self, receipt_handle: str, visibility_timeout: int) -> None:
        """
        Change the visibility timeout of a delivered message.

        Args:
            receipt_handle: Receipt handle of the delivery
            visibility_timeout: New timeout in seconds, counted from now

        Raises:
            ClientError: If SQS operation fails
        """
        try:
            async with self._client() as sqs:
                await sqs.change_message_visibility(
                    QueueUrl=self.queue_url,
                    ReceiptHandle=receipt_handle,
                    VisibilityTimeout=visibility_timeout
                )

            logger.debug(
                "Message visibility changed",
                queue_url=self.queue_url,
                visibility_timeout=visibility_timeout
            )

        except ClientError as e:
            logger.error(
                "Failed to change message visibility",
                queue_url=self.queue_url,
                visibility_timeout=visibility_timeout,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    @sqs_retry
    async def get_visibility_timeout(self) -> int:
        """
        Read the queue's configured VisibilityTimeout attribute.

        Returns:
            Visibility timeout in seconds

        Raises:
            ClientError: If SQS operation fails
            ValueError: If the attribute is missing or not numeric
        """
        async with self._client() as sqs:
            response = await sqs.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=["VisibilityTimeout"]
            )

        visibility_timeout = (response.get("Attributes") or {}).get("VisibilityTimeout")
        if visibility_timeout is None:
            raise ValueError("VisibilityTimeout not defined")

        return int(visibility_timeout)

    async def send_message(self, payload: Any, delay_seconds: int = 0) -> str:
        """
        Send a JSON encoded message to the queue.

        Args:
            payload: JSON serializable message body
            delay_seconds: Optional delay before message becomes available

        Returns:
            Message ID from SQS

        Raises:
            ClientError: If SQS operation fails
        """
        try:
            async with self._client() as sqs:
                response = await sqs.send_message(
                    QueueUrl=self.queue_url,
                    MessageBody=json.dumps(payload),
                    DelaySeconds=delay_seconds
                )

            message_id = response['MessageId']
            logger.info(
                "Message sent to SQS",
                message_id=message_id,
                queue_url=self.queue_url
            )
            return message_id

        except ClientError as e:
            logger.error(
                "Failed to send message to SQS",
                queue_url=self.queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise
