"""
Package: sqs_queue
Description: SQS transport for the poller.

Provides the async aioboto3 client the poller receives, acknowledges
and extends messages through, and the retry policy wrapped around it.
"""

from .sqs import SQSClient

__all__ = ["SQSClient"]
