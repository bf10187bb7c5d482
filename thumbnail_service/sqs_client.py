"""
SQSClient - Work queue and dead-letter queue operations.
"""

import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from .config import ServiceConfig, botocore_config
from .errors import (
    CONNECTION_ERRORS,
    QueueUnavailableError,
    classify_client_error,
    retry_transient,
)

BOTO_ERRORS = (ClientError,) + CONNECTION_ERRORS


class SQSClient:
    """
    Wrapper for the work queue and its dead-letter channel.
    """

    def __init__(self, config: ServiceConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize SQS client.

        Args:
            config: Service configuration (queue URLs and timeouts are used)
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._client = boto3.client(
            'sqs',
            region_name=config.region,
            config=botocore_config(config)
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    @property
    def has_dead_letter_queue(self) -> bool:
        return bool(self.config.dead_letter_queue_url)

    def receive(self, max_messages: int = 10, wait_seconds: int = 20) -> List[Dict[str, Any]]:
        """
        Long-poll the work queue.

        Returns:
            Raw SQS messages including the ApproximateReceiveCount attribute
        """
        # The socket read timeout has to outlast the long poll
        wait_seconds = min(wait_seconds, max(0, self.config.processing_timeout - 1))
        try:
            response = self._call(
                'receive_message',
                QueueUrl=self.config.queue_url,
                MaxNumberOfMessages=max_messages,
                WaitTimeSeconds=wait_seconds,
                VisibilityTimeout=self.config.visibility_timeout,
                AttributeNames=['ApproximateReceiveCount'],
            )
        except BOTO_ERRORS as e:
            raise classify_client_error(e, QueueUnavailableError) from e
        return response.get('Messages', [])

    def acknowledge(self, receipt_handle: str) -> None:
        """Delete a message so it is not delivered again."""
        try:
            self._call(
                'delete_message',
                QueueUrl=self.config.queue_url,
                ReceiptHandle=receipt_handle,
            )
        except BOTO_ERRORS as e:
            raise classify_client_error(e, QueueUnavailableError) from e

    def release(self, receipt_handle: str) -> None:
        """Make a message visible again immediately so it is redelivered."""
        try:
            self._call(
                'change_message_visibility',
                QueueUrl=self.config.queue_url,
                ReceiptHandle=receipt_handle,
                VisibilityTimeout=0,
            )
        except BOTO_ERRORS as e:
            raise classify_client_error(e, QueueUnavailableError) from e

    def send(self, body: str) -> str:
        """Enqueue a message body on the work queue, returning its message id."""
        try:
            response = self._call(
                'send_message',
                QueueUrl=self.config.queue_url,
                MessageBody=body,
            )
        except BOTO_ERRORS as e:
            raise classify_client_error(e, QueueUnavailableError) from e
        return response.get('MessageId', '')

    def dead_letter(self, body: str, reason: str, receive_count: int) -> None:
        """Copy a message body to the dead-letter queue with the failure reason attached."""
        try:
            self._call(
                'send_message',
                QueueUrl=self.config.dead_letter_queue_url,
                MessageBody=body,
                MessageAttributes={
                    'FailureReason': {'DataType': 'String', 'StringValue': reason[:1024] or 'unknown'},
                    'ReceiveCount': {'DataType': 'Number', 'StringValue': str(receive_count)},
                },
            )
        except BOTO_ERRORS as e:
            raise classify_client_error(e, QueueUnavailableError) from e

    @retry_transient
    def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        return getattr(self._client, operation)(**kwargs)
