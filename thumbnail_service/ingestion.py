"""
Ingestion - Turns object-creation events into work queue messages.

In the deployed system the store notifies the queue directly; these
functions cover forwarding events from other sources and backfilling
originals that were uploaded before the notification existed.
"""

import logging
from typing import Any, Dict, List, Optional

from .queue_message import event_body, parse_event
from .s3_client import S3Client
from .sqs_client import SQSClient

logger = logging.getLogger(__name__)


def messages_from_event(event: Dict[str, Any]) -> List[str]:
    """
    Split an S3 event notification into one message body per object.

    Raises:
        MalformedMessageError: If a record does not name a bucket and key
    """
    bodies = []
    for record in event.get('Records', []):
        for bucket, key in parse_event({'Records': [record]}):
            # parse_event has checked the record's s3.object mapping
            size = record['s3']['object'].get('size')
            bodies.append(event_body(bucket, key, size))
    return bodies


def forward_event(event: Dict[str, Any], sqs_client: SQSClient) -> List[str]:
    """
    Enqueue one message per object in an S3 event notification.

    Returns:
        Message ids of the enqueued messages
    """
    message_ids = []
    for body in messages_from_event(event):
        message_ids.append(sqs_client.send(body))
    logger.info(f"Forwarded {len(message_ids)} object event(s) to the work queue")
    return message_ids


def enqueue_existing(
    s3_client: S3Client,
    sqs_client: SQSClient,
    bucket: str,
    prefix: str = '',
    limit: Optional[int] = None
) -> int:
    """
    Enqueue a synthetic creation event for every original under a prefix.

    Args:
        s3_client: Object store client used for listing
        sqs_client: Work queue client
        bucket: Bucket to scan
        prefix: Key prefix to scan
        limit: Optional cap on the number of messages (for testing)

    Returns:
        Number of messages enqueued
    """
    count = 0
    for obj in s3_client.list_originals(bucket, prefix):
        sqs_client.send(event_body(bucket, obj['key'], obj['size']))
        count += 1
        if count % 1000 == 0:
            logger.info(f"  Enqueued {count:,} originals from s3://{bucket}/{prefix}...")
        if limit and count >= limit:
            logger.info(f"  Stopping at limit ({limit})")
            break
    logger.info(f"Enqueued {count:,} originals from s3://{bucket}/{prefix}")
    return count
