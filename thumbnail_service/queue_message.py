"""
QueueMessage - One object-creation event taken off the work queue.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus, unquote_plus

from .errors import MalformedMessageError


@dataclass
class QueueMessage:
    """
    Reference to one original image, plus the delivery details needed to
    acknowledge it.

    Attributes:
        bucket: Bucket holding the original
        key: Object key of the original
        message_id: Queue message id
        receipt_handle: Handle used to delete or release the message
        receive_count: Number of times the message has been delivered
    """
    bucket: str
    key: str
    message_id: str = ''
    receipt_handle: str = ''
    receive_count: int = 1

    @classmethod
    def decode(cls, raw: Dict[str, Any]) -> List['QueueMessage']:
        """
        Decode a raw queue message into one QueueMessage per referenced object.

        Accepts both the shape returned by SQS ReceiveMessage
        ('Body', 'MessageId', ...) and the Lambda event record shape
        ('body', 'messageId', ...).

        Raises:
            MalformedMessageError: If the body does not describe any object
        """
        body = raw.get('Body', raw.get('body'))
        message_id = raw.get('MessageId', raw.get('messageId', ''))
        receipt_handle = raw.get('ReceiptHandle', raw.get('receiptHandle', ''))
        receive_count = receive_count_of(raw)

        if body is None:
            raise MalformedMessageError(f"Message {message_id} has no body")

        references = parse_event_body(body)
        return [
            cls(
                bucket=bucket,
                key=key,
                message_id=message_id,
                receipt_handle=receipt_handle,
                receive_count=receive_count,
            )
            for bucket, key in references
        ]


def parse_event_body(body: str) -> List[tuple]:
    """
    Extract (bucket, key) pairs from an S3 event notification body.

    SNS-wrapped notifications are unwrapped first. The s3:TestEvent sent
    when a notification is configured yields no references.
    """
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Message body is not JSON: {e}")
    return parse_event(payload)


def parse_event(payload: Any) -> List[tuple]:
    """Extract (bucket, key) pairs from a decoded S3 event notification."""
    if not isinstance(payload, dict):
        raise MalformedMessageError("Message body is not a JSON object")

    if 'Message' in payload and 'Records' not in payload:
        return parse_event_body(payload['Message'])

    if payload.get('Event') == 's3:TestEvent':
        return []

    records = payload.get('Records')
    if not isinstance(records, list):
        raise MalformedMessageError("Message body has no Records")

    references = []
    for record in records:
        bucket, key = _object_reference(record)
        if not bucket or not key:
            raise MalformedMessageError("Record is missing bucket or key")
        references.append((bucket, key))
    return references


def _object_reference(record: Any) -> tuple:
    s3_info = _mapping(record, 's3')
    bucket = _mapping(s3_info, 'bucket').get('name')
    key = _mapping(s3_info, 'object').get('key')
    if not isinstance(bucket, str) or not isinstance(key, str):
        return None, None
    return bucket, unquote_plus(key)


def _mapping(parent: Any, name: str) -> Dict[str, Any]:
    """Return parent[name] when both are JSON objects, else an empty dict."""
    value = parent.get(name) if isinstance(parent, dict) else None
    return value if isinstance(value, dict) else {}


def receive_count_of(raw: Dict[str, Any]) -> int:
    """
    Return the ApproximateReceiveCount of a raw message, 1 when absent.

    Raises:
        MalformedMessageError: If the attribute is not an integer
    """
    attributes = raw.get('Attributes', raw.get('attributes')) or {}
    if not isinstance(attributes, dict):
        raise MalformedMessageError("Message attributes are not a JSON object")
    value = attributes.get('ApproximateReceiveCount', 1)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedMessageError(f"ApproximateReceiveCount is not an integer: {value!r}")


def event_body(bucket: str, key: str, size: Optional[int] = None) -> str:
    """Build an S3 ObjectCreated notification body for one object."""
    s3_object = {'key': quote_plus(key, safe='/')}
    if size is not None:
        s3_object['size'] = size
    return json.dumps({
        'Records': [{
            'eventSource': 'aws:s3',
            'eventName': 'ObjectCreated:Put',
            's3': {
                'bucket': {'name': bucket},
                'object': s3_object,
            },
        }]
    })
