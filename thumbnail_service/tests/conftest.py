"""
Pytest fixtures for thumbnail_service tests.
"""

import io
import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError


class FakeObjectStore:
    """In-memory stand-in for the boto3 S3 client calls the service makes."""

    def __init__(self):
        self.objects = {}
        self.put_calls = 0

    def get_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({'Error': {'Code': 'NoSuchKey'}}, 'GetObject')
        body = MagicMock()
        body.read.return_value = self.objects[(Bucket, Key)]['Body']
        return {'Body': body}

    def head_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({'Error': {'Code': '404'}}, 'HeadObject')
        return {'ContentLength': len(self.objects[(Bucket, Key)]['Body'])}

    def put_object(self, Bucket, Key, Body, ContentType='application/octet-stream'):
        self.put_calls += 1
        self.objects[(Bucket, Key)] = {'Body': Body, 'ContentType': ContentType}
        return {}


class FakeTable:
    """In-memory stand-in for a DynamoDB Table resource keyed by 'id'."""

    def __init__(self):
        self.items = {}

    def put_item(self, Item):
        self.items[Item['id']] = dict(Item)
        return {}

    def get_item(self, Key):
        item = self.items.get(Key['id'])
        return {'Item': dict(item)} if item else {}

    def scan(self, Limit=None, ExclusiveStartKey=None):
        ids = sorted(self.items)
        if ExclusiveStartKey:
            ids = [i for i in ids if i > ExclusiveStartKey['id']]
        page = ids[:Limit] if Limit else ids
        response = {'Items': [dict(self.items[i]) for i in page]}
        if Limit and len(ids) > Limit:
            response['LastEvaluatedKey'] = {'id': page[-1]}
        return response


def make_image_bytes(size=(500, 300), fmt='JPEG', mode='RGB', color='red'):
    """Create encoded image bytes with Pillow."""
    from PIL import Image

    img = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_sqs_message(bucket='photos', key='uploads/photo1.jpg', receive_count=1,
                     message_id='msg-1', lambda_shape=False):
    """Build a raw SQS message carrying an S3 ObjectCreated notification."""
    body = json.dumps({
        'Records': [{
            'eventSource': 'aws:s3',
            'eventName': 'ObjectCreated:Put',
            's3': {'bucket': {'name': bucket}, 'object': {'key': key}},
        }]
    })
    if lambda_shape:
        return {
            'messageId': message_id,
            'receiptHandle': f'handle-{message_id}',
            'body': body,
            'attributes': {'ApproximateReceiveCount': str(receive_count)},
            'eventSource': 'aws:sqs',
        }
    return {
        'MessageId': message_id,
        'ReceiptHandle': f'handle-{message_id}',
        'Body': body,
        'Attributes': {'ApproximateReceiveCount': str(receive_count)},
    }


@pytest.fixture
def service_config():
    """Fixture providing service configuration."""
    from thumbnail_service.config import ServiceConfig

    return ServiceConfig(
        table_name='thumbnail-tbl',
        region='us-west-2',
        thumbnail_size=128,
        processing_timeout=20,
        queue_url='https://sqs.us-west-2.amazonaws.com/123456789012/thumbnail-processing-queue',
        max_receive_count=3,
    )


@pytest.fixture
def object_store():
    """Fixture providing an in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def fake_table():
    """Fixture providing an in-memory metadata table."""
    return FakeTable()


@pytest.fixture
def s3_client(service_config, object_store):
    """Fixture providing an S3Client backed by the in-memory store."""
    from thumbnail_service.s3_client import S3Client

    with patch('thumbnail_service.s3_client.boto3.client', return_value=object_store):
        yield S3Client(service_config)


@pytest.fixture
def metadata_table(service_config, fake_table):
    """Fixture providing a MetadataTable backed by the in-memory table."""
    from thumbnail_service.metadata_table import MetadataTable

    resource = MagicMock()
    resource.Table.return_value = fake_table
    with patch('thumbnail_service.metadata_table.boto3.resource', return_value=resource):
        yield MetadataTable(service_config)


@pytest.fixture
def generator(service_config, s3_client, metadata_table):
    """Fixture providing a Generator wired to the in-memory store and table."""
    from thumbnail_service.generator import Generator
    from thumbnail_service.thumbnail_generator import ThumbnailGenerator

    return Generator(
        s3_client=s3_client,
        thumbnail_generator=ThumbnailGenerator(size=service_config.thumbnail_size),
        metadata_table=metadata_table,
        processing_timeout=service_config.processing_timeout,
        max_receive_count=service_config.max_receive_count,
    )


@pytest.fixture
def sample_image_bytes():
    """Fixture providing a 500x300 JPEG."""
    return make_image_bytes((500, 300), 'JPEG')


@pytest.fixture
def sample_png_bytes():
    """Fixture providing a PNG with transparency."""
    return make_image_bytes((100, 100), 'PNG', mode='RGBA', color=(255, 0, 0, 128))


@pytest.fixture
def sample_record():
    """Fixture providing a sample image record."""
    from thumbnail_service.image_record import ImageRecord

    return ImageRecord(
        id='photo1',
        thumbnail_url='https://photos.s3.us-west-2.amazonaws.com/thumbnails/photo1_128.jpg',
        original_key='uploads/photo1.jpg',
        thumbnail_key='thumbnails/photo1_128.jpg',
        bucket='photos',
        width=128,
        height=77,
        content_type='image/jpeg',
    )


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')


@pytest.fixture
def image_bytes_factory():
    """Fixture providing the make_image_bytes helper."""
    return make_image_bytes


@pytest.fixture
def sqs_message_factory():
    """Fixture providing the make_sqs_message helper."""
    return make_sqs_message
