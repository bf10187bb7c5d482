"""
AWS Lambda entry points.

s3_thumbnail_generator consumes SQS batches of S3 object-creation events.
s3_get_thumbnail_urls answers GET /images behind an API Gateway proxy
integration. Components are built once per container from the environment.
"""

import json
import logging
from functools import lru_cache

from .config import ServiceConfig
from .errors import ThumbnailServiceError, TransientError
from .factory import build_generator, build_listing_service
from .generator import Generator, Outcome
from .listing import ListingService
from .sqs_client import SQSClient
from .worker import delivery_count, process_raw_message

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_config() -> ServiceConfig:
    try:
        config = ServiceConfig.from_env()
    except ValueError as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
    errors = config.validate()
    if errors:
        raise RuntimeError(f"Invalid configuration: {'; '.join(errors)}")
    logging.getLogger().setLevel(config.log_level)
    return config


@lru_cache(maxsize=1)
def get_generator() -> Generator:
    return build_generator(get_config(), logger)


@lru_cache(maxsize=1)
def get_sqs_client() -> SQSClient:
    return SQSClient(get_config(), logger)


@lru_cache(maxsize=1)
def get_listing_service() -> ListingService:
    return build_listing_service(get_config(), logger)


def s3_thumbnail_generator(event, context):
    """
    Process an SQS batch and report the messages that must be redelivered.

    Returns a partial batch response so that successful messages in the
    batch are deleted while failed ones stay on the queue.
    """
    generator = get_generator()
    config = get_config()
    failures = []

    for raw in event.get('Records', []):
        message_id = raw.get('messageId', '')
        outcome, reason = process_raw_message(generator, raw, logger)

        if outcome == Outcome.RETRY:
            failures.append(message_id)
        elif outcome == Outcome.DEAD_LETTER:
            if not config.dead_letter_queue_url:
                # Left on the queue; the redrive policy moves it after maxReceiveCount
                failures.append(message_id)
                continue
            receive_count = delivery_count(raw)
            try:
                get_sqs_client().dead_letter(raw.get('body', ''), reason, receive_count)
            except ThumbnailServiceError as e:
                logger.error(f"Could not dead-letter message {message_id}: {e}")
                failures.append(message_id)

    if failures:
        logger.warning(f"{len(failures)} message(s) returned to the queue")
    return {'batchItemFailures': [{'itemIdentifier': message_id} for message_id in failures]}


def _response(status: int, body, headers=None) -> dict:
    response_headers = {
        'Content-Type': 'application/json',
        'Access-Control-Allow-Origin': '*',
    }
    response_headers.update(headers or {})
    return {
        'statusCode': status,
        'headers': response_headers,
        'body': json.dumps(body),
    }


def s3_get_thumbnail_urls(event, context):
    """Return every known thumbnail as a JSON array of {id, thumbnailUrl}."""
    params = (event or {}).get('queryStringParameters') or {}

    try:
        page_size = int(params['limit']) if params.get('limit') else None
        page = get_listing_service().list_page(page_size=page_size, token=params.get('token'))
    except ValueError as e:
        return _response(400, {'error': str(e)})
    except TransientError as e:
        logger.error(f"Metadata table unavailable: {e}")
        return _response(503, {'error': 'Metadata table unavailable'})
    except ThumbnailServiceError as e:
        logger.error(f"Listing failed: {e}")
        return _response(500, {'error': 'Listing failed'})

    headers = {'X-Next-Token': page.next_token} if page.next_token else None
    return _response(200, [record.to_dict() for record in page.records], headers)
