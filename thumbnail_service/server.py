"""
HTTP API for the listing service, served with bottle.
"""

import json
import logging
from functools import wraps
from typing import Optional

from bottle import Bottle, HTTPResponse, request, response

from .errors import ThumbnailServiceError, TransientError
from .listing import ListingService


def allow_cross_origin(func):
    """Decorate a view function to allow cross domain access."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
        except HTTPResponse as r:
            r.set_header('Access-Control-Allow-Origin', '*')
            raise
        (result if isinstance(result, HTTPResponse) else response) \
            .set_header('Access-Control-Allow-Origin', '*')
        return result
    return wrapper


def json_error(status: int, message: str) -> HTTPResponse:
    return HTTPResponse(
        status=status,
        body=json.dumps({'error': message}),
        headers={'Content-Type': 'application/json'},
    )


def parse_limit(value: Optional[str]) -> Optional[int]:
    """Parse the optional limit query parameter."""
    if value is None or value == '':
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"limit must be an integer, got {value!r}")


def create_app(listing_service: ListingService, logger: Optional[logging.Logger] = None) -> Bottle:
    """
    Build the bottle application.

    Args:
        listing_service: Service answering the listing queries
        logger: Optional logger instance
    """
    app = Bottle()
    log = logger or logging.getLogger(__name__)

    @app.route('/images', method='GET')
    @allow_cross_origin
    def list_images():
        try:
            limit = parse_limit(request.query.get('limit'))
            page = listing_service.list_page(page_size=limit, token=request.query.get('token'))
        except ValueError as e:
            raise json_error(400, str(e))
        except TransientError as e:
            log.error(f"Metadata table unavailable: {e}")
            raise json_error(503, 'Metadata table unavailable')
        except ThumbnailServiceError as e:
            log.error(f"Listing failed: {e}")
            raise json_error(500, 'Listing failed')

        if page.next_token:
            response.set_header('X-Next-Token', page.next_token)
        response.content_type = 'application/json'
        return json.dumps([record.to_dict() for record in page.records])

    @app.route('/health', method='GET')
    def health():
        response.content_type = 'application/json'
        return json.dumps({'status': 'ok'})

    return app
