"""
ListingService - Read-only query path over the metadata table.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .image_record import ImageRecord
from .metadata_table import MetadataTable


@dataclass
class ListingPage:
    """One page of records and the token for the next page, if any."""
    records: List[ImageRecord] = field(default_factory=list)
    next_token: Optional[str] = None


def encode_token(last_key: Optional[dict]) -> Optional[str]:
    """Encode a LastEvaluatedKey as an opaque, URL-safe pagination token."""
    if not last_key:
        return None
    raw = json.dumps(last_key, sort_keys=True, default=str).encode('utf-8')
    return base64.urlsafe_b64encode(raw).decode('ascii')


def decode_token(token: Optional[str]) -> Optional[dict]:
    """
    Decode a pagination token.

    Raises:
        ValueError: If the token was not produced by encode_token
    """
    if not token:
        return None
    try:
        raw = base64.urlsafe_b64decode(token.encode('ascii'))
        key = json.loads(raw.decode('utf-8'))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise ValueError(f"Invalid pagination token: {e}")
    if not isinstance(key, dict) or 'id' not in key:
        raise ValueError("Invalid pagination token")
    return key


class ListingService:
    """
    Returns the known thumbnails and their metadata.

    Backend failures propagate to the caller unchanged; an empty table is
    an empty result, never an error.
    """

    def __init__(self, metadata_table: MetadataTable, logger: Optional[logging.Logger] = None):
        self.table = metadata_table
        self.logger = logger or logging.getLogger(__name__)

    def list_thumbnails(self) -> List[ImageRecord]:
        """Return every record, ordered by id."""
        records = self.table.scan_all()
        self.logger.debug(f"Listed {len(records)} thumbnails")
        return sorted(records, key=lambda record: record.id)

    def list_page(self, page_size: Optional[int] = None, token: Optional[str] = None) -> ListingPage:
        """
        Return one page of records.

        Args:
            page_size: Maximum records per page; None or 0 reads to the end
            token: Token returned with the previous page

        Raises:
            ValueError: If page_size is negative or the token is invalid
        """
        if page_size is not None and page_size < 0:
            raise ValueError(f"page_size must be non-negative, got {page_size}")
        start_key = decode_token(token)

        if not page_size:
            records = self.table.scan_all(start_key=start_key)
            return ListingPage(records=sorted(records, key=lambda record: record.id))

        records, last_key = self.table.scan_page(limit=page_size, start_key=start_key)
        return ListingPage(
            records=sorted(records, key=lambda record: record.id),
            next_token=encode_token(last_key),
        )
