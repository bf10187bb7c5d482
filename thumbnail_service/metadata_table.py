"""
MetadataTable - DynamoDB access for image records.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from .config import ServiceConfig, botocore_config
from .errors import (
    CONNECTION_ERRORS,
    TableUnavailableError,
    classify_client_error,
    retry_transient,
)
from .image_record import ImageRecord

BOTO_ERRORS = (ClientError,) + CONNECTION_ERRORS


class MetadataTable:
    """
    Key-value store of processed image records, keyed by image id.

    Writes are whole-item puts, so repeating one is harmless and concurrent
    writers for the same id converge on the last write.
    """

    def __init__(self, config: ServiceConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize the table wrapper.

        Args:
            config: Service configuration (table_name and region are used)
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        resource = boto3.resource(
            'dynamodb',
            region_name=config.region,
            config=botocore_config(config)
        )
        self._table = resource.Table(config.table_name)

    @property
    def table(self):
        """Return the underlying boto3 Table resource."""
        return self._table

    def put_record(self, record: ImageRecord) -> None:
        """Insert or overwrite the record for record.id."""
        try:
            self._put_item(record.to_item())
        except BOTO_ERRORS as e:
            raise classify_client_error(e, TableUnavailableError) from e
        self.logger.debug(f"Upserted record {record.id}")

    def scan_page(
        self,
        limit: Optional[int] = None,
        start_key: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[ImageRecord], Optional[Dict[str, Any]]]:
        """
        Read one page of records.

        Args:
            limit: Maximum items to evaluate, or None for DynamoDB's 1 MB page
            start_key: LastEvaluatedKey of the previous page

        Returns:
            Tuple of (records, last_evaluated_key); the key is None on the last page
        """
        kwargs = {}
        if limit:
            kwargs['Limit'] = limit
        if start_key:
            kwargs['ExclusiveStartKey'] = start_key

        try:
            response = self._scan(**kwargs)
        except BOTO_ERRORS as e:
            raise classify_client_error(e, TableUnavailableError) from e

        records = [ImageRecord.from_item(item) for item in response.get('Items', [])]
        return records, response.get('LastEvaluatedKey')

    def scan_all(self, start_key: Optional[Dict[str, Any]] = None) -> List[ImageRecord]:
        """Read every record in the table, optionally resuming after start_key."""
        records = []
        while True:
            page, start_key = self.scan_page(start_key=start_key)
            records.extend(page)
            if not start_key:
                return records

    @retry_transient
    def _put_item(self, item: Dict[str, Any]) -> None:
        self._table.put_item(Item=item)

    @retry_transient
    def _scan(self, **kwargs) -> Dict[str, Any]:
        return self._table.scan(**kwargs)
