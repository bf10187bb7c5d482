"""Tests for MetadataTable class."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from thumbnail_service.errors import TableUnavailableError
from thumbnail_service.metadata_table import MetadataTable


class TestMetadataTable:
    """Tests for MetadataTable against the in-memory table."""

    def test_put_and_scan_record(self, metadata_table, sample_record):
        """Test a stored record can be read back."""
        metadata_table.put_record(sample_record)

        assert metadata_table.scan_all() == [sample_record]

    def test_put_is_idempotent(self, metadata_table, fake_table, sample_record):
        """Test repeating a put leaves a single identical item."""
        metadata_table.put_record(sample_record)
        metadata_table.put_record(sample_record)

        assert list(fake_table.items) == ['photo1']
        assert fake_table.items['photo1'] == sample_record.to_item()

    def test_scan_all_empty(self, metadata_table):
        """Test scanning an empty table returns an empty list."""
        assert metadata_table.scan_all() == []

    def test_scan_page_follows_last_evaluated_key(self, metadata_table, sample_record):
        """Test paging through the table with a start key."""
        for image_id in ('a', 'b', 'c'):
            sample_record.id = image_id
            metadata_table.put_record(sample_record)

        first, last_key = metadata_table.scan_page(limit=2)
        second, final_key = metadata_table.scan_page(limit=2, start_key=last_key)

        assert [r.id for r in first] == ['a', 'b']
        assert [r.id for r in second] == ['c']
        assert final_key is None


class TestMetadataTableErrors:
    """Tests for error handling with a mocked boto3 table."""

    @pytest.fixture
    def table_with_mock(self, service_config):
        """Fixture providing MetadataTable with a mocked Table resource."""
        mock_table = MagicMock()
        resource = MagicMock()
        resource.Table.return_value = mock_table
        with patch('thumbnail_service.metadata_table.boto3.resource', return_value=resource):
            table = MetadataTable(service_config)
        table._test_mock = mock_table
        return table

    def test_uses_configured_table_name(self, service_config):
        """Test the configured table name is opened."""
        resource = MagicMock()
        with patch('thumbnail_service.metadata_table.boto3.resource', return_value=resource):
            MetadataTable(service_config)

        resource.Table.assert_called_once_with('thumbnail-tbl')

    def test_scan_unreachable(self, table_with_mock):
        """Test an unreachable table raises TableUnavailableError."""
        table_with_mock._test_mock.scan.side_effect = EndpointConnectionError(
            endpoint_url='https://dynamodb.us-west-2.amazonaws.com'
        )

        with pytest.raises(TableUnavailableError):
            table_with_mock.scan_all()

    def test_put_retries_throttling(self, table_with_mock, sample_record):
        """Test throttled writes are retried."""
        table_with_mock._test_mock.put_item.side_effect = [
            ClientError({'Error': {'Code': 'ProvisionedThroughputExceededException'}}, 'PutItem'),
            {},
        ]

        table_with_mock.put_record(sample_record)

        assert table_with_mock._test_mock.put_item.call_count == 2

    def test_numbers_from_dynamodb_are_ints(self, table_with_mock):
        """Test Decimal attributes are converted back to int."""
        table_with_mock._test_mock.scan.return_value = {
            'Items': [{'id': 'photo1', 'thumbnailUrl': 'u', 'width': Decimal('128'), 'height': Decimal('77')}]
        }

        record, = table_with_mock.scan_all()

        assert record.width == 128
        assert isinstance(record.height, int)
