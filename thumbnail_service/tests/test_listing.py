"""Tests for ListingService."""

from unittest.mock import MagicMock

import pytest

from thumbnail_service.errors import TableUnavailableError
from thumbnail_service.image_record import ImageRecord
from thumbnail_service.listing import ListingService, decode_token, encode_token


def make_record(image_id):
    return ImageRecord(
        id=image_id,
        thumbnail_url=f'https://photos.s3.us-west-2.amazonaws.com/thumbnails/{image_id}_128.jpg',
    )


@pytest.fixture
def listing(metadata_table):
    """Fixture providing a ListingService over the in-memory table."""
    return ListingService(metadata_table)


class TestListThumbnails:
    """Tests for list_thumbnails."""

    def test_empty_table(self, listing):
        """Test an empty table lists nothing."""
        assert listing.list_thumbnails() == []

    def test_lists_every_record_once(self, listing, metadata_table):
        """Test each recorded image appears exactly once, ordered by id."""
        for image_id in ('photo2', 'photo1', 'photo3'):
            metadata_table.put_record(make_record(image_id))
        metadata_table.put_record(make_record('photo1'))

        records = listing.list_thumbnails()

        assert [r.id for r in records] == ['photo1', 'photo2', 'photo3']

    def test_reflects_completed_writes(self, listing, metadata_table):
        """Test a record is visible as soon as its write completes."""
        assert listing.list_thumbnails() == []

        metadata_table.put_record(make_record('photo1'))

        assert [r.to_dict()['id'] for r in listing.list_thumbnails()] == ['photo1']

    def test_backend_failure_propagates(self, logger):
        """Test table failures are raised, not turned into an empty list."""
        table = MagicMock()
        table.scan_all.side_effect = TableUnavailableError('unreachable')

        with pytest.raises(TableUnavailableError):
            ListingService(table, logger).list_thumbnails()


class TestListPage:
    """Tests for list_page."""

    def test_paging_covers_table(self, listing, metadata_table):
        """Test following tokens visits every record once."""
        for image_id in ('a', 'b', 'c', 'd', 'e'):
            metadata_table.put_record(make_record(image_id))

        seen = []
        token = None
        while True:
            page = listing.list_page(page_size=2, token=token)
            seen.extend(r.id for r in page.records)
            token = page.next_token
            if not token:
                break

        assert seen == ['a', 'b', 'c', 'd', 'e']

    def test_no_page_size_reads_everything(self, listing, metadata_table):
        """Test None and 0 mean no limit."""
        for image_id in ('a', 'b', 'c'):
            metadata_table.put_record(make_record(image_id))

        assert len(listing.list_page().records) == 3
        assert listing.list_page(page_size=0).next_token is None

    def test_negative_page_size(self, listing):
        """Test a negative page size is rejected."""
        with pytest.raises(ValueError):
            listing.list_page(page_size=-1)

    def test_invalid_token(self, listing):
        """Test tokens not produced by the service are rejected."""
        with pytest.raises(ValueError):
            listing.list_page(page_size=2, token='not-a-token')


class TestTokens:
    """Tests for pagination token encoding."""

    def test_roundtrip(self):
        assert decode_token(encode_token({'id': 'photo1'})) == {'id': 'photo1'}

    def test_empty(self):
        assert encode_token(None) is None
        assert decode_token(None) is None

    def test_token_without_id(self):
        with pytest.raises(ValueError):
            decode_token(encode_token({'other': 'x'}))
