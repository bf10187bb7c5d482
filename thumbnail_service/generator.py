"""
Generator - Turns one queue message into a stored thumbnail and a metadata record.
"""

import enum
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import (
    ObjectMissingError,
    PermanentError,
    ProcessingTimeoutError,
    TransientError,
)
from .image_record import ImageRecord, image_id_from_key
from .metadata_table import MetadataTable
from .processing_stats import ProcessingStats
from .queue_message import QueueMessage
from .s3_client import S3Client
from .thumbnail_generator import ThumbnailGenerator


class Outcome(enum.Enum):
    """Acknowledgement decision for a processed message."""
    SUCCEEDED = 'succeeded'
    SKIPPED = 'skipped'
    RETRY = 'retry'
    DEAD_LETTER = 'dead_letter'

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    Outcome.SUCCEEDED: 0,
    Outcome.SKIPPED: 0,
    Outcome.RETRY: 1,
    Outcome.DEAD_LETTER: 2,
}


@dataclass
class ProcessingResult:
    """
    Result of processing one message.

    Attributes:
        message: The processed message
        outcome: Acknowledgement decision
        record: The upserted record when the outcome is SUCCEEDED
        reason: Why the message was skipped, retried or dead-lettered
    """
    message: QueueMessage
    outcome: Outcome
    record: Optional[ImageRecord] = None
    reason: str = ''

    @property
    def acknowledge(self) -> bool:
        """True when the message should be deleted from the queue."""
        return self.outcome in (Outcome.SUCCEEDED, Outcome.SKIPPED)


class Generator:
    """
    Generates a thumbnail for each queue message.

    process() never raises: every failure is classified into an Outcome
    before the caller decides whether to acknowledge the message.
    """

    def __init__(
        self,
        s3_client: S3Client,
        thumbnail_generator: ThumbnailGenerator,
        metadata_table: MetadataTable,
        processing_timeout: float = 20,
        max_receive_count: int = 3,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize generator.

        Args:
            s3_client: Object store client
            thumbnail_generator: Thumbnail generator instance
            metadata_table: Metadata table for records
            processing_timeout: Seconds allowed for one message
            max_receive_count: Deliveries after which transient failures are dead-lettered
            clock: Monotonic clock, replaceable in tests
            logger: Optional logger instance
        """
        self.s3 = s3_client
        self.thumb_gen = thumbnail_generator
        self.table = metadata_table
        self.processing_timeout = processing_timeout
        self.max_receive_count = max_receive_count
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.stats = ProcessingStats()

    def process(self, message: QueueMessage) -> ProcessingResult:
        """
        Process one message.

        Args:
            message: Reference to the original image

        Returns:
            ProcessingResult carrying the acknowledgement decision
        """
        location = f"s3://{message.bucket}/{message.key}"

        if self.s3.is_thumbnail_key(message.key):
            return self._skip(message, f"{location} is a generated thumbnail")
        if not self.s3.is_image_key(message.key):
            return self._skip(message, f"{location} is not an image")

        try:
            record = self._generate(message)
        except ObjectMissingError:
            return self._skip(message, f"{location} no longer exists")
        except PermanentError as e:
            return self._dead_letter(message, f"{location}: {e}")
        except TransientError as e:
            return self._transient_failure(message, f"{location}: {e}")
        except Exception as e:
            self.logger.exception(f"Unexpected error processing {location}")
            return self._transient_failure(message, f"{location}: {e}")

        self.stats.processed += 1
        self.logger.info(
            f"Generated: {record.id} -> {record.thumbnail_key} "
            f"({record.width}x{record.height})"
        )
        return ProcessingResult(message=message, outcome=Outcome.SUCCEEDED, record=record)

    def _generate(self, message: QueueMessage) -> ImageRecord:
        """Download, resize, upload and record one image."""
        deadline = self.clock() + self.processing_timeout

        self.logger.debug(f"Downloading: {message.key}")
        image_data = self.s3.download_object(message.bucket, message.key)
        self._check_deadline(deadline, 'download')

        ext = os.path.splitext(message.key)[1]
        self.logger.debug(f"Generating thumbnail: {message.key}")
        thumbnail = self.thumb_gen.generate(image_data, ext)
        self._check_deadline(deadline, 'resize')

        image_id = image_id_from_key(message.key)
        bucket = self.s3.thumbnail_bucket(message.bucket)
        thumb_key = self.s3.get_thumbnail_key(image_id, thumbnail.extension)

        self.logger.debug(f"Uploading: {thumb_key}")
        self.s3.upload_object(bucket, thumb_key, thumbnail.data, thumbnail.content_type)
        self.stats.bytes_generated += len(thumbnail.data)
        self._check_deadline(deadline, 'upload')

        record = ImageRecord(
            id=image_id,
            thumbnail_url=self.s3.object_url(bucket, thumb_key),
            original_key=message.key,
            thumbnail_key=thumb_key,
            bucket=bucket,
            width=thumbnail.width,
            height=thumbnail.height,
            content_type=thumbnail.content_type,
        )
        self.table.put_record(record)
        return record

    def _check_deadline(self, deadline: float, step: str) -> None:
        if self.clock() > deadline:
            raise ProcessingTimeoutError(
                f"Exceeded {self.processing_timeout}s budget after {step}"
            )

    def _skip(self, message: QueueMessage, reason: str) -> ProcessingResult:
        self.logger.warning(f"Skipped: {reason}")
        self.stats.skipped += 1
        return ProcessingResult(message=message, outcome=Outcome.SKIPPED, reason=reason)

    def _dead_letter(self, message: QueueMessage, reason: str) -> ProcessingResult:
        self.logger.error(f"Dead-lettering: {reason}")
        self.stats.dead_lettered += 1
        self.stats.error_details.append(reason)
        return ProcessingResult(message=message, outcome=Outcome.DEAD_LETTER, reason=reason)

    def _transient_failure(self, message: QueueMessage, reason: str) -> ProcessingResult:
        if message.receive_count >= self.max_receive_count:
            return self._dead_letter(
                message,
                f"{reason} (gave up after {message.receive_count} deliveries)"
            )
        self.logger.warning(
            f"Retrying: {reason} (delivery {message.receive_count}/{self.max_receive_count})"
        )
        self.stats.retried += 1
        self.stats.error_details.append(reason)
        return ProcessingResult(message=message, outcome=Outcome.RETRY, reason=reason)
