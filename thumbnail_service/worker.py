"""
QueueWorker - Long-polls the work queue and settles each message.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

from .errors import MalformedMessageError, ThumbnailServiceError
from .generator import Generator, Outcome
from .processing_stats import ProcessingStats
from .queue_message import QueueMessage, receive_count_of
from .sqs_client import SQSClient


class QueueWorker:
    """
    Pulls messages from the work queue and hands them to the Generator.

    One raw message is settled once, after every object it references has
    been processed: the worst outcome decides between acknowledging,
    releasing for redelivery and dead-lettering.
    """

    def __init__(
        self,
        sqs_client: SQSClient,
        generator: Generator,
        batch_size: int = 10,
        wait_seconds: int = 20,
        error_backoff: float = 5.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize worker.

        Args:
            sqs_client: Work queue client
            generator: Generator that processes each message
            batch_size: Messages requested per poll (1-10)
            wait_seconds: Long-poll wait time
            error_backoff: Seconds to wait after the queue itself fails
            logger: Optional logger instance
        """
        self.sqs = sqs_client
        self.generator = generator
        self.batch_size = batch_size
        self.wait_seconds = wait_seconds
        self.error_backoff = error_backoff
        self.logger = logger or logging.getLogger(__name__)
        self._stop_requested = False

    @property
    def stats(self) -> ProcessingStats:
        return self.generator.stats

    def stop(self) -> None:
        """Request the worker to stop after the current batch."""
        self._stop_requested = True

    def run(self, max_batches: Optional[int] = None) -> ProcessingStats:
        """
        Poll until stopped.

        Args:
            max_batches: Optional limit on the number of polls (for testing)

        Returns:
            ProcessingStats for the run
        """
        batches = 0
        self.logger.info(f"Worker started on {self.sqs.config.queue_url}")

        while not self._stop_requested:
            if max_batches is not None and batches >= max_batches:
                break
            batches += 1

            try:
                self.poll_once()
            except ThumbnailServiceError as e:
                self.logger.error(f"Queue unavailable: {e}")
                if self.error_backoff > 0:
                    time.sleep(self.error_backoff)

        self.logger.info(
            f"Worker stopped: {self.stats.completed_count} completed "
            f"({self.stats.processed} generated, {self.stats.skipped} skipped, "
            f"{self.stats.dead_lettered} dead-lettered), {self.stats.errors} errors, "
            f"{self.stats.bytes_generated:,} bytes written ({self.stats.elapsed_seconds:.1f}s)"
        )
        return self.stats

    def poll_once(self) -> int:
        """Receive one batch and settle every message in it."""
        messages = self.sqs.receive(max_messages=self.batch_size, wait_seconds=self.wait_seconds)
        for raw in messages:
            self.handle(raw)
            if self._stop_requested:
                # Unsettled messages reappear after their visibility timeout
                break
        return len(messages)

    def handle(self, raw: Dict[str, Any]) -> Outcome:
        """Process one raw queue message and settle it."""
        receipt_handle = raw.get('ReceiptHandle', '')
        receive_count = delivery_count(raw)

        outcome, reason = process_raw_message(self.generator, raw, self.logger)
        try:
            self._settle(raw, outcome, reason, receive_count)
        except ThumbnailServiceError as e:
            self.logger.error(f"Could not settle message {receipt_handle[:16]}: {e}")
        return outcome

    def _settle(self, raw: Dict[str, Any], outcome: Outcome, reason: str, receive_count: int) -> None:
        receipt_handle = raw.get('ReceiptHandle', '')

        if outcome in (Outcome.SUCCEEDED, Outcome.SKIPPED):
            self.sqs.acknowledge(receipt_handle)
        elif outcome == Outcome.RETRY:
            self.sqs.release(receipt_handle)
        elif self.sqs.has_dead_letter_queue:
            self.sqs.dead_letter(raw.get('Body', ''), reason, receive_count)
            self.sqs.acknowledge(receipt_handle)
        else:
            # The queue's redrive policy moves it once maxReceiveCount is reached
            self.logger.warning("No dead-letter queue configured; releasing message for redrive")
            self.sqs.release(receipt_handle)


def process_raw_message(
    generator: Generator,
    raw: Dict[str, Any],
    logger: Optional[logging.Logger] = None
) -> Tuple[Outcome, str]:
    """
    Decode a raw queue message and process every object it references.

    Returns:
        Tuple of (worst outcome, joined failure reasons)
    """
    logger = logger or logging.getLogger(__name__)
    try:
        messages = QueueMessage.decode(raw)
    except MalformedMessageError as e:
        message_id = raw.get('MessageId', raw.get('messageId', ''))
        logger.error(f"Malformed message {message_id}: {e}")
        generator.stats.dead_lettered += 1
        return Outcome.DEAD_LETTER, str(e)

    outcome = Outcome.SUCCEEDED
    reasons = []
    for message in messages:
        result = generator.process(message)
        if result.reason and not result.acknowledge:
            reasons.append(result.reason)
        if result.outcome.severity > outcome.severity:
            outcome = result.outcome
    return outcome, '; '.join(reasons)


def delivery_count(raw: Dict[str, Any]) -> int:
    """ApproximateReceiveCount of a raw message, or 0 when it is unreadable."""
    try:
        return receive_count_of(raw)
    except MalformedMessageError:
        return 0
