"""
ProcessingStats - Statistics for a worker run.
"""

import time
from dataclasses import dataclass, field
from typing import List


@dataclass
class ProcessingStats:
    """
    Statistics for a worker run.

    Attributes:
        processed: Thumbnails generated and recorded
        skipped: Messages acknowledged without work (missing original, thumbnail keys)
        retried: Messages released for redelivery
        dead_lettered: Messages routed to the dead-letter channel
        bytes_generated: Total bytes of thumbnails written
        start_time: Start timestamp
        error_details: List of error messages
    """
    processed: int = 0
    skipped: int = 0
    retried: int = 0
    dead_lettered: int = 0
    bytes_generated: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def rate_per_second(self) -> float:
        """Processing rate in images per second."""
        if self.elapsed_seconds > 0:
            return self.processed / self.elapsed_seconds
        return 0.0

    @property
    def rate_per_minute(self) -> float:
        """Processing rate in images per minute."""
        return self.rate_per_second * 60

    @property
    def completed_count(self) -> int:
        """Messages that reached a final decision (everything except retries)."""
        return self.processed + self.skipped + self.dead_lettered

    @property
    def errors(self) -> int:
        """Failed attempts, retried or dead-lettered."""
        return self.retried + self.dead_lettered
