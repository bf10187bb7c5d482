"""
Thumbnail Service

Queue-driven thumbnail pipeline:
    1. Ingest: object-creation events land on the work queue
    2. Generate: workers resize each original and record its thumbnail
    3. List: the listing service answers GET /images from the metadata table
"""

__version__ = "1.0.0"

from .config import ServiceConfig
from .errors import (
    ThumbnailServiceError,
    TransientError,
    PermanentError,
    ObjectMissingError,
    TableUnavailableError,
)
from .image_record import ImageRecord
from .queue_message import QueueMessage
from .thumbnail_generator import ThumbnailGenerator, Thumbnail
from .s3_client import S3Client
from .metadata_table import MetadataTable
from .sqs_client import SQSClient
from .processing_stats import ProcessingStats
from .generator import Generator, Outcome, ProcessingResult
from .listing import ListingService, ListingPage
from .worker import QueueWorker

__all__ = [
    "ServiceConfig",
    "ThumbnailServiceError",
    "TransientError",
    "PermanentError",
    "ObjectMissingError",
    "TableUnavailableError",
    "ImageRecord",
    "QueueMessage",
    "ThumbnailGenerator",
    "Thumbnail",
    "S3Client",
    "MetadataTable",
    "SQSClient",
    "ProcessingStats",
    "Generator",
    "Outcome",
    "ProcessingResult",
    "ListingService",
    "ListingPage",
    "QueueWorker",
]
