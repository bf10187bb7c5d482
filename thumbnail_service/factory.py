"""
Builds the pipeline components from a ServiceConfig.
"""

import logging
from typing import Optional

from .config import ServiceConfig
from .generator import Generator
from .listing import ListingService
from .metadata_table import MetadataTable
from .s3_client import S3Client
from .sqs_client import SQSClient
from .thumbnail_generator import ThumbnailGenerator
from .worker import QueueWorker


def build_generator(config: ServiceConfig, logger: Optional[logging.Logger] = None) -> Generator:
    """Wire a Generator to the object store and metadata table."""
    return Generator(
        s3_client=S3Client(config, logger),
        thumbnail_generator=ThumbnailGenerator(config.thumbnail_size, config.quality, logger=logger),
        metadata_table=MetadataTable(config, logger),
        processing_timeout=config.processing_timeout,
        max_receive_count=config.max_receive_count,
        logger=logger,
    )


def build_listing_service(config: ServiceConfig, logger: Optional[logging.Logger] = None) -> ListingService:
    """Wire a ListingService to the metadata table."""
    return ListingService(MetadataTable(config, logger), logger=logger)


def build_worker(
    config: ServiceConfig,
    batch_size: int = 10,
    wait_seconds: int = 20,
    logger: Optional[logging.Logger] = None
) -> QueueWorker:
    """Wire a QueueWorker and its Generator."""
    return QueueWorker(
        sqs_client=SQSClient(config, logger),
        generator=build_generator(config, logger),
        batch_size=batch_size,
        wait_seconds=wait_seconds,
        logger=logger,
    )
