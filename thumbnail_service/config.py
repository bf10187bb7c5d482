"""
ServiceConfig - Environment-driven configuration for the thumbnail service.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from botocore.config import Config

TRUE_VALUES = {'yes', 'true', 't', 'y', '1'}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in TRUE_VALUES


@dataclass
class ServiceConfig:
    """
    Configuration shared by the generator, worker and listing service.

    Attributes:
        table_name: Metadata table name (MY_TABLE)
        region: AWS region (REGION_NAME)
        thumbnail_size: Bounding box edge length in pixels (THUMBNAIL_SIZE)
        processing_timeout: Per-message time budget in seconds (PROCESSING_TIMEOUT)
        bucket: Bucket for thumbnails; None writes next to the original
        thumbnail_prefix: Key prefix for generated thumbnails
        queue_url: Work queue URL
        dead_letter_queue_url: Dead-letter queue URL, if messages are moved explicitly
        max_receive_count: Delivery attempts before a transient failure is dead-lettered
        visibility_timeout: Seconds a received message stays invisible
        endpoint: Custom S3-compatible endpoint (MinIO, localstack)
        verify_ssl: Verify TLS certificates for the custom endpoint
        quality: JPEG quality for output thumbnails
        log_level: Logging level name
    """
    table_name: Optional[str] = None
    region: str = 'us-west-2'
    thumbnail_size: int = 128
    processing_timeout: int = 20
    bucket: Optional[str] = None
    thumbnail_prefix: str = 'thumbnails/'
    queue_url: Optional[str] = None
    dead_letter_queue_url: Optional[str] = None
    max_receive_count: int = 3
    visibility_timeout: int = 300
    endpoint: Optional[str] = None
    verify_ssl: bool = True
    quality: int = 85
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Build configuration from environment variables."""
        return cls(
            table_name=os.getenv('MY_TABLE'),
            region=os.getenv('REGION_NAME', 'us-west-2'),
            thumbnail_size=_env_int('THUMBNAIL_SIZE', 128),
            processing_timeout=_env_int('PROCESSING_TIMEOUT', 20),
            bucket=os.getenv('THUMBNAIL_BUCKET') or None,
            thumbnail_prefix=os.getenv('THUMBNAIL_PREFIX', 'thumbnails/'),
            queue_url=os.getenv('QUEUE_URL') or None,
            dead_letter_queue_url=os.getenv('DEAD_LETTER_QUEUE_URL') or None,
            max_receive_count=_env_int('MAX_RECEIVE_COUNT', 3),
            visibility_timeout=_env_int('VISIBILITY_TIMEOUT', 300),
            endpoint=os.getenv('S3_ENDPOINT') or None,
            verify_ssl=_env_bool('S3_VERIFY_SSL', True),
            quality=_env_int('THUMBNAIL_QUALITY', 85),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )

    def validate(self) -> List[str]:
        """
        Check the configuration for problems.

        Returns:
            List of error messages, empty when the configuration is usable
        """
        errors = []
        if not self.table_name:
            errors.append("MY_TABLE is not set")
        if not self.region:
            errors.append("REGION_NAME is not set")
        if self.thumbnail_size <= 0:
            errors.append(f"THUMBNAIL_SIZE must be positive, got {self.thumbnail_size}")
        if self.processing_timeout <= 0:
            errors.append(f"PROCESSING_TIMEOUT must be positive, got {self.processing_timeout}")
        if self.max_receive_count < 1:
            errors.append(f"MAX_RECEIVE_COUNT must be at least 1, got {self.max_receive_count}")
        if self.visibility_timeout < self.processing_timeout:
            errors.append("VISIBILITY_TIMEOUT must not be shorter than PROCESSING_TIMEOUT")
        if not 1 <= self.quality <= 95:
            errors.append(f"THUMBNAIL_QUALITY must be between 1 and 95, got {self.quality}")
        if self.thumbnail_prefix and not self.thumbnail_prefix.endswith('/'):
            errors.append("THUMBNAIL_PREFIX must end with '/'")
        return errors

    def validate_queue(self) -> List[str]:
        """Check the settings needed by commands that talk to the work queue."""
        errors = self.validate()
        if not self.queue_url:
            errors.append("QUEUE_URL is not set")
        return errors


def botocore_config(config: ServiceConfig, **extra) -> Config:
    """
    Build the botocore client configuration for a service config.

    Socket timeouts stay inside the processing budget and botocore's own
    retries are disabled; retries are handled by the data-access layer.
    """
    return Config(
        region_name=config.region,
        connect_timeout=min(5, config.processing_timeout),
        read_timeout=config.processing_timeout,
        retries={'max_attempts': 1, 'mode': 'standard'},
        **extra
    )
