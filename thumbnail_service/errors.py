"""
Error taxonomy for the thumbnail pipeline.

Transient errors are worth another delivery attempt. Permanent errors are
not: the message goes to the dead-letter channel. ObjectMissingError marks
an original that vanished before processing, which is skipped.
"""

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from retrying import retry

MISSING_CODES = {'404', 'NoSuchKey', 'NotFound'}

TRANSIENT_CODES = {
    'Throttling',
    'ThrottlingException',
    'ThrottledException',
    'RequestLimitExceeded',
    'ProvisionedThroughputExceededException',
    'TransactionInProgressException',
    'SlowDown',
    'RequestTimeout',
    'RequestTimeoutException',
    'InternalError',
    'InternalServerError',
    'ServiceUnavailable',
    'ServiceUnavailableException',
}

CONNECTION_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


class ThumbnailServiceError(Exception):
    """Base class for all pipeline errors."""


class TransientError(ThumbnailServiceError):
    """A failure that may succeed on redelivery."""


class PermanentError(ThumbnailServiceError):
    """A failure that will never succeed for the same input."""


class StorageUnavailableError(TransientError):
    """The object store could not be reached or throttled the request."""


class TableUnavailableError(TransientError):
    """The metadata table could not be reached or throttled the request."""


class QueueUnavailableError(TransientError):
    """The work queue could not be reached or throttled the request."""


class ProcessingTimeoutError(TransientError):
    """A processing attempt ran past its time budget."""


class UnsupportedImageError(PermanentError):
    """The original could not be decoded as an image."""


class MalformedMessageError(PermanentError):
    """A queue message body does not describe an object."""


class ObjectMissingError(ThumbnailServiceError):
    """The referenced original no longer exists in the store."""


def error_code(error: ClientError) -> str:
    """Return the service error code carried by a ClientError."""
    return str(error.response.get('Error', {}).get('Code', ''))


def is_missing(error: Exception) -> bool:
    """True for a 'no such object' response."""
    return isinstance(error, ClientError) and error_code(error) in MISSING_CODES


def is_transient(error: Exception) -> bool:
    """True for errors worth retrying: throttling, 5xx and connection failures."""
    if isinstance(error, CONNECTION_ERRORS):
        return True
    if not isinstance(error, ClientError):
        return False
    if error_code(error) in TRANSIENT_CODES:
        return True
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0)
    return status >= 500


def classify_client_error(error: Exception, transient_cls=TransientError) -> ThumbnailServiceError:
    """
    Map a botocore error to the pipeline taxonomy.

    Args:
        error: The botocore exception
        transient_cls: TransientError subclass to use for retriable failures

    Returns:
        An ObjectMissingError, transient_cls or PermanentError instance
    """
    if is_missing(error):
        return ObjectMissingError(str(error))
    if is_transient(error):
        return transient_cls(str(error))
    return PermanentError(str(error))


# Shared retry policy for data-access calls: three attempts with capped
# exponential backoff, only for transient botocore failures.
retry_transient = retry(
    retry_on_exception=is_transient,
    stop_max_attempt_number=3,
    wait_exponential_multiplier=100,
    wait_exponential_max=2000,
)
