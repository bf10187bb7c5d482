"""
Command Line Interface for the thumbnail service.
"""

import argparse
import json
import logging
import os
import signal
from typing import List, Optional

import urllib3

from .config import ServiceConfig
from .factory import build_generator, build_listing_service, build_worker
from .generator import Outcome
from .ingestion import enqueue_existing
from .queue_message import QueueMessage
from .s3_client import S3Client
from .server import create_app
from .sqs_client import SQSClient


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging; LOG_LEVEL applies unless verbose is set."""
    level = logging.DEBUG if verbose else logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO').upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('thumbnail_service')


def get_config(args: argparse.Namespace) -> ServiceConfig:
    """Get configuration from environment and CLI overrides."""
    config = ServiceConfig.from_env()

    if getattr(args, 'table', None):
        config.table_name = args.table
    if getattr(args, 'region', None):
        config.region = args.region
    if getattr(args, 'size', None):
        config.thumbnail_size = args.size
    if getattr(args, 'timeout', None):
        config.processing_timeout = args.timeout
    if getattr(args, 'queue_url', None):
        config.queue_url = args.queue_url
    if getattr(args, 'dead_letter_queue_url', None):
        config.dead_letter_queue_url = args.dead_letter_queue_url
    if getattr(args, 's3_endpoint', None):
        config.endpoint = args.s3_endpoint

    return config


def load_config(args: argparse.Namespace, logger: logging.Logger, needs_queue: bool = False) -> Optional[ServiceConfig]:
    """Build and validate configuration, logging every problem found."""
    try:
        config = get_config(args)
    except ValueError as e:
        logger.error(e)
        return None
    errors = config.validate_queue() if needs_queue else config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return None
    if config.endpoint and not config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    return config


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add configuration override arguments to a parser."""
    group = parser.add_argument_group('Configuration')
    group.add_argument('--table', help='Override MY_TABLE')
    group.add_argument('--region', help='Override REGION_NAME')
    group.add_argument('--size', type=int, help='Override THUMBNAIL_SIZE')
    group.add_argument('--timeout', type=int, help='Override PROCESSING_TIMEOUT')
    group.add_argument('--queue-url', help='Override QUEUE_URL')
    group.add_argument('--dead-letter-queue-url', help='Override DEAD_LETTER_QUEUE_URL')
    group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')


def cmd_worker(args: argparse.Namespace) -> int:
    """Execute worker command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger, needs_queue=True)
    if config is None:
        return 1

    logger.info(f"Queue: {config.queue_url}")
    logger.info(f"Table: {config.table_name} ({config.region})")
    logger.info(f"Thumbnail size: {config.thumbnail_size}px")
    logger.info(f"Processing timeout: {config.processing_timeout}s")

    worker = build_worker(config, batch_size=args.batch_size, wait_seconds=args.wait, logger=logger)
    signal.signal(signal.SIGTERM, lambda signum, frame: worker.stop())

    try:
        stats = worker.run(max_batches=args.max_batches)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    if not args.quiet:
        print()
        print(f"Generated: {stats.processed}")
        print(f"Skipped: {stats.skipped}")
        print(f"Retried: {stats.retried}")
        print(f"Dead-lettered: {stats.dead_lettered}")
        print(f"Completed: {stats.completed_count}")
        print(f"Errors: {stats.errors}")
        print(f"Bytes written: {stats.bytes_generated:,}")
        print(f"Rate: {stats.rate_per_minute:.1f}/min")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Execute serve command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    app = create_app(build_listing_service(config, logger), logger)
    logger.info(f"Serving GET /images on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, quiet=not args.verbose)
    return 0


def cmd_process(args: argparse.Namespace) -> int:
    """Execute process command: generate one thumbnail synchronously."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    generator = build_generator(config, logger)
    result = generator.process(QueueMessage(bucket=args.bucket, key=args.key))

    if result.outcome == Outcome.SUCCEEDED:
        print(json.dumps(result.record.to_dict(), indent=2))
        return 0
    if result.outcome == Outcome.SKIPPED:
        print(f"Skipped: {result.reason}")
        return 0
    print(f"Failed ({result.outcome.value}): {result.reason}")
    return 1


def cmd_enqueue(args: argparse.Namespace) -> int:
    """Execute enqueue command: backfill existing originals."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger, needs_queue=True)
    if config is None:
        return 1

    try:
        count = enqueue_existing(
            S3Client(config, logger),
            SQSClient(config, logger),
            bucket=args.bucket,
            prefix=args.prefix,
            limit=args.limit,
        )
    except Exception as e:
        logger.exception(f"Enqueue failed: {e}")
        return 1

    if not args.quiet:
        print(f"Enqueued: {count}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    try:
        records = build_listing_service(config, logger).list_thumbnails()
    except Exception as e:
        logger.error(f"Listing failed: {e}")
        return 1

    print(json.dumps([record.to_dict() for record in records], indent=2))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='thumbnail-service',
        description='Queue-driven thumbnail generation and listing',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  worker:   python -m thumbnail_service worker
  serve:    python -m thumbnail_service serve --port 8080
  process:  python -m thumbnail_service process BUCKET KEY
  enqueue:  python -m thumbnail_service enqueue BUCKET --prefix uploads/
  list:     python -m thumbnail_service list

Configuration is read from MY_TABLE, REGION_NAME, THUMBNAIL_SIZE,
PROCESSING_TIMEOUT, QUEUE_URL and DEAD_LETTER_QUEUE_URL.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Worker command
    worker_parser = subparsers.add_parser('worker', help='Consume the work queue')
    worker_parser.add_argument('--batch-size', type=int, default=10, help='Messages per poll (1-10)')
    worker_parser.add_argument('--wait', type=int, default=20, help='Long-poll wait in seconds')
    worker_parser.add_argument('--max-batches', type=int, metavar='N',
                               help='Stop after N polls (for testing)')
    worker_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress summary output')
    worker_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(worker_parser)

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Serve the listing API')
    serve_parser.add_argument('--host', default='0.0.0.0', help='Bind address (default: 0.0.0.0)')
    serve_parser.add_argument('--port', type=int, default=8080, help='Port (default: 8080)')
    serve_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(serve_parser)

    # Process command
    process_parser = subparsers.add_parser('process', help='Generate one thumbnail now')
    process_parser.add_argument('bucket', help='Bucket of the original')
    process_parser.add_argument('key', help='Key of the original')
    process_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(process_parser)

    # Enqueue command
    enqueue_parser = subparsers.add_parser('enqueue', help='Enqueue existing originals')
    enqueue_parser.add_argument('bucket', help='Bucket to scan')
    enqueue_parser.add_argument('--prefix', default='', help='Key prefix to scan')
    enqueue_parser.add_argument('--limit', type=int, metavar='N',
                                help='Limit to N messages (for testing)')
    enqueue_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress summary output')
    enqueue_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(enqueue_parser)

    # List command
    list_parser = subparsers.add_parser('list', help='Print all thumbnail records as JSON')
    list_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_config_arguments(list_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    commands = {
        'worker': cmd_worker,
        'serve': cmd_serve,
        'process': cmd_process,
        'enqueue': cmd_enqueue,
        'list': cmd_list,
    }
    return commands[parsed_args.command](parsed_args)
