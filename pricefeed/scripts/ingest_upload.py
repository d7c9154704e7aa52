#!/usr/bin/env python3
"""
Upload Ingestion Script
Operates on uploads from the command line: process, enqueue, cancel,
recover stuck uploads and purge the queue.

Usage:
    python -m pricefeed.scripts.ingest_upload run <upload-id>
    python -m pricefeed.scripts.ingest_upload enqueue <upload-id>
    python -m pricefeed.scripts.ingest_upload cancel <upload-id>
    python -m pricefeed.scripts.ingest_upload recover
    python -m pricefeed.scripts.ingest_upload purge
    python -m pricefeed.scripts.ingest_upload init-db
"""

import argparse
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def cmd_run(args) -> int:
    from pricefeed.tasks.ingestion import build_pipeline

    result = build_pipeline().run(args.upload_id)

    logger.info("=" * 60)
    logger.info(f"UPLOAD {result.status}")
    logger.info("=" * 60)
    logger.info(f"Total rows: {result.total_rows}")
    logger.info(f"Processed rows: {result.processed_rows}")
    logger.info(f"Skipped rows: {result.skipped_rows}")
    logger.info(f"Resumed from row: {result.resumed_from}")
    if result.error:
        logger.error(f"Error: {result.error}")

    return 0 if result.status in ("COMPLETED", "CANCELLED") else 1


def cmd_enqueue(args) -> int:
    from pricefeed.tasks.ingestion import enqueue_upload

    async_result = enqueue_upload(args.upload_id)
    logger.info(f"Enqueued upload {args.upload_id} (task {async_result.id})")
    return 0


def cmd_cancel(args) -> int:
    from pricefeed.db.session import get_session_factory
    from pricefeed.ingestion.repository import UploadNotCancellableError, UploadRepository

    repository = UploadRepository(get_session_factory())
    try:
        repository.request_cancel(args.upload_id)
    except (LookupError, UploadNotCancellableError) as e:
        logger.error(str(e))
        return 1

    logger.info(f"Upload {args.upload_id} flagged as cancelled by user")
    return 0


def cmd_recover(args) -> int:
    from pricefeed.tasks.ingestion import recover_uploads

    resumed = recover_uploads()
    logger.info(f"Re-enqueued {len(resumed)} uploads")
    return 0


def cmd_purge(args) -> int:
    from pricefeed.tasks.celery_app import app

    logger.info("Flushing uploads queue...")
    discarded = app.control.purge()
    logger.info(f"Discarded {discarded} waiting messages")
    return 0


def cmd_init_db(args) -> int:
    from pricefeed.db.models import Base
    from pricefeed.db.session import get_session_factory

    engine = get_session_factory().kw["bind"]
    Base.metadata.create_all(engine)
    logger.info("Database tables created")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Process uploaded price files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Process an upload in this process")
    run.add_argument("upload_id", type=str, help="Id of the upload")
    run.set_defaults(func=cmd_run)

    enqueue = subparsers.add_parser("enqueue", help="Submit an upload to the worker queue")
    enqueue.add_argument("upload_id", type=str, help="Id of the upload")
    enqueue.set_defaults(func=cmd_enqueue)

    cancel = subparsers.add_parser("cancel", help="Cancel a pending or processing upload")
    cancel.add_argument("upload_id", type=str, help="Id of the upload")
    cancel.set_defaults(func=cmd_cancel)

    recover = subparsers.add_parser("recover", help="Re-enqueue uploads stuck in PROCESSING")
    recover.set_defaults(func=cmd_recover)

    purge = subparsers.add_parser("purge", help="Discard every waiting message in the queue")
    purge.set_defaults(func=cmd_purge)

    init_db = subparsers.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(func=cmd_init_db)

    return parser


def main(argv=None) -> int:
    """Main function to run the upload CLI."""
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
