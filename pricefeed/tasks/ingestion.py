"""
Upload Ingestion Tasks
Background tasks for processing uploaded price files
"""

import logging
from typing import Any, Dict, List

from celery.signals import worker_ready

from .celery_app import app

logger = logging.getLogger(__name__)


def build_pipeline():
    """Assemble an UploadPipeline from application settings."""
    # Import here to avoid circular dependencies
    from ..config.settings import get_settings
    from ..db.session import get_session_factory
    from ..ingestion.pipeline import UploadPipeline
    from ..services.exchange_rates import ExchangeRateProvider
    from ..storage.gcs import GCSObjectStore

    settings = get_settings()
    return UploadPipeline(
        session_factory=get_session_factory(),
        object_store=GCSObjectStore(settings.gcs_bucket),
        rate_provider=ExchangeRateProvider(
            url_template=settings.exchange_rates_url,
            timeout=settings.exchange_rates_timeout,
        ),
        settings=settings,
    )


@app.task(bind=True, name="tasks.process_upload")
def process_upload(self, upload_id: str) -> Dict[str, Any]:
    """
    Process an uploaded price file.

    Args:
        upload_id: Id of the upload to process

    Returns:
        Dictionary with processing results (status, row counts, error)
    """
    logger.info(f"Starting upload processing for {upload_id}")

    result = build_pipeline().run(upload_id)

    logger.info(f"Completed upload processing: {result.to_dict()}")
    return result.to_dict()


def enqueue_upload(upload_id: str):
    """
    Submit an upload to the work queue.

    The upload id doubles as the task id, so a re-submission of the same
    upload is recognizable as a duplicate.
    """
    upload_id = str(upload_id)
    return process_upload.apply_async(args=[upload_id], task_id=upload_id)


def recover_uploads() -> List[str]:
    """Re-enqueue uploads left in PROCESSING by a crashed worker."""
    from ..db.session import get_session_factory
    from ..ingestion.recovery import resume_stuck_uploads
    from ..ingestion.repository import UploadRepository

    repository = UploadRepository(get_session_factory())
    return resume_stuck_uploads(repository, enqueue_upload)


@worker_ready.connect
def _recover_on_startup(sender=None, **kwargs):
    try:
        recover_uploads()
    except Exception as e:
        logger.error(f"Error recovering stuck uploads: {e}", exc_info=True)
