"""
Recovery of uploads interrupted by a crash.
"""

import logging
from typing import Callable, List

from ..db.models import UploadStatus
from .repository import UploadRepository

logger = logging.getLogger(__name__)


def resume_stuck_uploads(repository: UploadRepository, enqueue: Callable[[str], None]) -> List[str]:
    """
    Re-submit every upload left in PROCESSING.

    Meant to run once at worker start, before any pipeline is running, so
    every PROCESSING upload belongs to a run that died.

    Args:
        repository: Upload store
        enqueue: Submits an upload id to the work queue; the id is also
            the queue's deduplication key

    Returns:
        Ids that were re-enqueued
    """
    stuck = repository.find_by_status(UploadStatus.PROCESSING)
    resumed = []

    for upload in stuck:
        upload_id = str(upload.id)
        logger.info(f"Resuming stuck upload: {upload_id}")
        enqueue(upload_id)
        resumed.append(upload_id)

    if resumed:
        logger.info(f"Re-enqueued {len(resumed)} stuck uploads")
    return resumed
