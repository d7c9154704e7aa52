"""
Tests for re-enqueueing uploads stuck in PROCESSING.
"""

from pricefeed.db.models import UploadStatus
from pricefeed.ingestion.recovery import resume_stuck_uploads
from pricefeed.ingestion.repository import UploadRepository


def test_only_processing_uploads_are_resumed(session_factory, make_upload):
    stuck = [make_upload(status=UploadStatus.PROCESSING) for _ in range(2)]
    for status in (UploadStatus.PENDING, UploadStatus.COMPLETED, UploadStatus.FAILED):
        make_upload(status=status)
    enqueued = []

    resumed = resume_stuck_uploads(UploadRepository(session_factory), enqueued.append)

    assert sorted(resumed) == sorted(str(u) for u in stuck)
    assert sorted(enqueued) == sorted(str(u) for u in stuck)


def test_each_upload_enqueued_once_under_its_id(session_factory, make_upload):
    upload_id = make_upload(status=UploadStatus.PROCESSING)
    calls = []

    resume_stuck_uploads(UploadRepository(session_factory), calls.append)

    assert calls == [str(upload_id)]


def test_nothing_to_resume(session_factory, make_upload):
    make_upload(status=UploadStatus.COMPLETED)
    calls = []

    assert resume_stuck_uploads(UploadRepository(session_factory), calls.append) == []
    assert calls == []
