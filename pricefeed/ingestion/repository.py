"""
Upload Repository
Reads and updates upload records on behalf of the ingestion pipeline.
Every method runs in its own short-lived session so progress written
here is durable as soon as the call returns.
"""

import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import sessionmaker

from ..db.models import Product, ProductPrice, Upload, UploadStatus

logger = logging.getLogger(__name__)

CANCELLED_BY_USER = "Cancelled by user"
FAILED_REASON_MAX_LENGTH = 255

# Bulk statements run in throwaway sessions; nothing to synchronize
BULK = {"synchronize_session": False}


def as_uuid(upload_id) -> UUID:
    return upload_id if isinstance(upload_id, UUID) else UUID(str(upload_id))


class UploadNotCancellableError(Exception):
    """Raised when cancelling an upload that already reached a terminal state."""


class UploadRepository:
    """Job store backed by the uploads table."""

    def __init__(self, session_factory: sessionmaker):
        self.Session = session_factory

    def get(self, upload_id) -> Optional[Upload]:
        with self.Session() as session:
            return session.get(Upload, as_uuid(upload_id))

    def find_by_status(self, status: UploadStatus) -> List[Upload]:
        with self.Session() as session:
            query = select(Upload).where(Upload.status == status).order_by(Upload.created_at)
            return list(session.execute(query).scalars().all())

    def _update(self, upload_id, **values) -> None:
        with self.Session() as session:
            stmt = update(Upload).where(Upload.id == as_uuid(upload_id)).values(**values)
            session.execute(stmt, execution_options=BULK)
            session.commit()

    def mark_processing(self, upload_id) -> None:
        self._update(upload_id, status=UploadStatus.PROCESSING)

    def set_total_rows(self, upload_id, total_rows: int) -> None:
        self._update(upload_id, total_rows=total_rows)

    def set_processed_rows(self, upload_id, processed_rows: int) -> None:
        self._update(upload_id, processed_rows=processed_rows)

    def store_rates_snapshot(self, upload_id, rates: Dict[str, float]) -> None:
        """Record the rates used for a run. An existing snapshot is never replaced."""
        with self.Session() as session:
            stmt = (
                update(Upload)
                .where(Upload.id == as_uuid(upload_id), Upload.exchange_rates_snapshot.is_(None))
                .values(exchange_rates_snapshot=rates)
            )
            session.execute(stmt, execution_options=BULK)
            session.commit()

    def mark_completed(self, upload_id) -> bool:
        """
        Mark an upload completed unless it was failed in the meantime.

        Returns:
            True if the status was changed
        """
        with self.Session() as session:
            stmt = (
                update(Upload)
                .where(Upload.id == as_uuid(upload_id), Upload.status != UploadStatus.FAILED)
                .values(status=UploadStatus.COMPLETED)
            )
            result = session.execute(stmt, execution_options=BULK)
            session.commit()
            return result.rowcount > 0

    def mark_failed(self, upload_id, reason: str) -> None:
        self._update(
            upload_id,
            status=UploadStatus.FAILED,
            failed_reason=(reason or "Unknown error")[:FAILED_REASON_MAX_LENGTH],
        )

    def count_products(self, upload_id) -> int:
        with self.Session() as session:
            query = select(func.count(Product.id)).where(Product.upload_id == as_uuid(upload_id))
            return session.execute(query).scalar_one()

    def resume_offset(self, upload_id) -> int:
        """Number of data rows already committed for an upload, inserted or skipped."""
        with self.Session() as session:
            uid = as_uuid(upload_id)
            inserted = session.execute(
                select(func.count(Product.id)).where(Product.upload_id == uid)
            ).scalar_one()
            skipped = session.execute(
                select(Upload.skipped_rows).where(Upload.id == uid)
            ).scalar_one_or_none()
            return inserted + (skipped or 0)

    def is_cancelled(self, upload_id) -> bool:
        """Re-read the upload and report whether a user cancelled it."""
        with self.Session() as session:
            row = session.execute(
                select(Upload.status, Upload.failed_reason).where(Upload.id == as_uuid(upload_id))
            ).first()

        if row is None:
            return False
        status, reason = row
        return status == UploadStatus.FAILED and (reason or "").lower() == CANCELLED_BY_USER.lower()

    def request_cancel(self, upload_id) -> None:
        """
        Flag an upload as cancelled by its user.

        A running pipeline notices the flag at its next batch boundary.

        Raises:
            LookupError: If the upload does not exist
            UploadNotCancellableError: If the upload is completed or failed
        """
        with self.Session() as session:
            upload = session.get(Upload, as_uuid(upload_id))
            if upload is None:
                raise LookupError(f"Upload not found: {upload_id}")
            if upload.status in (UploadStatus.COMPLETED, UploadStatus.FAILED):
                raise UploadNotCancellableError("Cannot cancel a completed or failed upload")

            upload.status = UploadStatus.FAILED
            upload.failed_reason = CANCELLED_BY_USER
            session.commit()

    def cleanup(self, upload_id) -> None:
        """Delete everything written for an upload and reset its progress. Never raises."""
        uid = as_uuid(upload_id)
        try:
            logger.info(f"Starting cleanup for upload {uid}...")
            with self.Session() as session:
                product_ids = select(Product.id).where(Product.upload_id == uid)
                session.execute(
                    delete(ProductPrice).where(ProductPrice.product_id.in_(product_ids)),
                    execution_options=BULK,
                )
                result = session.execute(
                    delete(Product).where(Product.upload_id == uid), execution_options=BULK
                )
                session.execute(
                    update(Upload).where(Upload.id == uid).values(processed_rows=0, skipped_rows=0),
                    execution_options=BULK,
                )
                session.commit()
            logger.info(f"Deleted {result.rowcount} products and reset progress for upload {uid}")
        except Exception as e:
            logger.error(f"Failed to cleanup upload {uid}: {e}", exc_info=True)
