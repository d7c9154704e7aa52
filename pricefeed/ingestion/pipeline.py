"""
Upload Ingestion Pipeline
Processes an uploaded price file end to end: staging, header check,
row validation, currency expansion and batched, resumable persistence.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pandas.errors import ParserError
from sqlalchemy.orm import sessionmaker

from ..config.settings import Settings
from ..db.models import UploadStatus
from ..errors import RowValidationError
from ..models.price_row import PriceRow, parse_row
from ..services.exchange_rates import ExchangeRateProvider
from ..storage.gcs import ObjectStore
from .batch_writer import BatchWriter
from .header import validate_header
from .repository import UploadRepository
from .staging import iter_row_chunks, remove_staging_file, stage_object

logger = logging.getLogger(__name__)

# Run outcome for uploads stopped by their user; the stored status stays FAILED
CANCELLED = "CANCELLED"
MISSING = "MISSING"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    upload_id: str
    status: str
    total_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0
    resumed_from: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "status": self.status,
            "total_rows": self.total_rows,
            "processed_rows": self.processed_rows,
            "skipped_rows": self.skipped_rows,
            "resumed_from": self.resumed_from,
            "error": self.error,
        }


class UploadPipeline:
    """
    Main upload ingestion pipeline.

    Drives one upload from PENDING/PROCESSING to COMPLETED or FAILED. A run
    interrupted by a crash can be started again: rows committed by the
    previous attempt are skipped, never inserted twice.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        object_store: ObjectStore,
        rate_provider: ExchangeRateProvider,
        settings: Settings,
    ):
        """
        Initialize the pipeline.

        Args:
            session_factory: Factory for database sessions
            object_store: Source of uploaded files
            rate_provider: Exchange rate source
            settings: Batch sizes, currency and staging configuration
        """
        self.repository = UploadRepository(session_factory)
        self.writer = BatchWriter(
            session_factory,
            base_currency=settings.base_currency,
            price_batch_size=settings.price_batch_size,
        )
        self.object_store = object_store
        self.rate_provider = rate_provider
        self.settings = settings

    def staging_path(self, upload_id) -> Path:
        return Path(self.settings.staging_dir) / f"upload-{upload_id}.csv"

    def run(self, upload_id) -> PipelineResult:
        """
        Process one upload.

        Args:
            upload_id: Id of the upload to process

        Returns:
            PipelineResult; status is MISSING for unknown uploads
        """
        upload = self.repository.get(upload_id)
        if upload is None:
            logger.warning(f"Upload {upload_id} not found, skipping stale work item")
            return PipelineResult(upload_id=str(upload_id), status=MISSING)

        if upload.status in (UploadStatus.COMPLETED, UploadStatus.FAILED):
            logger.info(f"Upload {upload_id} is already {upload.status.value}, nothing to do")
            return PipelineResult(upload_id=str(upload_id), status=upload.status.value)

        upload_id = upload.id
        result = PipelineResult(upload_id=str(upload_id), status=UploadStatus.PROCESSING.value)
        staging_path = self.staging_path(upload_id)
        start_time = datetime.now()

        # Persist immediately so a crash from here on is picked up on restart
        self.repository.mark_processing(upload_id)
        logger.info(f"Starting ingestion for upload {upload_id} ({upload.object_key})")

        try:
            lines = stage_object(self.object_store, upload.object_key, staging_path)
            result.total_rows = max(0, lines - 1)  # Subtract header

            validate_header(staging_path)
            self.repository.set_total_rows(upload_id, result.total_rows)
            logger.info(f"Total rows to process: {result.total_rows}")

            offset = self.repository.resume_offset(upload_id)
            result.resumed_from = offset
            if offset > 0:
                logger.info(f"Resuming upload {upload_id} from row {offset}")

            rates = self._rates_for(upload)

            completed = self._process_rows(upload_id, staging_path, rates, offset, result)

            if not completed:
                result.status = CANCELLED
                return result

            if self.repository.mark_completed(upload_id):
                result.status = UploadStatus.COMPLETED.value
                processing_time = (datetime.now() - start_time).total_seconds()
                logger.info(f"Upload {upload_id} completed in {processing_time:.1f} seconds")
            else:
                result.status = UploadStatus.FAILED.value
                logger.info(f"Upload {upload_id} was failed while finishing; leaving it failed")
            return result

        except Exception as e:
            logger.error(f"Ingestion failed for upload {upload_id}: {e}", exc_info=True)

            self.repository.cleanup(upload_id)
            reason = getattr(e, "message", None) or str(e) or type(e).__name__
            self.repository.mark_failed(upload_id, reason)

            result.status = UploadStatus.FAILED.value
            result.error = reason
            result.processed_rows = 0
            result.skipped_rows = 0
            return result

        finally:
            remove_staging_file(staging_path)

    def _rates_for(self, upload) -> Dict[str, float]:
        """Rates captured for this upload, fetched and stored on first use."""
        if upload.exchange_rates_snapshot:
            logger.info(f"Reusing exchange rate snapshot of upload {upload.id}")
            return upload.exchange_rates_snapshot

        rates = self.rate_provider.fetch_rates(self.settings.base_currency)
        self.repository.store_rates_snapshot(upload.id, rates)
        return rates

    def _process_rows(
        self,
        upload_id,
        staging_path: Path,
        rates: Dict[str, float],
        offset: int,
        result: PipelineResult,
    ) -> bool:
        """
        Parse the staged file from the resume offset and commit it batch by batch.

        Returns:
            False if the upload was cancelled, True once every row is committed
        """
        processed = offset
        result.processed_rows = offset
        # Reconcile with what is actually committed, in case a crash hit before the last update
        self.repository.set_processed_rows(upload_id, offset)

        skip_bad_rows = self.settings.bad_row_policy == "skip"
        row_number = offset

        try:
            for chunk in iter_row_chunks(staging_path, self.settings.batch_size, skip_rows=offset):
                batch: List[PriceRow] = []
                skipped = 0

                for record in chunk:
                    row_number += 1
                    try:
                        batch.append(
                            parse_row(record, row_number, currency_symbol=self.settings.currency_symbol)
                        )
                    except RowValidationError as e:
                        if not skip_bad_rows:
                            raise
                        skipped += 1
                        logger.warning(f"Skipping row {row_number} of upload {upload_id}: {e.message}")

                if self.repository.is_cancelled(upload_id):
                    logger.info(f"Upload {upload_id} was cancelled. Stopping processing.")
                    self.repository.cleanup(upload_id)
                    result.processed_rows = 0
                    result.skipped_rows = 0
                    return False

                self.writer.save_batch(upload_id, batch, rates, skipped=skipped)
                processed += len(batch) + skipped
                result.skipped_rows += skipped

                # Only after the batch is durable
                self.repository.set_processed_rows(upload_id, processed)
                result.processed_rows = processed

                if result.total_rows:
                    progress_pct = (processed / result.total_rows) * 100
                    logger.info(
                        f"Progress: {processed}/{result.total_rows} ({progress_pct:.1f}%)"
                    )

        except ParserError as e:
            raise RowValidationError(f"Corrupted data: {e}") from e

        return True
