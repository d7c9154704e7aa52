"""
Data Ingestion Package
Handles price file ingestion, validation, and persistence for uploads.
"""

from .pipeline import PipelineResult, UploadPipeline
from .recovery import resume_stuck_uploads
from .repository import UploadRepository

__all__ = ["UploadPipeline", "PipelineResult", "UploadRepository", "resume_stuck_uploads"]
