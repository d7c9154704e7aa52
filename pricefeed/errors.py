"""
Errors
Exceptions raised while processing an upload.
"""

from typing import Optional


class IngestionError(Exception):
    """Base exception for ingestion errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class HeaderValidationError(IngestionError):
    """The file's first line does not match the expected columns."""


class RowValidationError(IngestionError):
    """A data row is malformed or carries an unsupported price."""

    def __init__(self, message: str, row_number: Optional[int] = None):
        super().__init__(message=message, details={"row": row_number})
        self.row_number = row_number


class DependencyError(IngestionError):
    """An external collaborator could not be reached."""


class ObjectStoreError(DependencyError):
    """The source object could not be read."""


class ExchangeRateError(DependencyError):
    """Exchange rates could not be fetched."""
