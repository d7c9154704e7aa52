"""
Google Cloud Storage access for uploaded price files.

This module provides the object store used by the ingestion pipeline
to stream an uploaded file.
"""

import logging
from typing import BinaryIO, Optional, Protocol

from google.api_core import exceptions as gcp_exceptions
from google.cloud import storage

from ..errors import ObjectStoreError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Read access to uploaded objects."""

    def open(self, key: str) -> BinaryIO:
        """Open an object for streaming binary reads."""
        ...


class GCSObjectStore:
    """Object store backed by a single GCS bucket."""

    def __init__(self, bucket_name: str, client: Optional[storage.Client] = None):
        """
        Initialize the store.

        Args:
            bucket_name: Name of the GCS bucket holding uploads
            client: GCS client; a default client is created if omitted
        """
        if not bucket_name:
            raise ValueError("bucket_name is required")

        self.bucket_name = bucket_name
        self._client = client

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def open(self, key: str) -> BinaryIO:
        """
        Open an object for streaming reads.

        Args:
            key: Object path in the bucket (e.g., 'uploads/<id>/prices.csv')

        Returns:
            Readable binary file-like object

        Raises:
            ObjectStoreError: If the object is missing or cannot be read
        """
        blob = self.client.bucket(self.bucket_name).blob(key)
        location = f"gs://{self.bucket_name}/{key}"

        try:
            if not blob.exists():
                raise ObjectStoreError(f"File not found in GCS: {location}", {"key": key})
            logger.info(f"Streaming {location}")
            return blob.open("rb")

        except gcp_exceptions.NotFound as e:
            raise ObjectStoreError(f"File not found in GCS: {location}", {"key": key}) from e
        except gcp_exceptions.Forbidden as e:
            raise ObjectStoreError(f"Access denied to {location}", {"key": key}) from e
        except gcp_exceptions.GoogleAPIError as e:
            raise ObjectStoreError(f"Failed to read {location}: {e}", {"key": key}) from e
