"""
Object Storage Package
Access to uploaded files in object storage.
"""

from .gcs import GCSObjectStore, ObjectStore

__all__ = ["GCSObjectStore", "ObjectStore"]
