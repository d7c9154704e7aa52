"""
Database ORM Models
SQLAlchemy ORM models for database tables.
"""

from .models import Base, Product, ProductPrice, Upload, UploadStatus

__all__ = [
    "Base",
    "Upload",
    "UploadStatus",
    "Product",
    "ProductPrice",
]
