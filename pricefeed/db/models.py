"""
SQLAlchemy ORM Models
Database table definitions using SQLAlchemy ORM.
"""

from __future__ import annotations

import enum
from uuid import uuid4

from sqlalchemy import (
    JSON, TIMESTAMP, Column, Date, Enum, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class UploadStatus(str, enum.Enum):
    """Lifecycle of an upload."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Upload(Base):
    """
    Upload model.

    Tracks one ingestion run of a price file: its status, progress
    counters and the exchange rates captured for it.
    """
    __tablename__ = 'uploads'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    status = Column(Enum(UploadStatus, name='upload_status'), nullable=False,
                    default=UploadStatus.PENDING, index=True)

    # Progress
    total_rows = Column(Integer, nullable=False, default=0,
                        comment='Data rows in the source file (header excluded)')
    processed_rows = Column(Integer, nullable=False, default=0,
                            comment='Rows committed so far, inserted or skipped')
    skipped_rows = Column(Integer, nullable=False, default=0,
                          comment='Rows quarantined under the skip bad-row policy')
    failed_reason = Column(String(255), nullable=True)

    # Source
    object_key = Column(Text, nullable=False, comment='Object storage key of the price file')
    exchange_rates_snapshot = Column(JSON().with_variant(JSONB(), 'postgresql'), nullable=True,
                                     comment='Rate table used for this run')

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    products = relationship("Product", back_populates="upload", passive_deletes=True)

    def __repr__(self):
        return f"<Upload(id={self.id}, status={self.status})>"


class Product(Base):
    """
    Product model.

    One ingested row of a price file.
    """
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, index=True)
    expiration = Column(Date, nullable=True, index=True)
    upload_id = Column(Uuid(as_uuid=True), ForeignKey('uploads.id'), nullable=True, index=True)

    # Relationships
    upload = relationship("Upload", back_populates="products")
    prices = relationship("ProductPrice", back_populates="product",
                          cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Product(id={self.id}, name={self.name[:30]})>"


class ProductPrice(Base):
    """
    Product price model.

    The price of a product in one currency.
    """
    __tablename__ = 'product_prices'

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    currency = Column(String(20), nullable=False)
    # Unbounded: some rate table entries are in the millions per base unit
    amount = Column(Numeric, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="prices")

    __table_args__ = (
        Index('idx_product_prices_currency_amount', 'currency', 'amount'),
    )

    def __repr__(self):
        return f"<ProductPrice(product_id={self.product_id}, {self.currency} {self.amount})>"
