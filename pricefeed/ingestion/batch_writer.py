"""
Batch Writer
Persists a batch of parsed rows and their prices in a single transaction.
"""

import logging
from typing import List, Mapping, Sequence

from sqlalchemy import insert, update
from sqlalchemy.orm import sessionmaker

from ..db.models import Product, ProductPrice, Upload
from ..models.price_row import PriceRow
from .currency import expand_prices
from .repository import as_uuid

logger = logging.getLogger(__name__)


class BatchWriter:
    """
    Writes products and product prices for one upload.

    A batch is all-or-nothing: products, every derived price and the
    skipped-row counter commit together or not at all.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        base_currency: str = "USD",
        price_batch_size: int = 1000,
    ):
        """
        Initialize the writer.

        Args:
            session_factory: Factory for database sessions
            base_currency: Currency the source amounts are expressed in
            price_batch_size: Max price rows per INSERT statement
        """
        self.Session = session_factory
        self.base_currency = base_currency
        self.price_batch_size = price_batch_size

    def save_batch(
        self,
        upload_id,
        rows: Sequence[PriceRow],
        rates: Mapping[str, float],
        skipped: int = 0,
    ) -> List[int]:
        """
        Insert a batch of rows with their prices in every currency.

        Args:
            upload_id: Owning upload
            rows: Parsed rows, in source order
            rates: Currency code -> multiplier relative to the base currency
            skipped: Rows dropped since the previous batch, added to the upload's counter

        Returns:
            Ids of the inserted products, in row order

        Raises:
            Exception: Any database error, after rolling the whole batch back
        """
        uid = as_uuid(upload_id)
        session = self.Session()

        try:
            # Products first, to get their generated ids
            products = [Product(name=r.name, expiration=r.expiration, upload_id=uid) for r in rows]
            session.add_all(products)
            session.flush()

            prices = [
                {"product_id": product.id, "currency": quote.currency, "amount": quote.amount}
                for product, row in zip(products, rows)
                for quote in expand_prices(row.amount, rates, self.base_currency)
            ]

            for i in range(0, len(prices), self.price_batch_size):
                session.execute(insert(ProductPrice), prices[i : i + self.price_batch_size])

            if skipped:
                session.execute(
                    update(Upload)
                    .where(Upload.id == uid)
                    .values(skipped_rows=Upload.skipped_rows + skipped),
                    execution_options={"synchronize_session": False},
                )

            session.commit()
            logger.debug(f"Saved {len(products)} products with {len(prices)} prices for upload {uid}")
            return [product.id for product in products]

        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
