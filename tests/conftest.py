"""
Pytest configuration and shared fixtures
"""

import io
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pricefeed.config.settings import Settings
from pricefeed.db.models import Base, Upload, UploadStatus
from pricefeed.errors import ExchangeRateError, ObjectStoreError

RATES = {"usd": 1.0, "eur": 0.92, "gbp": 0.79}


class FakeObjectStore:
    """In-memory object store."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects = dict(objects or {})
        self.opened: List[str] = []

    def open(self, key: str):
        self.opened.append(key)
        if key not in self.objects:
            raise ObjectStoreError(f"File not found in GCS: gs://test/{key}", {"key": key})
        return io.BytesIO(self.objects[key])


class FakeRateProvider:
    """Rate provider returning a fixed table, or failing."""

    def __init__(self, rates: Optional[Dict[str, float]] = None, fail: bool = False):
        self.rates = dict(RATES if rates is None else rates)
        self.fail = fail
        self.calls: List[str] = []

    def fetch_rates(self, base_currency: str = "USD") -> Dict[str, float]:
        self.calls.append(base_currency)
        if self.fail:
            raise ExchangeRateError("Failed to fetch current exchange rates: connection refused")
        return dict(self.rates)


def price_file(rows: List[str], header: str = "name;price;expiration", bom: bool = False) -> bytes:
    """Build the bytes of a price file."""
    text = "\n".join([header] + rows) + "\n"
    data = text.encode("utf-8")
    return b"\xef\xbb\xbf" + data if bom else data


def sample_rows(count: int) -> List[str]:
    return [f"Product {i};${i + 1}.99;2030-01-{(i % 28) + 1:02d}" for i in range(count)]


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def settings(tmp_path):
    """Settings with small batches and a temporary staging directory."""
    return Settings(
        _env_file=None,
        database_url="sqlite+pysqlite://",
        staging_dir=str(tmp_path),
        batch_size=2,
        price_batch_size=3,
    )


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def rate_provider():
    return FakeRateProvider()


@pytest.fixture
def make_upload(session_factory):
    """Create an upload row and return its id."""

    def _make(object_key: str = "uploads/test/prices.csv", **values):
        values.setdefault("status", UploadStatus.PENDING)
        with session_factory() as session:
            upload = Upload(object_key=object_key, **values)
            session.add(upload)
            session.commit()
            return upload.id

    return _make
