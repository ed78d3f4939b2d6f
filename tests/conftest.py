"""Shared fixtures for listing ingestion tests."""

import random

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from listing_ingest.db.models import Base
from listing_ingest.models import NormalizationContext, RawCandidateRecord

from tests.fakes import InMemoryFingerprintStore


@pytest.fixture
def store():
    return InMemoryFingerprintStore()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def candidate():
    return RawCandidateRecord(
        title="2 BHK Apartment for Sale in Bandra",
        price_text="₹1.2 Cr",
        location_text="Bandra West",
        description_text="Sea-facing 2 BHK with parking and gym, 950 sq ft",
        images=["https://img.example.com/a.jpg", "https://img.example.com/a.jpg"],
        source_link="https://housing.com/in/buy/projects/page/101",
        source_id="housing",
        city="Mumbai",
    )


@pytest.fixture
def context():
    return NormalizationContext(
        source_name="Housing.com",
        source_url="https://housing.com/in/buy/projects/page/101",
        city="Mumbai",
    )


@pytest_asyncio.fixture
async def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
