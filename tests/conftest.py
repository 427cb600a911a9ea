"""Shared test fixtures for the measure engine.

Database-backed tests run against an in-memory SQLite database (aiosqlite),
created fresh for every test.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from qme.config import clear_settings_cache
from qme.data_models import ClassificationDoc, MeasureDefinition, MeasureKey
from qme.storage import RepositoryFactory
from qme.storage.sqlalchemy import tables  # noqa: F401
from qme.storage.sqlalchemy.base import Base

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Load .env.dev for tests (same as local development)
CONFIG_DIR = PROJECT_ROOT / "config"
if (CONFIG_DIR / ".env.dev").exists():
    load_dotenv(CONFIG_DIR / ".env.dev")
elif (CONFIG_DIR / ".env").exists():
    load_dotenv(CONFIG_DIR / ".env")

EFFECTIVE_DATE = 1284883200  # 2010-09-19


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def measure_key() -> MeasureKey:
    return MeasureKey(
        measure_id="X",
        sub_id=None,
        effective_date=EFFECTIVE_DATE,
        test_batch="t1",
    )


@pytest.fixture
def measure_definition() -> MeasureDefinition:
    return MeasureDefinition(
        id="X",
        sub_id=None,
        nqf_id="0043",
        name="Pneumonia Vaccination Status for Older Adults",
        population_ids={"IPP": "ipp-1", "DENOM": "den-1", "NUMER": "num-1"},
    )


@pytest.fixture
def make_doc(measure_key: MeasureKey) -> Callable[..., ClassificationDoc]:
    """Build a ClassificationDoc for the default key."""

    def _make(patient_id: str, **overrides) -> ClassificationDoc:
        values = {
            "measure_id": measure_key.measure_id,
            "sub_id": measure_key.sub_id,
            "effective_date": measure_key.effective_date,
            "test_batch": measure_key.test_batch,
            "patient_id": patient_id,
        }
        values.update(overrides)
        return ClassificationDoc(**values)

    return _make


@pytest_asyncio.fixture
async def session():
    """Create an in-memory SQLite session for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def repositories(session: AsyncSession) -> RepositoryFactory:
    return RepositoryFactory(session)


@pytest_asyncio.fixture
async def stored_measure(
    repositories: RepositoryFactory, measure_definition: MeasureDefinition
) -> MeasureDefinition:
    """Measure definition saved to the measures table."""
    await repositories.measures.save(measure_definition)
    return measure_definition
