"""
Fixtures compartidas para Pytest.
Configura base de datos de test, reloj fijo y clientes HTTP.
"""

from collections.abc import AsyncGenerator
from datetime import date
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.clock import get_today
from app.database import Base, get_db
from app.main import app
from app.models.child import Child
from app.models.vaccination import ScheduleEntry, Vaccine
from app.schemas.eligibility import CatalogEntry, DoseRecord

# ── Engine de test (SQLite async) ─────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)

# Fecha fija para todos los tests
TODAY = date(2025, 3, 1)


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Crea y destruye las tablas para cada test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provee una sesión de DB de test."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test que usa la DB de test y el reloj fijo."""

    async def _get_test_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_today] = lambda: TODAY

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Datos persistidos ─────────────────────────────────

@pytest_asyncio.fixture
async def test_child(db_session: AsyncSession) -> Child:
    """Niño de 5 meses a la fecha TODAY."""
    child = Child(
        id=uuid4(),
        first_name="Mateo",
        last_name="Quispe",
        birth_date=date(2024, 10, 1),
        guardian_name="Rosa Quispe",
        guardian_phone="987654321",
    )
    db_session.add(child)
    await db_session.commit()
    await db_session.refresh(child)
    return child


@pytest_asyncio.fixture
async def test_catalog(db_session: AsyncSession) -> dict[str, Vaccine]:
    """BCG (al nacer) + Pentavalente de 3 dosis (2, 4, 6 meses)."""
    bcg = Vaccine(id=uuid4(), code="BCG", name="BCG")
    penta = Vaccine(id=uuid4(), code="PENTA", name="Pentavalente")
    db_session.add_all([bcg, penta])
    await db_session.flush()

    db_session.add_all([
        ScheduleEntry(
            vaccine_id=bcg.id, dose_number=1, target_age_days=0,
            min_age_days=0, max_age_days=364, age_description="Al nacer",
        ),
        ScheduleEntry(
            vaccine_id=penta.id, dose_number=1, target_age_days=60,
            min_age_days=42, age_description="2 meses",
        ),
        ScheduleEntry(
            vaccine_id=penta.id, dose_number=2, target_age_days=120,
            min_age_days=70, min_interval_days=28, age_description="4 meses",
        ),
        ScheduleEntry(
            vaccine_id=penta.id, dose_number=3, target_age_days=180,
            min_age_days=98, min_interval_days=28, age_description="6 meses",
        ),
    ])
    await db_session.commit()
    return {"BCG": bcg, "PENTA": penta}


# ── Valores puros para el motor ───────────────────────

@pytest.fixture
def vaccine_ids() -> dict[str, object]:
    return {"BCG": uuid4(), "SRP": uuid4(), "PENTA": uuid4()}


@pytest.fixture
def make_entry(vaccine_ids):
    def _make(code: str, dose: int, target: int, **kwargs) -> CatalogEntry:
        return CatalogEntry(
            vaccine_id=vaccine_ids[code],
            dose_number=dose,
            target_age_days=target,
            vaccine_code=code,
            vaccine_name=code,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_dose(vaccine_ids):
    def _make(code: str, dose: int, applied: date) -> DoseRecord:
        return DoseRecord(
            vaccine_id=vaccine_ids[code], dose_number=dose, application_date=applied
        )
    return _make
