"""Shared fixtures: a throwaway SQLite ledger per test and fake collaborators."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from src.billing import lifecycle
from src.clients.catalog import ServiceRef
from src.clients.patients import PatientRef
from src.core.exceptions import NotFoundError
from src.database import Base, get_db
from src.main import app
from src.schemas import ChargeCreate, InvoiceCreate

PATIENTS = {
    "pat_001": PatientRef(id="pat_001", name="Ada Obi"),
    "pat_002": PatientRef(id="pat_002", name="Tunde Bello"),
}

SERVICES = {
    "svc_consult": ServiceRef(id="svc_consult", name="General consultation", current_price=Decimal("50.00")),
    "svc_xray": ServiceRef(id="svc_xray", name="Chest X-ray", current_price=Decimal("30.00")),
    "svc_lab": ServiceRef(id="svc_lab", name="Full blood count", current_price=Decimal("12.50")),
}


async def _resolve_patient(patient_id):
    if patient_id not in PATIENTS:
        raise NotFoundError("Patient", patient_id)
    return PATIENTS[patient_id]


async def _resolve_service(service_id):
    if service_id not in SERVICES:
        raise NotFoundError("Service", service_id)
    return SERVICES[service_id]


@pytest.fixture
def patients():
    mock = AsyncMock()
    mock.resolve_patient = AsyncMock(side_effect=_resolve_patient)
    return mock


@pytest.fixture
def catalog():
    mock = AsyncMock()
    mock.resolve_service = AsyncMock(side_effect=_resolve_service)
    return mock


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so concurrent sessions get their own connections
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_invoice(db, patients, catalog):
    """Create a draft invoice; charges are (service_id, quantity, unit_price) tuples."""

    async def _make(charges=(("svc_consult", 2, "50.00"),), patient_id="pat_001", **fields):
        request = InvoiceCreate(
            patient_id=patient_id,
            charges=[
                ChargeCreate(service_id=service_id, quantity=quantity, unit_price=unit_price)
                for service_id, quantity, unit_price in charges
            ],
            **fields,
        )
        return await lifecycle.create_invoice(db, patients, catalog, request)

    return _make


@pytest_asyncio.fixture
async def client(session_factory, patients, catalog):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    with patch("src.routes.invoices.patients", patients), patch("src.routes.invoices.catalog", catalog):
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    app.dependency_overrides.clear()
