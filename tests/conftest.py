from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import ebh.models  # noqa: F401  registers every table on Base.metadata
from ebh.core.deps import get_db
from ebh.db.base import Base
from ebh.main import app
from ebh.models.site import Warehouse, Project
from ebh.models.vehicle import TransportUnit, Vehicle
from ebh.schemas.material import MaterialCreate
from ebh.schemas.receipt import ReceiptCreate
from ebh.services import ledger
from ebh.services.materials import create_material


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def warehouse(db):
    warehouse = Warehouse(code="KHO-A", name="Kho A")
    db.add(warehouse)
    await db.commit()
    return warehouse


@pytest.fixture
async def project(db):
    project = Project(code="CT-01", name="Công trình 01", status="active")
    db.add(project)
    await db.commit()
    return project


@pytest.fixture
async def vehicle(db):
    unit = TransportUnit(name="Vận tải Minh Phát")
    db.add(unit)
    await db.flush()
    vehicle = Vehicle(plate_number="29C-12345", driver_name="Nguyễn Văn A", transport_unit_id=unit.id)
    db.add(vehicle)
    await db.commit()
    return vehicle


@pytest.fixture
async def material(db):
    """Cát vàng, 1.5 Tấn per m³"""
    return await create_material(db, MaterialCreate(code="cat-vang", name="Cát vàng", density=1.5))


@pytest.fixture
def make_receipt(db):
    """Create a receipt from keyword fields; items are (material_id, qty_primary, qty_secondary, price)"""
    async def _make(kind, items, receipt_date=None, **fields):
        data = ReceiptCreate(
            receipt_date=receipt_date or date.today(),
            items=[
                {"material_id": m, "quantity_primary": qp, "quantity_secondary": qs, "unit_price": price}
                for m, qp, qs, price in items
            ],
            **fields,
        )
        return await ledger.create_receipt(db, kind, data)
    return _make
