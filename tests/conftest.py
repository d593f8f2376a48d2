# tests/conftest.py

import os
import tempfile
from typing import AsyncGenerator

# Settings are read at import time, so the test database has to be chosen
# before anything under app/ is imported.
TEST_DIR = tempfile.mkdtemp(prefix="warehouse-tests-")
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_PATH"] = os.path.join(TEST_DIR, "test_warehouse.db")
os.environ["BASE_URI"] = "/api"
os.environ["LEDGER_TIMEOUT_SECONDS"] = "30"
os.environ["LOG_PATH"] = ""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select

from main import app as main_app
from app.core.db import AsyncSessionLocal, Base, engine
from app.models.stock.stock_transaction_models import StockTransaction
from app.services.stock.stock_ledger_service import StockLedger


# --- database fixtures ---
@pytest_asyncio.fixture(autouse=True)
async def reset_database() -> AsyncGenerator[None, None]:
    """Fresh tables for every test; pooled connections are dropped afterwards
    so none of them outlives the event loop that opened it."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    await engine.dispose()


@pytest.fixture
def ledger() -> StockLedger:
    return StockLedger(AsyncSessionLocal)


@pytest.fixture
def transaction_count():
    """Counts transaction rows straight from the table, bypassing the ledger."""
    async def _count(sku: str | None = None) -> int:
        stmt = select(func.count()).select_from(StockTransaction)
        if sku is not None:
            stmt = stmt.where(StockTransaction.sku == sku)
        async with AsyncSessionLocal() as db:
            return await db.scalar(stmt)
    return _count


# --- HTTP client ---
@pytest_asyncio.fixture
async def client(ledger: StockLedger) -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run the lifespan, so wire the ledger here
    main_app.state.ledger = ledger
    async with AsyncClient(transport=ASGITransport(app=main_app), base_url="http://test") as ac:
        yield ac
