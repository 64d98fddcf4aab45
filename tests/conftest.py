"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.db.database import Database
from shared.config import AppSettings, DatabaseSettings, SecuritySettings
from shared.utils.crypto import generate_key_hex

MEMORY_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def settings():
    """Settings pointing at a private in-memory database."""
    return AppSettings(
        database=DatabaseSettings(url=MEMORY_DATABASE_URL),
        security=SecuritySettings(encryption_key=generate_key_hex()),
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """TestClient with the lifespan running, so tables exist."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def database():
    """In-memory database with all tables created."""
    db = Database(MEMORY_DATABASE_URL)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
async def session(database):
    """Session committed at the end of the test."""
    async with database.session() as db_session:
        yield db_session


@pytest.fixture
def bot_fields():
    """Sample bot data used across tests."""
    return {
        "name": "BTC grid",
        "trading_pair": "BTC/USDT",
        "investment": 100.0,
        "status": "active",
        "upper_limit": 30000.0,
        "lower_limit": 25000.0,
        "grid_count": 10,
        "profit_per_grid": 0.01,
    }


@pytest.fixture
def bot_payload():
    """Sample bot creation request body."""
    return {
        "name": "BTC grid",
        "tradingPair": "BTC/USDT",
        "investment": 100,
        "status": "active",
        "upperLimit": 30000,
        "lowerLimit": 25000,
        "gridCount": 10,
        "profitPerGrid": 0.01,
    }
