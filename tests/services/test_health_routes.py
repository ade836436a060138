"""Health probes — liveness always up, readiness needs database and store."""

import pytest

import metaphornik.infrastructure.database as db_module
from metaphornik.infrastructure.database import DatabaseSessionManager


@pytest.fixture
async def ready_db(tmp_path, monkeypatch):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'health.db'}")
    monkeypatch.setattr(db_module, "db_manager", manager)
    yield manager
    await manager.dispose()


async def test_liveness(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["service"] == "metaphornik-api"


async def test_readiness_with_database_and_store(client, ready_db):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"] == {"database": "healthy", "analyses": 0}


async def test_readiness_without_database(client, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 503
    assert res.json()["reason"] == "database_unavailable"
