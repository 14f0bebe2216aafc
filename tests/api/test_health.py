"""Health Probes: liveness always answers, readiness follows the database."""

import coach.infrastructure.database as db_module


class _Manager:
    def __init__(self, healthy: bool):
        self.healthy = healthy

    async def health_check(self) -> bool:
        return self.healthy


async def test_liveness(client):
    resp = await client.get("/api/v1/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


async def test_ready_when_database_answers(client, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", _Manager(True))
    resp = await client.get("/api/v1/health/ready")
    assert resp.status_code == 200
    assert resp.json()["checks"]["database"] == "healthy"


async def test_not_ready_without_database(client, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", _Manager(False))
    resp = await client.get("/api/v1/health/ready")
    assert resp.status_code == 503
    assert resp.json()["reason"] == "database_unavailable"
