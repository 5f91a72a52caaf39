"""
Point the app at an in-memory SQLite database before anything imports it,
and create the schema once. Session tickers are slowed down so HTTP tests
never see a background tick.
"""
import os
import uuid

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("TICK_INTERVAL_SECONDS", "3600")

import pytest
from fastapi.testclient import TestClient

from gainstracker import models  # noqa: F401
from gainstracker.db import Base, engine
from gainstracker.main import app

Base.metadata.create_all(engine)

PWD = "StrongPassw0rd!"


def uniq_email(prefix="u"):
    return f"{prefix}-{uuid.uuid4().hex[:10]}@ex.com"


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth(client):
    """Registers a fresh user; returns (headers, user_id)."""
    email = uniq_email()
    r = client.post("/auth/register", json={"email": email, "name": "Lifter", "password": PWD})
    assert r.status_code == 201, r.text
    tok = client.post("/auth/login", json={"email": email, "password": PWD}).json()["access_token"]
    headers = {"Authorization": f"Bearer {tok}"}
    return headers, r.json()["id"]
