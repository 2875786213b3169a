from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from finance_manager.app import create_app
from finance_manager.config import AppConfig
from finance_manager.identity import UserCache

BASE = "/secure-finance-manager"


@pytest.fixture()
def app_config(tmp_path: Path):
    # Cheap hashing and key derivation keep the suite fast
    return AppConfig(
        DB_FILE=str(tmp_path / "test.sqlite"),
        BASE_PATH=BASE,
        ENCRYPTION_KEY="test-key",
        ENCRYPTION_SALT="test-salt",
        BCRYPT_ROUNDS=4,
        KDF_ITERATIONS=1000,
    )


@pytest.fixture()
def app(app_config):
    return create_app(app_config, user_cache=UserCache())


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def alice(client):
    response = client.post(f"{BASE}/users", json={"username": "alice", "password": "alice-pw"})
    assert response.status_code == 201
    return ("alice", "alice-pw")


@pytest.fixture()
def bob(client):
    response = client.post(f"{BASE}/users", json={"username": "bob", "password": "bob-pw"})
    assert response.status_code == 201
    return ("bob", "bob-pw")
