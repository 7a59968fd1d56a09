# tests/conftest.py
import os

# Antes de importar el servicio: hoja en memoria y bcrypt barato para los tests
os.environ.setdefault("USE_IN_MEMORY_STORE", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from sugar_service.db import SheetsStore
from sugar_service.main import create_app
from sugar_service.sessions import SessionManager
from sugar_service.sheets import InMemorySheetsClient

ALICE = {"username": "alice", "password": "pw123", "name": "Alice", "age": "30", "gender": "female"}


@pytest.fixture
def sheets():
    """Hoja de cálculo en memoria, vacía en cada test."""
    return InMemorySheetsClient()


@pytest.fixture
def store(sheets):
    return SheetsStore(sheets)


@pytest.fixture
def sessions():
    return SessionManager()


@pytest.fixture
def app(store, sessions):
    return create_app(store=store, sessions=sessions)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup_user(client):
    """Registra un usuario vía API y devuelve el JSON de la respuesta."""
    def _signup(**overrides):
        payload = {**ALICE, **overrides}
        r = client.post("/api/signup", json=payload)
        assert r.status_code == 200, r.text
        return r.json()
    return _signup


@pytest.fixture
def alice_session(signup_user):
    return signup_user()["sessionId"]
