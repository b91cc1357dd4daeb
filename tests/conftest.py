import os

# Settings are read on first import of the app, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

import itertools

import pytest
from fastapi.testclient import TestClient

from shipsy import passwords
from shipsy.domain.models import Base
from shipsy.infrastructure.db import SessionLocal, engine
from shipsy.main import app

_phones = itertools.count(9000000001)

PASSWORD = "Passw0rd1"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(passwords, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def next_phone() -> str:
    return f"+91{next(_phones)}"


def register(client, email="user@example.com", password=PASSWORD, name="Test User", phone=None):
    """Register through the API and return (user, tokens, auth headers).

    The cookie jar is cleared so later requests only authenticate through
    the returned headers.
    """
    resp = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "name": name,
        "phone": phone or next_phone(),
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    client.cookies.clear()
    headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
    return data["user"], data["tokens"], headers


def create_customer(client, headers, **overrides):
    payload = {
        "name": "Asha Verma",
        "phone": next_phone(),
        "address": "12 MG Road, Bengaluru",
    }
    payload.update(overrides)
    resp = client.post("/api/customers/", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def create_shipment(client, headers, customer_id, **overrides):
    payload = {
        "customerId": customer_id,
        "type": "NATIONAL",
        "mode": "LAND",
        "startLocation": "Mumbai",
        "endLocation": "Delhi",
        "cost": "100.00",
        "calculatedTotal": "110.00",
    }
    payload.update(overrides)
    resp = client.post("/api/shipments/", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def owner(client):
    user, tokens, headers = register(client, email="owner@example.com")
    return {"user": user, "tokens": tokens, "headers": headers}


@pytest.fixture
def stranger(client):
    user, tokens, headers = register(client, email="stranger@example.com")
    return {"user": user, "tokens": tokens, "headers": headers}
