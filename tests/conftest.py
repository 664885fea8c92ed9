"""Shared fixtures: an in-memory SQLite database and an app bound to it."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from provider_onboarding.main import create_app
from provider_onboarding.models.database import Base, session_factory_for
from provider_onboarding.storage.database import DatabaseStorage


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = session_factory_for(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(db):
    return DatabaseStorage(db, actor="test_suite")


@pytest.fixture
def app(engine):
    return create_app(bind=engine)


@pytest.fixture
def client(app):
    return TestClient(app)


def make_provider(**overrides):
    payload = {
        "providerName": "Lakeside General Hospital",
        "providerType": "Hospital",
        "contactEmail": "it@lakeside.example.org",
        "contactPhone": "5551234567",
        "address": "12 Shore Rd",
        "ehrTenantId": "tenant-01",
        "ehrGroupId": "group-9",
        "notes": "Pilot site",
    }
    payload.update(overrides)
    return payload


def make_ehr_system(**overrides):
    payload = {
        "systemName": f"Epic {uuid.uuid4().hex[:6]}",
        "systemVersion": "2024.1",
        "apiEndpoint": "https://fhir.epic.example.com/api/FHIR/R4/",
        "authUrl": "https://fhir.epic.example.com/oauth2/authorize",
    }
    payload.update(overrides)
    return payload
