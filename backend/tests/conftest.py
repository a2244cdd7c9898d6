"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.helpers import get_open_banking_client
from api.webhooks import get_webhook_ingestor
from database import Base, get_db
from main import app
from services.linkage_state_machine import LinkageStateMachine
from services.webhook_ingestor import WebhookIngestor
from services.webhook_signature import WebhookSignatureVerifier
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    mapping,
    signing_keys,
)
from tests.fixtures.mocks import MockOpenBankingClient


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def ingestor(signing_keys):
    """A real WebhookIngestor verifying against the test key pair."""
    _, public_pem = signing_keys
    return WebhookIngestor(WebhookSignatureVerifier(public_pem), LinkageStateMachine())


@pytest.fixture
def mock_open_banking_client():
    """Create a mock aggregator client."""
    return MockOpenBankingClient()


@pytest.fixture(name="client")
def client_fixture(db, ingestor, mock_open_banking_client):
    """Create a test client with the test database and mocked aggregator."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_webhook_ingestor] = lambda: ingestor
    app.dependency_overrides[get_open_banking_client] = lambda: mock_open_banking_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
