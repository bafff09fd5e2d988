"""
Fixtures compartilhadas: SQLite em memória no lugar do PostgreSQL e um
requests.Session falso para o provedor OAuth do NICE.
"""

import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# main.py monta um app no import; nada de PostgreSQL nos testes
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NICE_AUTH_URL", "https://auth.nice.test")

from Database.db import create_db_engine, make_session_factory
from main import create_app
from nice.nice_services.auth import NiceAuthService
from Services.customers_services import CustomerService


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def service(db):
    """CustomerService com a tabela criada e os clientes de exemplo."""
    service = CustomerService(db)
    service.bootstrap()
    return service


@pytest.fixture
def http_session():
    return MagicMock()


@pytest.fixture
def auth_service(http_session):
    return NiceAuthService(
        auth_url="https://auth.nice.test",
        client_id="client-id",
        client_secret="client-secret",
        timeout=5,
        session=http_session,
    )


@pytest.fixture
def app(engine, auth_service):
    return create_app(engine=engine, auth_service=auth_service)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seeded_client(client):
    assert client.get("/init-db").status_code == 200
    return client
