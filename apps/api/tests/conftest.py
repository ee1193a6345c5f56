from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import helpdesk.models.identity  # noqa: F401
from helpdesk.core.permissions import Actor
from helpdesk.core.roles import Role
from helpdesk.db import build_engine, get_identity_provider, get_store
from helpdesk.identity import LocalIdentityProvider
from helpdesk.models.document import Base
from helpdesk.schemas.account import AccountCreateIn
from helpdesk.services.account_service import AccountService, to_actor
from helpdesk.services.ticket_service import TicketService
from helpdesk.store import SqlDocumentStore

PASSWORD = "Password123!"

# Bootstrap actor used to provision accounts in fixtures; it has no profile of its own.
ROOT_ADMIN = Actor(id="root-admin", email="root@example.com", role=Role.ADMIN)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'helpdesk.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlDocumentStore(session_factory)


@pytest.fixture
def identity(session_factory):
    return LocalIdentityProvider(session_factory)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def accounts(store, identity, clock):
    return AccountService(store, identity, clock=clock)


@pytest.fixture
def tickets(store, clock):
    return TicketService(store, clock=clock)


@pytest.fixture
def make_account(accounts):
    def _make(role: Role, email: str, display_name: str | None = None) -> Actor:
        account = accounts.create_account(
            ROOT_ADMIN,
            AccountCreateIn(
                email=email,
                password=PASSWORD,
                display_name=display_name or email.split("@")[0],
                role=role,
            ),
        )
        return to_actor(account)

    return _make


@pytest.fixture
def customer(make_account):
    return make_account(Role.CUSTOMER, "customer@example.com")


@pytest.fixture
def other_customer(make_account):
    return make_account(Role.CUSTOMER, "other.customer@example.com")


@pytest.fixture
def employee(make_account):
    return make_account(Role.EMPLOYEE, "employee@example.com")


@pytest.fixture
def other_employee(make_account):
    return make_account(Role.EMPLOYEE, "other.employee@example.com")


@pytest.fixture
def admin(make_account):
    return make_account(Role.ADMIN, "admin@example.com")


@pytest.fixture
def client(store, identity):
    from helpdesk.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_identity_provider] = lambda: identity
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    def _headers(email: str, password: str = PASSWORD) -> dict:
        res = client.post("/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return {"Authorization": f"Bearer {res.json()['access_token']}"}

    return _headers
