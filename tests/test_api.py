from types import SimpleNamespace
import uuid
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
import pytest

from compass.core.database import get_db
from compass.core.identity import Principal
from compass.core.permissions import Role, derive_permissions
from compass.core.security import create_access_token, decode_credential, get_password_hash
from compass.main import app
from compass.services.existence import ExistenceResult


@pytest.fixture
def client(mock_db):
    app.dependency_overrides[get_db] = lambda: mock_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def resolve_as(monkeypatch):
    fake = MagicMock()
    fake.resolve = AsyncMock()
    monkeypatch.setattr("compass.core.deps.identity_resolver", fake)

    def _resolve_as(principal: Principal):
        fake.resolve.return_value = principal
        token = create_access_token(subject=principal.subject_id, role=principal.role)
        return {"Authorization": f"Bearer {token}"}

    return _resolve_as


def test_root_and_security_headers(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "Compass API Service"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in response.headers


def test_health_reports_database_state(client, monkeypatch):
    monkeypatch.setattr("compass.main.check_database_health", AsyncMock(return_value=False))

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["database"] == "unreachable"


def test_traveller_login_issues_traveller_token(client, mock_db, monkeypatch):
    traveller = SimpleNamespace(id=uuid.uuid4(), hashed_password=get_password_hash("wander123"), last_login_at=None)
    repo = MagicMock()
    repo.get_by_email = AsyncMock(return_value=traveller)
    monkeypatch.setattr("compass.api.v1.endpoints.auth.traveller_repository", repo)

    response = client.post(
        "/api/v1/auth/traveller/login",
        json={"email": "Wanderer@Example.com", "password": "wander123"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "traveller"
    credential = decode_credential(body["access_token"])
    assert credential.subject_id == str(traveller.id)
    assert traveller.last_login_at is not None
    mock_db.commit.assert_awaited()


def test_agent_login_with_wrong_password_is_401(client, monkeypatch):
    agent = SimpleNamespace(id=uuid.uuid4(), is_active=True, hashed_password=get_password_hash("right-pass"))
    repo = MagicMock()
    repo.get_by_email = AsyncMock(return_value=agent)
    monkeypatch.setattr("compass.api.v1.endpoints.auth.agent_repository", repo)

    response = client.post(
        "/api/v1/auth/agent/login",
        json={"email": "agent@example.com", "password": "wrong-pass"},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_me_describes_delegated_principal(client, resolve_as, make_member_principal):
    agent_id = uuid.uuid4()
    principal = make_member_principal(["package:read"], agent_id=agent_id)

    response = client.get("/api/v1/auth/me", headers=resolve_as(principal))

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "agent_member"
    assert body["effective_owner_id"] == str(agent_id)
    assert body["permissions"] == ["package:read"]


def test_permission_listing_returns_grantable_keys(client, resolve_as, agent_principal):
    response = client.get("/api/v1/common/permissions", headers=resolve_as(agent_principal))

    assert response.status_code == 200
    assert response.json()["permissions"] == sorted(derive_permissions(Role.AGENT_MEMBER))


def test_traveller_cannot_list_permissions(client, resolve_as):
    traveller_id = uuid.uuid4()
    principal = Principal(
        role=Role.TRAVELLER,
        subject_id=traveller_id,
        effective_owner_id=traveller_id,
        permissions=derive_permissions(Role.TRAVELLER),
    )

    response = client.get("/api/v1/common/permissions", headers=resolve_as(principal))

    assert response.status_code == 403
    assert response.json()["detail"] == "Forbidden"


def test_search_customer_email_returns_per_item_results(client, resolve_as, agent_principal, monkeypatch):
    known_id = uuid.uuid4()
    reconciler = MagicMock()
    reconciler.check_existence = AsyncMock(return_value={
        "known@example.com": ExistenceResult(exists=True, id=known_id),
        "new@example.com": ExistenceResult(exists=False),
    })
    monkeypatch.setattr("compass.api.v1.endpoints.common.traveller_email_reconciler", reconciler)

    response = client.post(
        "/api/v1/common/search-customer-email",
        json={"emails": ["known@example.com", "new@example.com"]},
        headers=resolve_as(agent_principal),
    )

    assert response.status_code == 200
    results = response.json()["results"]
    assert results["known@example.com"] == {"exists": True, "id": str(known_id)}
    assert results["new@example.com"] == {"exists": False, "id": None}


def test_search_username_requires_key(client, resolve_as, make_member_principal):
    principal = make_member_principal(["package:read"])

    response = client.post(
        "/api/v1/common/search-username",
        json={"usernames": ["ABC"]},
        headers=resolve_as(principal),
    )

    assert response.status_code == 403


def test_create_member_with_unknown_permission_is_422(client, resolve_as, agent_principal):
    response = client.post(
        "/api/v1/agent-members/",
        json={"first_name": "Ada", "last_name": "Guide", "password": "secret1", "permissions": ["root:all"]},
        headers=resolve_as(agent_principal),
    )

    assert response.status_code == 422
