import os
import uuid

# Settings are read at import time; pin them before compass is imported
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-thirty-two-characters")
os.environ.setdefault("STORE_LOOKUP_TIMEOUT_SECONDS", "5")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from compass.core.identity import Principal  # noqa: E402
from compass.core.permissions import Role, derive_permissions  # noqa: E402


@pytest.fixture
def mock_db():
    db = MagicMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    return db


@pytest.fixture
def agent_principal():
    agent_id = uuid.uuid4()
    return Principal(
        role=Role.AGENT,
        subject_id=agent_id,
        effective_owner_id=agent_id,
        permissions=derive_permissions(Role.AGENT),
    )


@pytest.fixture
def make_member_principal():
    def _make(permissions, agent_id=None):
        return Principal(
            role=Role.AGENT_MEMBER,
            subject_id=uuid.uuid4(),
            effective_owner_id=agent_id or uuid.uuid4(),
            permissions=frozenset(permissions),
        )

    return _make
