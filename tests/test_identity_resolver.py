import asyncio
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from compass.core.exceptions import Forbidden, StoreUnavailable, Unauthenticated
from compass.core.identity import IdentityResolver, bounded_lookup
from compass.core.permissions import Role, derive_permissions


def _resolver(agent=None, member=None, traveller=None):
    agents = MagicMock()
    agents.get_active = AsyncMock(return_value=agent)
    members = MagicMock()
    members.get_active = AsyncMock(return_value=member)
    travellers = MagicMock()
    travellers.get = AsyncMock(return_value=traveller)
    return IdentityResolver(agents=agents, agent_members=members, travellers=travellers)


@pytest.mark.asyncio
async def test_agent_resolves_to_itself_with_derived_permissions(mock_db):
    agent_id = uuid.uuid4()
    resolver = _resolver(agent=SimpleNamespace(id=agent_id, is_active=True))

    principal = await resolver.resolve(mock_db, "agent", str(agent_id))

    assert principal.role == Role.AGENT
    assert principal.subject_id == agent_id
    assert principal.effective_owner_id == agent_id
    assert principal.permissions == derive_permissions(Role.AGENT)


@pytest.mark.asyncio
async def test_member_is_substituted_by_owning_agent(mock_db):
    member_id = uuid.uuid4()
    agent_id = uuid.uuid4()
    member = SimpleNamespace(id=member_id, agent_id=agent_id, permissions=["package:read", "agent_member:read"])
    resolver = _resolver(member=member)

    principal = await resolver.resolve(mock_db, Role.AGENT_MEMBER, member_id)

    assert principal.subject_id == member_id
    assert principal.effective_owner_id == agent_id
    assert principal.owns(agent_id)
    assert not principal.owns(member_id)
    assert principal.permissions == frozenset({"package:read", "agent_member:read"})


@pytest.mark.asyncio
async def test_member_stored_keys_outside_catalog_are_dropped(mock_db):
    member = SimpleNamespace(id=uuid.uuid4(), agent_id=uuid.uuid4(), permissions=["package:read", "legacy:key"])
    resolver = _resolver(member=member)

    principal = await resolver.resolve(mock_db, Role.AGENT_MEMBER, member.id)

    assert principal.permissions == frozenset({"package:read"})


@pytest.mark.asyncio
async def test_member_reflects_current_store_permissions(mock_db):
    member = SimpleNamespace(id=uuid.uuid4(), agent_id=uuid.uuid4(), permissions=["package:update"])
    resolver = _resolver(member=member)

    first = await resolver.resolve(mock_db, Role.AGENT_MEMBER, member.id)
    member.permissions = []
    second = await resolver.resolve(mock_db, Role.AGENT_MEMBER, member.id)

    assert first.has("package:update")
    assert not second.has("package:update")


@pytest.mark.asyncio
async def test_traveller_resolves_with_derived_permissions(mock_db):
    traveller_id = uuid.uuid4()
    resolver = _resolver(traveller=SimpleNamespace(id=traveller_id))

    principal = await resolver.resolve(mock_db, "traveller", traveller_id)

    assert principal.effective_owner_id == traveller_id
    assert principal.permissions == derive_permissions(Role.TRAVELLER)


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["agent", "agent_member", "traveller"])
async def test_deleted_subject_is_unauthenticated(mock_db, role):
    resolver = _resolver()

    with pytest.raises(Unauthenticated):
        await resolver.resolve(mock_db, role, uuid.uuid4())


@pytest.mark.asyncio
async def test_unknown_role_is_forbidden(mock_db):
    resolver = _resolver()

    with pytest.raises(Forbidden):
        await resolver.resolve(mock_db, "superuser", uuid.uuid4())


@pytest.mark.asyncio
async def test_malformed_subject_is_unauthenticated(mock_db):
    resolver = _resolver()

    with pytest.raises(Unauthenticated):
        await resolver.resolve(mock_db, "agent", "not-a-uuid")


@pytest.mark.asyncio
async def test_store_error_becomes_store_unavailable(mock_db):
    resolver = _resolver()
    resolver._agents.get_active = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("down")))

    with pytest.raises(StoreUnavailable):
        await resolver.resolve(mock_db, "agent", uuid.uuid4())


@pytest.mark.asyncio
async def test_bounded_lookup_times_out():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(StoreUnavailable):
        await bounded_lookup(slow(), timeout=0.01)


@pytest.mark.asyncio
async def test_bounded_lookup_without_bound_returns_value():
    async def quick():
        return 42

    assert await bounded_lookup(quick(), timeout=0) == 42
