"""
Existence Service
Bulk "does this value already belong to someone" checks backed by a
membership filter and a single batched store lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from compass.core.identity import bounded_lookup
from compass.core.membership_filter import ScalableMembershipFilter
from compass.core.simple_config import settings
from compass.repositories.agent_member import agent_member_repository
from compass.repositories.traveller import traveller_repository

logger = structlog.get_logger()

BulkLookup = Callable[[AsyncSession, Sequence[str]], Awaitable[dict[str, UUID]]]
LoadAll = Callable[[AsyncSession], Awaitable[list[str]]]


@dataclass(frozen=True)
class ExistenceResult:
    exists: bool
    id: Optional[UUID] = None


def _identity(value: str) -> str:
    return value.strip()


def _lower(value: str) -> str:
    return value.strip().lower()


class ExistenceReconciler:
    """
    Answers existence for many candidate values of one unique field.

    Values the filter rules out are answered without store access. All
    remaining candidates go to the store in one batched lookup, whose answer
    is final, so the filter's false positives never leak into results.
    """

    def __init__(
        self,
        name: str,
        membership_filter: ScalableMembershipFilter,
        bulk_lookup: BulkLookup,
        load_all: LoadAll,
        normalize: Callable[[str], str] = _identity,
    ) -> None:
        self.name = name
        self.filter = membership_filter
        self._bulk_lookup = bulk_lookup
        self._load_all = load_all
        self._normalize = normalize

    def record(self, value: str) -> None:
        """Register a newly created value."""
        self.filter.insert(self._normalize(value))

    async def warm_up(self, db: AsyncSession) -> int:
        """Load every existing value into the filter."""
        values = await bounded_lookup(self._load_all(db), timeout=0)
        count = self.filter.insert_many(self._normalize(v) for v in values)
        logger.info(
            "Membership filter warmed up",
            filter=self.name,
            values=count,
            layers=self.filter.layer_count,
        )
        return count

    async def check_existence(self, db: AsyncSession, items: Sequence[str]) -> dict[str, ExistenceResult]:
        results: dict[str, ExistenceResult] = {}
        keys_by_value: dict[str, list[str]] = {}
        seen: set[str] = set()

        for item in items:
            if item in seen:
                continue
            seen.add(item)
            value = self._normalize(item)
            if value in keys_by_value:
                keys_by_value[value].append(item)
            elif self.filter.may_contain(value):
                keys_by_value[value] = [item]
            else:
                results[item] = ExistenceResult(exists=False)

        pruned = len(results)
        candidates = list(keys_by_value)
        if candidates:
            found = await bounded_lookup(self._bulk_lookup(db, candidates))
            for value, keys in keys_by_value.items():
                record_id = found.get(value)
                result = ExistenceResult(exists=record_id is not None, id=record_id)
                for key in keys:
                    results[key] = result

        logger.debug(
            "Existence check completed",
            filter=self.name,
            requested=len(items),
            candidates=len(candidates),
            pruned=pruned,
        )
        return results


def _build_filter(name: str) -> ScalableMembershipFilter:
    return ScalableMembershipFilter(
        initial_capacity=settings.MEMBERSHIP_FILTER_CAPACITY,
        error_rate=settings.MEMBERSHIP_FILTER_ERROR_RATE,
        growth_factor=settings.MEMBERSHIP_FILTER_GROWTH_FACTOR,
        name=name,
    )


traveller_email_reconciler = ExistenceReconciler(
    name="traveller_email",
    membership_filter=_build_filter("traveller_email"),
    bulk_lookup=traveller_repository.find_ids_by_emails,
    load_all=traveller_repository.all_emails,
    normalize=_lower,
)

agent_member_username_reconciler = ExistenceReconciler(
    name="agent_member_username",
    membership_filter=_build_filter("agent_member_username"),
    bulk_lookup=agent_member_repository.find_ids_by_usernames,
    load_all=agent_member_repository.all_usernames,
)
