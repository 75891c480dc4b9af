"""
Access control failures.

Every resolver and guard branch ends in an explicit allow or one of these.
The HTTP boundary (compass.core.deps) maps them to generic responses.
"""

from __future__ import annotations


class AccessControlError(Exception):
    """Base class for access control failures."""


class Unauthenticated(AccessControlError):
    """Credential is well formed but its subject can no longer be resolved."""


class Forbidden(AccessControlError):
    """Subject is resolvable but may not perform the operation."""

    def __init__(self, message: str = "Forbidden", missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = list(missing or [])


class StoreUnavailable(AccessControlError):
    """A required store lookup could not be completed."""
