"""Domain entity describing the authenticated caller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Staff roles inside a tenant."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    DOCTOR = "DOCTOR"
    RECEPTION = "RECEPTION"
    ACCOUNTANT = "ACCOUNTANT"
    SUPPORT = "SUPPORT"


PRIVILEGED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER})


@dataclass(frozen=True)
class Principal:
    """Identity extracted from a verified access token."""

    user_id: str
    tenant_id: str
    role: Role
    branch_ids: tuple[str, ...] = field(default_factory=tuple)
    email: str | None = None

    def has_role(self, *roles: Role) -> bool:
        """Return ``True`` when the principal holds one of ``roles``."""

        return self.role in roles

    def is_privileged(self) -> bool:
        """Return ``True`` for roles that see every branch of the tenant."""

        return self.role in PRIVILEGED_ROLES


__all__ = ["PRIVILEGED_ROLES", "Principal", "Role"]
