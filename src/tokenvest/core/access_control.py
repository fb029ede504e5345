"""
Access Control for privileged vesting operations.

Setting the vested asset and creating schedules in batch are restricted to
the ledger owner and to addresses the owner has granted the operator role.

Security features:
- Owner-managed role assignments
- Ownership transfer restricted to the current owner
- Audit trail of every role and ownership change
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Protocol, Set

from tokenvest.core.vesting_exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class Role(Enum):
    """Roles recognised by the vesting ledger."""
    ADMIN = "admin"
    OPERATOR = "operator"


class PrivilegeGate(Protocol):
    """Interface consumed by the vesting ledger."""

    def require_privileged(self, caller: str) -> None:
        ...


@dataclass
class RoleBasedAccessControl:
    """
    Owner-based role access control.

    The owner always holds the admin role. Privileged ledger operations
    accept any admin or operator.

    Usage:
        rbac = RoleBasedAccessControl(owner="0xadmin")
        rbac.require_privileged("0xadmin")
    """

    owner: str = ""

    # Role assignments: role -> set of addresses
    roles: Dict[str, Set[str]] = field(default_factory=dict)

    # Audit log
    role_changes: List[Dict[str, Any]] = field(default_factory=list)

    time_provider: Callable[[], float] = time.time

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("Owner address cannot be empty.")
        self.owner = self.owner.lower()
        for role in Role:
            self.roles.setdefault(role.value, set())
        self.roles[Role.ADMIN.value].add(self.owner)

    def _require_owner(self, caller: str) -> None:
        if caller.lower() != self.owner:
            logger.warning(
                "Access denied: caller is not owner",
                extra={"event": "rbac.not_owner", "caller": caller[:10]},
            )
            raise UnauthorizedError(
                f"Unauthorized: caller {caller[:10]} is not the owner",
                details={"caller": caller},
            )

    def _audit(self, action: str, role: str, address: str, caller: str) -> None:
        self.role_changes.append({
            "action": action,
            "role": role,
            "address": address,
            "admin": caller.lower(),
            "timestamp": self.time_provider(),
        })

    def grant_role(self, caller: str, role: str, address: str) -> bool:
        """
        Grant a role to an address.

        Raises:
            UnauthorizedError: If caller is not the owner
        """
        self._require_owner(caller)
        address_norm = address.lower()
        self.roles.setdefault(role, set()).add(address_norm)
        self._audit("grant", role, address_norm, caller)

        logger.info(
            "Role granted",
            extra={
                "event": "rbac.role_granted",
                "role": role,
                "address": address_norm[:10],
            },
        )
        return True

    def revoke_role(self, caller: str, role: str, address: str) -> bool:
        """
        Revoke a role from an address. The owner's admin role cannot be revoked.

        Raises:
            UnauthorizedError: If caller is not the owner
        """
        self._require_owner(caller)
        address_norm = address.lower()
        if role == Role.ADMIN.value and address_norm == self.owner:
            raise ValueError("The owner's admin role cannot be revoked; transfer ownership instead.")
        if role in self.roles:
            self.roles[role].discard(address_norm)
        self._audit("revoke", role, address_norm, caller)

        logger.info(
            "Role revoked",
            extra={
                "event": "rbac.role_revoked",
                "role": role,
                "address": address_norm[:10],
            },
        )
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Hand the owner role to ``new_owner``.

        Raises:
            UnauthorizedError: If caller is not the owner
        """
        self._require_owner(caller)
        if not new_owner:
            raise ValueError("New owner address cannot be empty.")
        previous = self.owner
        self.owner = new_owner.lower()
        self.roles[Role.ADMIN.value].discard(previous)
        self.roles[Role.ADMIN.value].add(self.owner)
        self._audit("transfer_ownership", Role.ADMIN.value, self.owner, caller)
        logger.info(
            "Ownership transferred",
            extra={
                "event": "rbac.ownership_transferred",
                "previous": previous[:10],
                "owner": self.owner[:10],
            },
        )

    def has_role(self, role: str, address: str) -> bool:
        return address.lower() in self.roles.get(role, set())

    def is_privileged(self, caller: str) -> bool:
        return self.has_role(Role.ADMIN.value, caller) or self.has_role(Role.OPERATOR.value, caller)

    def require_privileged(self, caller: str) -> None:
        """
        Raises:
            UnauthorizedError: If caller holds neither the admin nor the operator role
        """
        if not caller or not self.is_privileged(caller):
            logger.warning(
                "Access denied: privileged operation",
                extra={"event": "rbac.access_denied", "caller": (caller or "")[:10]},
            )
            raise UnauthorizedError(
                f"Unauthorized: caller {(caller or '')[:10]} is not privileged",
                details={"caller": caller},
            )

    def get_role_members(self, role: str) -> Set[str]:
        return self.roles.get(role, set()).copy()
