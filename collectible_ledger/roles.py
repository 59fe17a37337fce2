"""Role registry.

Roles are plain capability tags. Guarded operations look the caller up in the
registry before touching any state; there is no role hierarchy beyond ADMIN
being the role that administers every other role.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List

from .accounts import normalize_address
from .errors import UnauthorizedError


class Role(str, Enum):
    ADMIN = "ADMIN_ROLE"
    MINTER = "MINTER_ROLE"
    PAUSER = "PAUSER_ROLE"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        if isinstance(value, Role):
            return value
        key = str(value).strip().upper()
        for role in cls:
            if key in {role.name, role.value}:
                return role
        raise ValueError(f"unknown role: {value!r}")


# keccak256 of the role names; these are the identifiers external tooling sees.
ROLE_IDS: Dict[Role, str] = {
    Role.ADMIN: "0xa49807205ce4d355092ef5a8a18f56e8913cf4a201fbe287825b095693c21775",
    Role.MINTER: "0x9f2df0fed2c77648de5860a4cc508cd0818c85b8b8a1ab4ceeef8d981c8956a6",
    Role.PAUSER: "0x65d7a28e3265b37a6474929f336521b332c1681b933f6cb9f3376673440d862a",
}


def role_id(role: "Role | str") -> str:
    return ROLE_IDS[Role.parse(role)]


class RoleRegistry:
    def __init__(self, members: Dict[Role, Iterable[str]] | None = None) -> None:
        self._members: Dict[Role, set[str]] = {role: set() for role in Role}
        for role, accounts in (members or {}).items():
            for account in accounts:
                self._members[Role.parse(role)].add(normalize_address(account))

    def has_role(self, role: "Role | str", account: str) -> bool:
        return normalize_address(account) in self._members[Role.parse(role)]

    def check_role(self, role: "Role | str", account: str) -> None:
        """Raise UnauthorizedError unless `account` holds `role`."""
        r = Role.parse(role)
        if not self.has_role(r, account):
            raise UnauthorizedError(normalize_address(account), ROLE_IDS[r])

    def grant(self, role: "Role | str", account: str) -> bool:
        """Add `account` to `role`. Returns False if it was already a member."""
        r = Role.parse(role)
        addr = normalize_address(account)
        if addr in self._members[r]:
            return False
        self._members[r].add(addr)
        return True

    def revoke(self, role: "Role | str", account: str) -> bool:
        r = Role.parse(role)
        addr = normalize_address(account)
        if addr not in self._members[r]:
            return False
        self._members[r].discard(addr)
        return True

    def members(self, role: "Role | str") -> List[str]:
        return sorted(self._members[Role.parse(role)])

    def snapshot(self) -> Dict[Role, set[str]]:
        return {role: set(accounts) for role, accounts in self._members.items()}

    def restore(self, snap: Dict[Role, set[str]]) -> None:
        self._members = {role: set(accounts) for role, accounts in snap.items()}

    def to_dict(self) -> Dict[str, List[str]]:
        return {role.name: self.members(role) for role in Role}

    @classmethod
    def from_dict(cls, data: Dict[str, Iterable[str]]) -> "RoleRegistry":
        return cls({Role.parse(name): accounts for name, accounts in data.items()})
