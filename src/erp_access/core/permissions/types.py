"""Value types shared by the permission store, resolver and guards."""

from collections.abc import Iterable
from typing import NamedTuple
from uuid import UUID

from pydantic import BaseModel, PrivateAttr

from erp_access.core.constants import PERMISSION_SEPARATOR, SUPER_USER_ROLE_SLUG


class PermissionKey(NamedTuple):
    """A ``(resource, action)`` pair identifying a capability.

    The vocabulary is open: any pair seeded into the store is valid.
    Being a tuple, a key compares equal to a plain ``(resource, action)``
    tuple, so callers may pass either.
    """

    resource: str
    action: str

    @classmethod
    def parse(cls, value: str) -> "PermissionKey":
        """Parse a ``"resource:action"`` string.

        Raises:
            ValueError: If either half is missing
        """
        resource, sep, action = value.partition(PERMISSION_SEPARATOR)
        if not sep or not resource or not action:
            raise ValueError(f"Invalid permission string: {value!r}")
        return cls(resource, action)

    def __str__(self) -> str:
        return f"{self.resource}{PERMISSION_SEPARATOR}{self.action}"


PermissionCheck = PermissionKey | tuple[str, str]


def to_permission_keys(checks: Iterable[PermissionCheck | str]) -> list[PermissionKey]:
    """Normalize tuples and ``"resource:action"`` strings to keys."""
    keys: list[PermissionKey] = []
    for check in checks:
        if isinstance(check, str):
            keys.append(PermissionKey.parse(check))
        else:
            resource, action = check
            keys.append(PermissionKey(resource, action))
    return keys


def is_role_designated_super_user(slug: str) -> bool:
    """Return True if a role with this slug confers super-user rights.

    This is the only place the bypass rule is defined.
    """
    return slug == SUPER_USER_ROLE_SLUG


class RoleData(BaseModel):
    """Snapshot of a role as seen by the resolver."""

    id: UUID
    tenant_id: UUID | None = None
    name: str
    slug: str
    description: str | None = None
    is_active: bool = True

    model_config = {"from_attributes": True, "frozen": True}


class PermissionData(BaseModel):
    """Snapshot of a permission as seen by the resolver."""

    id: UUID
    resource: str
    action: str
    description: str | None = None

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def key(self) -> PermissionKey:
        return PermissionKey(self.resource, self.action)


class EffectivePermissionSet(BaseModel):
    """Everything a subject is allowed to do, derived from active roles.

    Never persisted; owned by the resolver's cache.

    Attributes:
        user_id: The subject this set was computed for
        roles: Active roles assigned to the subject
        permissions: De-duplicated permissions granted by those roles
        is_super_user: True if any of the roles is the super-user role
    """

    user_id: str
    roles: tuple[RoleData, ...] = ()
    permissions: tuple[PermissionData, ...] = ()
    is_super_user: bool = False

    _permission_keys: frozenset[PermissionKey] = PrivateAttr(default_factory=frozenset)
    _role_slugs: frozenset[str] = PrivateAttr(default_factory=frozenset)

    def model_post_init(self, __context: object) -> None:
        self._permission_keys = frozenset(p.key for p in self.permissions)
        self._role_slugs = frozenset(r.slug for r in self.roles)

    @property
    def permission_keys(self) -> frozenset[PermissionKey]:
        return self._permission_keys

    @property
    def role_slugs(self) -> frozenset[str]:
        return self._role_slugs

    def grants(self, resource: str, action: str) -> bool:
        """Check an explicit grant, ignoring the super-user bypass."""
        return PermissionKey(resource, action) in self._permission_keys

    def has_role(self, slug: str) -> bool:
        return slug in self._role_slugs
