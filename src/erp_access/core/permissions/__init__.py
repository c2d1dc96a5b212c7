"""Role-based access control: store, resolver, cache and route guards."""

from erp_access.core.permissions.cache import (
    InMemoryPermissionCache,
    PermissionCache,
    RedisPermissionCache,
)
from erp_access.core.permissions.dependencies import (
    Resolver,
    build_permission_cache,
    build_permission_resolver,
    get_permission_resolver,
)
from erp_access.core.permissions.guards import (
    PERMISSION_CHECK_FAILED,
    PERMISSION_DENIED,
    ROLE_CHECK_FAILED,
    ROLE_REQUIRED,
    SUPER_USER_CHECK_FAILED,
    SUPER_USER_REQUIRED,
    require_all_permissions,
    require_all_roles,
    require_any_permission,
    require_any_role,
    require_permission,
    require_role,
    require_super_user,
)
from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole
from erp_access.core.permissions.resolver import PermissionResolver
from erp_access.core.permissions.store import PermissionStore, SqlAlchemyPermissionStore
from erp_access.core.permissions.types import (
    EffectivePermissionSet,
    PermissionData,
    PermissionKey,
    RoleData,
    is_role_designated_super_user,
)


__all__ = [
    # Denial codes
    "PERMISSION_CHECK_FAILED",
    "PERMISSION_DENIED",
    "ROLE_CHECK_FAILED",
    "ROLE_REQUIRED",
    "SUPER_USER_CHECK_FAILED",
    "SUPER_USER_REQUIRED",
    # Types
    "EffectivePermissionSet",
    # Cache
    "InMemoryPermissionCache",
    # Models
    "Permission",
    "PermissionCache",
    "PermissionData",
    "PermissionKey",
    # Resolver
    "PermissionResolver",
    "PermissionStore",
    "RedisPermissionCache",
    "Resolver",
    "Role",
    "RoleData",
    "RolePermission",
    "SqlAlchemyPermissionStore",
    "UserRole",
    "build_permission_cache",
    "build_permission_resolver",
    "get_permission_resolver",
    "is_role_designated_super_user",
    # Guards
    "require_all_permissions",
    "require_all_roles",
    "require_any_permission",
    "require_any_role",
    "require_permission",
    "require_role",
    "require_super_user",
]
