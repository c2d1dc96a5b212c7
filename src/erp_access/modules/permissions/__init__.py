"""Permissions module - the caller's effective roles and permissions."""

from erp_access.modules.permissions.routes import router


__all__ = ["router"]

# Module metadata
__module_info__ = {
    "name": "permissions",
    "version": "1.0.0",
    "description": "Self-service view of effective permissions",
    "dependencies": [],
}
