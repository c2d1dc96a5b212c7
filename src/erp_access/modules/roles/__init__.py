"""Roles module - role assignment and permission grants."""

from erp_access.modules.roles.routes import router


__all__ = ["router"]

# Module metadata
__module_info__ = {
    "name": "roles",
    "version": "1.0.0",
    "description": "Role assignment and permission grant management",
    "dependencies": ["users"],
}
