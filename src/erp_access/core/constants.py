"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Slug generation
MAX_SLUG_LENGTH = 63

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_ROLE_NAME_LENGTH = 100
MAX_ROLE_SLUG_LENGTH = 100
MAX_PERMISSION_RESOURCE_LENGTH = 100
MAX_PERMISSION_ACTION_LENGTH = 100

# RBAC
SUPER_USER_ROLE_SLUG = "admin"
SUPER_USER_SCOPE_ANY = "any"
SUPER_USER_SCOPE_GLOBAL = "global"
PERMISSION_SEPARATOR = ":"

# Permission cache
PERMISSION_CACHE_KEY_PREFIX = "rbac:perms:"
DEFAULT_PERMISSION_CACHE_TTL_SECONDS = 300
DEFAULT_PERMISSION_CACHE_MAX_ENTRIES = 10_000
REDIS_SCAN_BATCH_SIZE = 100

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 32

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"
