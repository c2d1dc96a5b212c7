"""Authentication module: token decoding and subject extraction."""

from erp_access.core.auth.backend import create_access_token, decode_token
from erp_access.core.auth.dependencies import CurrentSubject, get_subject_id
from erp_access.core.auth.middleware import RequestIdMiddleware, SubjectContextMiddleware
from erp_access.core.auth.schemas import TokenData


__all__ = [
    # Dependencies
    "CurrentSubject",
    # Middleware
    "RequestIdMiddleware",
    "SubjectContextMiddleware",
    # Schemas
    "TokenData",
    # Token utilities
    "create_access_token",
    "decode_token",
    "get_subject_id",
]
