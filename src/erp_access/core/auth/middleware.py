"""Subject context and request tracing middleware."""

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from erp_access.core.auth.backend import decode_token


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()


class SubjectContextMiddleware(BaseHTTPMiddleware):
    """Middleware that attaches the authenticated subject to requests.

    Decodes the Bearer token (if present) and stores ``user_id`` and
    ``tenant_id`` on ``request.state``. Requests without a valid access
    token pass through untouched; authorization guards reject them.

    Attributes:
        exclude_paths: Paths that never carry a subject
    """

    def __init__(
        self,
        app: "ASGIApp",
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and inject subject context."""
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]
            token_data = decode_token(token)

            if token_data and token_data.type == "access":
                request.state.user_id = token_data.user_id
                request.state.tenant_id = token_data.tenant_id

                structlog.contextvars.bind_contextvars(
                    user_id=str(token_data.user_id),
                    tenant_id=str(token_data.tenant_id) if token_data.tenant_id else None,
                )
            else:
                logger.debug("bearer_token_rejected", path=request.url.path)

        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds a unique request ID to each request.

    The request ID is added to:
    - request.state.request_id
    - Response header X-Request-ID
    - Structlog context
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and add request ID."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.trace_id = request_id  # Alias for error handler

        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        structlog.contextvars.unbind_contextvars("request_id", "tenant_id", "user_id")

        return response
