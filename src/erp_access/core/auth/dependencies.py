"""FastAPI dependencies for the authenticated subject."""

from typing import Annotated

from fastapi import Depends, Request

from erp_access.core.errors import InvalidSubjectError


def get_subject_id(request: Request) -> str:
    """Return the authenticated subject id carried by the request.

    Args:
        request: The incoming request

    Returns:
        The subject id as a string

    Raises:
        InvalidSubjectError: If the request has no authenticated subject
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id is None or not str(user_id).strip():
        raise InvalidSubjectError(
            "Authentication required",
            error_code="subject_missing",
        )
    return str(user_id)


CurrentSubject = Annotated[str, Depends(get_subject_id)]
