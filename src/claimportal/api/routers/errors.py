"""Mapping from portal errors to HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ...domain.errors import InvalidCallerSignature, PortalError, Unauthorized


def http_error_from(error: PortalError) -> HTTPException:
    if isinstance(error, InvalidCallerSignature):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(error, Unauthorized):
        status_code = status.HTTP_403_FORBIDDEN
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )
