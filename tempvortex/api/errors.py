"""Mapping of engine errors to HTTP responses."""

from fastapi import HTTPException, status

from tempvortex.services.errors import (
    MessageNotFoundError,
    NoActiveSessionError,
    TempMailError,
)


def status_for(error: TempMailError) -> int:
    if isinstance(error, MessageNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, NoActiveSessionError):
        return status.HTTP_409_CONFLICT
    if error.is_network_error:
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


def http_error(error: TempMailError) -> HTTPException:
    """Typed error body: the code lets clients hint at connectivity vs. provider rejection."""
    return HTTPException(
        status_code=status_for(error),
        detail={
            "detail": error.detail,
            "code": error.error_code,
            "provider": error.provider.value if error.provider else None,
        },
    )
