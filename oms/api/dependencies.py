"""Shared API dependencies and result-to-HTTP mapping."""

from fastapi import Header, HTTPException, status

from oms.application.results import ServiceResult
from oms.domain.exceptions import ErrorKind
from oms.infrastructure.bootstrap import Container, get_container

# Stable outcome per error kind: not-found, rejected, invalid, retry-later.
ERROR_KIND_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.BUSINESS_RULE: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_services() -> Container:
    """Get the wired application services."""
    return get_container()


def get_actor(x_actor: str | None = Header(default=None)) -> str:
    """Actor recorded on audit fields, from the ``X-Actor`` header."""
    return (x_actor or "").strip() or "api"


def raise_for_failure(result: ServiceResult, default_code: str = "REQUEST_FAILED") -> None:
    """Raise an HTTPException for a failed service result.

    Raises:
        HTTPException: With the status mapped from the error kind.
    """
    if result.success:
        return
    status_code = ERROR_KIND_STATUS.get(result.error_kind, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(
        status_code=status_code,
        detail={
            "error_code": result.error_code or default_code,
            "message": result.error or "Request failed",
            "details": result.details,
        },
    )
