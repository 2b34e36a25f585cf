"""Translation of rewards domain failures into HTTP responses."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, status

from fieldforce_api.services.rewards.errors import NotFoundError, RewardsError, RewardsValidationError


def raise_http_error(exc: RewardsError) -> NoReturn:
    if isinstance(exc, RewardsValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_409_CONFLICT
    raise HTTPException(
        status_code=status_code,
        detail={"error": exc.kind, "message": str(exc), **exc.details()},
    ) from exc
