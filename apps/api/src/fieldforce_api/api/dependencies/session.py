"""Session-aware dependencies for back-office administrator APIs."""

from __future__ import annotations

from typing import Awaitable, Callable
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldforce_api.db.session import get_session
from fieldforce_api.models.user import User
from fieldforce_api.services.auth.roles import has_minimum_role


async def require_admin_session(
    session_user: str | None = Header(None, alias="X-Session-User"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the authenticated administrator from forwarded session headers."""

    if not session_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session user context",
        )

    try:
        user_id = UUID(session_user)
    except ValueError as error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid session user identifier",
        ) from error

    stmt = select(User).where(User.id == user_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session user not found",
        )

    return user


def require_role(minimum_role: str) -> Callable[..., Awaitable[User]]:
    """Dependency factory admitting administrators at or above ``minimum_role``.

    Usage: ``user: User = Depends(require_role("manager"))``
    """

    async def _check(user: User = Depends(require_admin_session)) -> User:
        if not has_minimum_role(user.role, minimum_role):
            logger.warning(
                "Role check denied",
                user_id=str(user.id),
                role=user.role,
                required_role=minimum_role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {minimum_role} or higher required",
            )
        return user

    return _check


def ensure_company_access(user: User, company_id: int | None) -> None:
    """Reject access to records outside the administrator's company.

    Administrators without a company are platform-wide.
    """

    if user.company_id is None or company_id == user.company_id:
        return
    logger.warning(
        "Cross-company access denied",
        user_id=str(user.id),
        user_company_id=user.company_id,
        company_id=company_id,
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Record belongs to another company",
    )
