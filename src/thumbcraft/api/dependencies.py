"""FastAPI dependencies for request context and shared services.

This module provides reusable FastAPI dependencies for:
- Settings and Unit of Work access
- Caller identity (owner id)
- Rate limiter and background runner from app state
"""

from typing import Annotated, Callable, Optional

from fastapi import Header, HTTPException, Request, status

from thumbcraft.core.config import Settings
from thumbcraft.services.rate_limit import RateLimiter
from thumbcraft.uow import UnitOfWork
from thumbcraft.workers.generation_worker import GenerationRunner


def get_settings(request: Request) -> Settings:
    """Get application settings loaded by the lifespan.

    Returns:
        Settings instance stored on app.state
    """
    return request.app.state.settings


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.generation_jobs.list_by_owner(owner_id)
    """
    return request.app.state.uow_factory


async def get_owner_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Resolve the authenticated caller.

    Authentication happens upstream; the gateway forwards the verified user id
    in the X-User-Id header.

    Raises:
        HTTPException: 401 Unauthorized if the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    return x_user_id.strip()


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_runner(request: Request) -> Optional[GenerationRunner]:
    return getattr(request.app.state, "runner", None)
