"""Dependency injection for FastAPI."""

import inspect
from typing import TYPE_CHECKING, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, settings
from .exceptions import AuthenticationRequiredError, SuperOperatorRequiredError

if TYPE_CHECKING:
    from transit_backup.backup import BackupManager
    from .jobs import JobManager

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", settings)


async def get_backup_manager(request: Request) -> "BackupManager":
    """Get BackupManager instance from app state."""
    return request.app.state.backup_manager


async def get_job_manager(request: Request) -> "JobManager":
    """Get JobManager instance from app state."""
    return request.app.state.job_manager


async def require_super_operator(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Reject callers that are not super operators.

    An ``app.state.operator_check(request)`` callable, when installed, decides
    on its own. Otherwise the bearer token must be one of the configured
    operator tokens; with none configured every caller is let through.
    """
    operator_check = getattr(request.app.state, "operator_check", None)
    if operator_check is not None:
        allowed = operator_check(request)
        if inspect.isawaitable(allowed):
            allowed = await allowed
        if not allowed:
            raise SuperOperatorRequiredError()
        return

    tokens = get_settings(request).operator_tokens
    if not tokens:
        return
    if credentials is None:
        raise AuthenticationRequiredError()
    if credentials.credentials not in tokens:
        raise SuperOperatorRequiredError()
