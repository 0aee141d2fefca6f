"""FastAPI dependencies for accessing app state and the authenticated actor."""

from typing import Optional

from fastapi import Depends
from fastapi import Header
from fastapi import Request

from upthrive_api.settings import Settings
from upthrive_api.workflow.db.repository_profile import ProfileRepository
from upthrive_api.workflow.db.repository_request import RequestRepository
from upthrive_api.workflow.engine import RequestWorkflowEngine
from upthrive_api.workflow.exceptions import AuthenticationError
from upthrive_api.workflow.exceptions import ForbiddenError
from upthrive_api.workflow.exceptions import ServiceUnavailableError
from upthrive_api.workflow.models import Actor


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def _get_pool(request: Request):
    db_pool = getattr(request.app.state, "domain_db_pool", None)
    if db_pool is None or db_pool.pool is None:
        raise ServiceUnavailableError("Request database is not configured")
    return db_pool.pool


def get_request_repository(request: Request) -> RequestRepository:
    """Request repository bound to the app's domain database pool."""
    return RequestRepository(_get_pool(request))


def get_profile_repository(request: Request) -> ProfileRepository:
    """Profile repository bound to the app's domain database pool."""
    return ProfileRepository(_get_pool(request))


def get_workflow_engine(
    requests: RequestRepository = Depends(get_request_repository),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> RequestWorkflowEngine:
    """Workflow engine wired to the request and profile repositories."""
    return RequestWorkflowEngine(requests, profiles)


def get_media_store(request: Request):
    """Media store used for request attachments and completed work."""
    return request.app.state.media_store


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Returns
    -------
    Optional[str]
        The token, or None if the header is missing or not a bearer credential
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_actor(
    request: Request,
    authorization: Optional[str] = Header(
        None,
        alias="Authorization",
        description="<small>*Bearer access token issued by Supabase Auth*</small>",
    ),
) -> Actor:
    """
    Resolve the bearer credential to the acting user.

    Raises
    ------
    AuthenticationError
        401 if the header is missing or the token does not resolve to a profile
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise AuthenticationError("No token provided")

    identity_provider = getattr(request.app.state, "identity_provider", None)
    if identity_provider is None:
        raise ServiceUnavailableError("Identity provider is not configured")

    return await identity_provider.resolve_actor(token)


def require_role(*roles: str):
    """
    Build a dependency that only lets actors with one of ``roles`` through.

    Usage:
        actor: Actor = Depends(require_role("manager"))
    """

    async def _require_role(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role.value not in roles:
            raise ForbiddenError("Insufficient permissions")
        return actor

    return _require_role
