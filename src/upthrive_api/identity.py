"""Resolve bearer credentials to workflow actors through Supabase Auth and the profiles table."""

from typing import Optional
from uuid import UUID

import httpx
from loguru import logger

from upthrive_api.workflow.enums import Role
from upthrive_api.workflow.exceptions import AuthenticationError
from upthrive_api.workflow.exceptions import UpstreamError
from upthrive_api.workflow.models import Actor
from upthrive_api.workflow.models import Profile


class SupabaseIdentityProvider:
    """
    Identity collaborator of the workflow engine.

    Verifies the access token by asking Supabase Auth who it belongs to
    (``GET /auth/v1/user``), then loads role and client scope from profiles.

    Parameters
    ----------
    supabase_url : str
        Base URL of the Supabase project
    service_key : str
        Service role key sent as the ``apikey`` header
    profiles
        Store exposing ``get_by_id(user_id)``
    timeout : float
        Timeout in seconds for the auth call
    transport : httpx.AsyncBaseTransport, optional
        Transport override (tests)
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        profiles,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_key = service_key
        self.profiles = profiles
        self.timeout = timeout
        self.transport = transport

    async def _get_auth_user(self, token: str) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    f"{self.supabase_url}/auth/v1/user",
                    headers={
                        "apikey": self.service_key,
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.RequestError as e:
            logger.error("Supabase auth unreachable", error=str(e))
            raise UpstreamError("Authentication service unavailable") from e

        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid token")
        if response.status_code >= 400:
            logger.error("Supabase auth error", status_code=response.status_code)
            raise UpstreamError("Authentication service error")
        return response.json()

    async def resolve_actor(self, token: Optional[str]) -> Actor:
        """
        Resolve a bearer token to an Actor.

        Raises
        ------
        AuthenticationError
            Token missing or rejected, or the user has no usable profile
        UpstreamError
            Supabase auth could not be reached or failed
        """
        if not token:
            raise AuthenticationError("No token provided")

        user = await self._get_auth_user(token)
        user_id = user.get("id")
        try:
            user_uuid = UUID(str(user_id)) if user_id else None
        except ValueError:
            user_uuid = None
        if user_uuid is None:
            logger.warning("Auth user has no valid id", user_id=str(user_id))
            raise AuthenticationError("Invalid token")

        row = await self.profiles.get_by_id(user_uuid)
        if row is None:
            raise AuthenticationError("User profile not found")
        profile = Profile.model_validate(row)

        try:
            role = Role(profile.role)
        except ValueError:
            logger.warning("Profile has unknown role", user_id=str(user_id), role=profile.role)
            raise AuthenticationError("User profile has no workflow role")

        return Actor(
            id=profile.id,
            role=role,
            client_id=profile.client_id,
            email=user.get("email"),
        )
