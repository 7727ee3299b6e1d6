"""User profile lookup against the Clerk REST API."""

from __future__ import annotations

import httpx
from loguru import logger

from bents_assistant.application.exceptions import ConfigurationError, IdentityLookupError
from bents_assistant.domain.models import UserProfile

ANONYMOUS_USER_ID = "anonymous"


class ClerkIdentityService:
    """``IIdentityService`` backed by ``GET {api_url}/users/{id}``."""

    def __init__(self, client: httpx.AsyncClient, secret_key: str | None, api_url: str) -> None:
        self.client = client
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")

    async def fetch_user(self, user_id: str) -> UserProfile:
        """Fetch a profile, raising on any non-OK answer.

        Raises:
            ConfigurationError: No secret key is configured.
            IdentityLookupError: The provider answered with a non-2xx status.
        """
        if not self.secret_key:
            raise ConfigurationError("CLERK_SECRET_KEY is not configured")

        response = await self.client.get(
            f"{self.api_url}/users/{user_id}",
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/json",
            },
        )
        if not response.is_success:
            raise IdentityLookupError(response.status_code, response.text[:200])

        return self._to_profile(response.json())

    async def get_user(self, user_id: str) -> UserProfile | None:
        """Best-effort lookup: ``None`` for anonymous callers, missing key or non-OK answers.

        Transport errors (timeouts, connection failures) propagate so the
        caller's call policy can retry them.
        """
        if not user_id or user_id == ANONYMOUS_USER_ID or not self.secret_key:
            return None
        try:
            return await self.fetch_user(user_id)
        except IdentityLookupError as exc:
            logger.warning("Failed to fetch user info | user={} status={}", user_id, exc.status_code)
            return None

    @staticmethod
    def _to_profile(data: dict) -> UserProfile:
        email = None
        primary_id = data.get("primary_email_address_id")
        if primary_id:
            for entry in data.get("email_addresses") or []:
                if entry.get("id") == primary_id:
                    email = entry.get("email_address")
                    break
        return UserProfile(
            id=data["id"],
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=email,
        )
