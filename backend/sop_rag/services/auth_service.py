"""Bearer token verification against the hosted auth service."""

from __future__ import annotations

import logging

import httpx

from sop_rag.config import Settings
from sop_rag.errors import ConfigurationError, Unauthorized

logger = logging.getLogger(__name__)


class TokenVerifier:
    """Resolves a bearer token to a user record by calling ``auth_user_url``."""

    def __init__(
        self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.settings = settings
        self._transport = transport

    async def verify(self, authorization: str | None) -> dict:
        if not authorization:
            raise Unauthorized("Unauthorized")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise Unauthorized("Unauthorized")
        if not self.settings.auth_user_url:
            raise ConfigurationError("AUTH_USER_URL not configured")

        headers = {"Authorization": authorization}
        if self.settings.auth_api_key:
            headers["apikey"] = self.settings.auth_api_key

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10) as client:
                resp = await client.get(self.settings.auth_user_url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Auth service unreachable: %s", type(e).__name__)
            raise Unauthorized("Unauthorized") from e

        if resp.status_code != 200:
            logger.info("Auth service rejected token (status %d)", resp.status_code)
            raise Unauthorized("Unauthorized")

        user = resp.json()
        logger.debug("Authenticated user id=%s", user.get("id"))
        return user
