"""Supabase Auth (GoTrue) identity provider."""

from typing import Any

import httpx

from visionara.core.logging import get_logger
from visionara.domain.entities import Principal
from visionara.infrastructure.identity.provider import (
    IdentityProvider,
    IdentityProviderError,
    IdentityProviderSettings,
)

logger = get_logger(__name__)


class SupabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by the Supabase Auth REST API.

    Admin calls authenticate with the service-role key; token checks and
    sign-in use the anon key. Every request is bounded by the configured
    timeout, and a timeout is reported like any other failure.
    """

    def __init__(
        self,
        settings: IdentityProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            settings: Connection settings.
            transport: Optional transport override (tests).
        """
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.settings.base_url}/auth/v1",
            timeout=httpx.Timeout(self.settings.timeout_seconds),
            transport=self._transport,
        )

    def _admin_headers(self) -> dict[str, str]:
        return {
            "apikey": self.settings.service_key,
            "Authorization": f"Bearer {self.settings.service_key}",
        }

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(
                    method, path, headers=headers, json=json, params=params
                )
        except httpx.TimeoutException as e:
            raise IdentityProviderError(operation, "request timed out") from e
        except httpx.HTTPError as e:
            raise IdentityProviderError(operation, f"transport error: {e}") from e

        if response.is_success:
            return response

        message = f"HTTP {response.status_code}"
        try:
            body = response.json()
            message = body.get("msg") or body.get("error_description") or body.get("message") or message
        except ValueError:
            pass
        raise IdentityProviderError(operation, message, status_code=response.status_code)

    async def create_identity(self, email: str, password: str) -> str:
        response = await self._request(
            "create_identity",
            "POST",
            "/admin/users",
            headers=self._admin_headers(),
            json={"email": email, "password": password, "email_confirm": True},
        )
        identity_id = response.json().get("id")
        if not identity_id:
            raise IdentityProviderError("create_identity", "response carried no user id")
        logger.info("Identity created at provider", identity_id=identity_id)
        return identity_id

    async def delete_identity(self, identity_id: str) -> None:
        await self._request(
            "delete_identity",
            "DELETE",
            f"/admin/users/{identity_id}",
            headers=self._admin_headers(),
        )
        logger.info("Identity deleted at provider", identity_id=identity_id)

    async def update_password(self, identity_id: str, password: str) -> None:
        await self._request(
            "update_password",
            "PUT",
            f"/admin/users/{identity_id}",
            headers=self._admin_headers(),
            json={"password": password},
        )
        logger.info("Password updated at provider", identity_id=identity_id)

    async def verify_token(self, token: str) -> Principal:
        response = await self._request(
            "verify_token",
            "GET",
            "/user",
            headers={
                "apikey": self.settings.anon_key,
                "Authorization": f"Bearer {token}",
            },
        )
        data = response.json()
        if not data.get("id"):
            raise IdentityProviderError("verify_token", "response carried no user id")
        return Principal(user_id=data["id"], email=data.get("email") or "")

    async def sign_in(self, email: str, password: str) -> bool:
        try:
            await self._request(
                "sign_in",
                "POST",
                "/token",
                headers={"apikey": self.settings.anon_key},
                json={"email": email, "password": password},
                params={"grant_type": "password"},
            )
        except IdentityProviderError as e:
            # 400 is how GoTrue reports wrong credentials
            if e.status_code in (400, 401):
                return False
            raise
        return True
