"""Identity provider base class.

The identity provider is the system of record for credentials: it owns
passwords and issues the access tokens that the session validator resolves.
The local user table only mirrors identities created through it.
"""

import abc
from dataclasses import dataclass

from visionara.core.config import Settings
from visionara.domain.entities import Principal


class IdentityProviderError(Exception):
    """A provider call failed: transport error, timeout, or non-2xx answer.

    Attributes:
        operation: Name of the provider call that failed.
        detail: Provider-supplied reason, safe to relay to the caller.
        status_code: HTTP status returned by the provider, None when no
            response was received.
    """

    def __init__(self, operation: str, message: str, status_code: int | None = None):
        self.operation = operation
        self.detail = message
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")


@dataclass(frozen=True)
class IdentityProviderSettings:
    """Connection settings for the identity provider.

    Attributes:
        base_url: Provider root URL without trailing slash.
        anon_key: Public key used for end-user calls (token checks, sign-in).
        service_key: Privileged key used for admin calls.
        timeout_seconds: Upper bound for every request.
    """

    base_url: str
    anon_key: str
    service_key: str
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityProviderSettings":
        return cls(
            base_url=settings.identity_provider_url,
            anon_key=settings.identity_provider_anon_key,
            service_key=settings.identity_provider_service_key,
            timeout_seconds=settings.identity_provider_timeout_seconds,
        )


class IdentityProvider(abc.ABC):
    """Abstract base class for external identity providers."""

    @abc.abstractmethod
    async def create_identity(self, email: str, password: str) -> str:
        """Create a pre-confirmed identity.

        Returns:
            The provider-assigned identity ID, reused as the local user ID.

        Raises:
            IdentityProviderError: If the provider refuses or cannot be reached.
        """
        pass

    @abc.abstractmethod
    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity.

        Raises:
            IdentityProviderError: If the provider refuses or cannot be reached.
        """
        pass

    @abc.abstractmethod
    async def update_password(self, identity_id: str, password: str) -> None:
        """Replace an identity's password.

        Raises:
            IdentityProviderError: If the provider refuses or cannot be reached.
        """
        pass

    @abc.abstractmethod
    async def verify_token(self, token: str) -> Principal:
        """Resolve an access token to the identity it was issued for.

        Raises:
            IdentityProviderError: If the token is rejected or the provider
                cannot be reached.
        """
        pass

    @abc.abstractmethod
    async def sign_in(self, email: str, password: str) -> bool:
        """Check a password without establishing a session for the caller.

        Returns:
            True if the credentials are accepted, False if they are rejected.

        Raises:
            IdentityProviderError: If the provider cannot be reached.
        """
        pass
