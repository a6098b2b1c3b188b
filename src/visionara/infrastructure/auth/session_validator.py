"""Resolve the bearer credential of a request to an authenticated principal."""

from visionara.core.errors import NotAuthenticated
from visionara.core.logging import get_logger
from visionara.domain.entities import Principal
from visionara.infrastructure.identity.provider import IdentityProvider, IdentityProviderError

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: str | None, cookie: str | None) -> str | None:
    """Pick the credential to use, the Authorization header taking precedence.

    Args:
        authorization: Raw ``Authorization`` header value.
        cookie: Raw session cookie value.

    Returns:
        The token, or None if neither source carries one.
    """
    if authorization and authorization[: len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
        token = authorization[len(BEARER_PREFIX):].strip()
        if token:
            return token
    # Anything other than a usable bearer header falls back to the cookie
    if cookie and cookie.strip():
        return cookie.strip()
    return None


class SessionValidator:
    """Turns header/cookie credentials into a Principal via the provider.

    Missing credential, malformed header and provider rejection all raise
    the same NotAuthenticated error.
    """

    def __init__(self, provider: IdentityProvider, cookie_name: str = "sb-access-token") -> None:
        self.provider = provider
        self.cookie_name = cookie_name

    async def authenticate(self, authorization: str | None, cookie: str | None) -> Principal:
        token = extract_bearer_token(authorization, cookie)
        if token is None:
            raise NotAuthenticated()

        try:
            return await self.provider.verify_token(token)
        except IdentityProviderError as e:
            logger.info(
                "Token rejected by identity provider",
                status_code=e.status_code,
                error=str(e),
            )
            raise NotAuthenticated() from e
