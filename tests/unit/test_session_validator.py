"""Unit tests for bearer credential extraction and resolution."""

from unittest.mock import AsyncMock

import pytest

from visionara.core.errors import NotAuthenticated
from visionara.domain.entities import Principal
from visionara.infrastructure.auth.session_validator import SessionValidator, extract_bearer_token
from visionara.infrastructure.identity.provider import IdentityProviderError


def test_header_takes_precedence_over_cookie():
    assert extract_bearer_token("Bearer header-token", "cookie-token") == "header-token"


def test_bearer_prefix_is_case_insensitive():
    assert extract_bearer_token("bearer abc", None) == "abc"


def test_cookie_used_when_header_absent():
    assert extract_bearer_token(None, "cookie-token") == "cookie-token"


def test_non_bearer_header_falls_back_to_cookie():
    assert extract_bearer_token("Basic dXNlcjpwYXNz", "cookie-token") == "cookie-token"


def test_empty_bearer_falls_back_to_cookie():
    assert extract_bearer_token("Bearer   ", "cookie-token") == "cookie-token"


def test_no_credential_anywhere():
    assert extract_bearer_token(None, None) is None
    assert extract_bearer_token("", "  ") is None


@pytest.mark.asyncio
async def test_authenticate_resolves_principal():
    provider = AsyncMock()
    provider.verify_token.return_value = Principal(user_id="u-1", email="a@x.com")
    validator = SessionValidator(provider)

    principal = await validator.authenticate("Bearer tok", "cookie")

    assert principal == Principal(user_id="u-1", email="a@x.com")
    provider.verify_token.assert_awaited_once_with("tok")


@pytest.mark.asyncio
async def test_missing_credential_does_not_call_provider():
    provider = AsyncMock()
    validator = SessionValidator(provider)

    with pytest.raises(NotAuthenticated):
        await validator.authenticate(None, None)

    provider.verify_token.assert_not_awaited()


@pytest.mark.asyncio
async def test_failures_are_indistinguishable():
    provider = AsyncMock()
    provider.verify_token.side_effect = IdentityProviderError("verify_token", "invalid JWT", 401)
    validator = SessionValidator(provider)

    with pytest.raises(NotAuthenticated) as rejected:
        await validator.authenticate("Bearer bad", None)
    with pytest.raises(NotAuthenticated) as missing:
        await validator.authenticate(None, None)

    assert rejected.value.message == missing.value.message == "Not authenticated"
    assert rejected.value.status_code == 401


@pytest.mark.asyncio
async def test_provider_timeout_is_not_authenticated():
    provider = AsyncMock()
    provider.verify_token.side_effect = IdentityProviderError("verify_token", "request timed out")

    with pytest.raises(NotAuthenticated):
        await SessionValidator(provider).authenticate(None, "cookie-token")
