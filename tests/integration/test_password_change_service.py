"""Integration tests for code-authorized password changes and resets."""

import pytest
from sqlalchemy import select

from visionara.core.errors import (
    Internal,
    InvalidOrExpired,
    NotFound,
    RateLimited,
    ValidationFailed,
)
from visionara.domain.entities import Principal
from visionara.domain.services.password_change_service import PasswordChangeService
from visionara.domain.services.password_validator import PasswordValidator
from visionara.infrastructure.persistence.models import AuditLogModel, VerificationCodeModel

NEW_PASSWORD = "fresh-password-9"


@pytest.fixture
def password_service(db_session, identity_provider, code_service, mailer, ledger):
    return PasswordChangeService(
        db_session,
        identity_provider,
        code_service,
        mailer,
        ledger,
        PasswordValidator(8),
        require_current_password=True,
    )


def _principal(user) -> Principal:
    return Principal(user_id=user.id, email=user.email)


async def _password_audits(db_session) -> list[AuditLogModel]:
    result = await db_session.execute(
        select(AuditLogModel).where(AuditLogModel.action == "PASSWORD_CHANGE")
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_request_code_mails_a_code(password_service, make_user, mailer):
    user = await make_user("a@x.com")

    await password_service.request_code(_principal(user), current_password="initial-pass-1")

    assert len(mailer.sent) == 1
    to, code, purpose = mailer.sent[0]
    assert to == "a@x.com"
    assert len(code) == 6 and code.isdigit()
    assert purpose == "password_change"


@pytest.mark.asyncio
async def test_request_code_requires_current_password(password_service, make_user, mailer):
    user = await make_user("a@x.com")

    with pytest.raises(ValidationFailed) as exc:
        await password_service.request_code(_principal(user))

    assert exc.value.message == "Current password is required"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_request_code_rejects_wrong_current_password(password_service, make_user, mailer):
    user = await make_user("a@x.com")

    with pytest.raises(ValidationFailed) as exc:
        await password_service.request_code(_principal(user), current_password="nope-nope-1")

    assert exc.value.message == "Current password is incorrect"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_request_code_without_current_password_check(
    db_session, identity_provider, code_service, mailer, ledger, make_user
):
    service = PasswordChangeService(
        db_session, identity_provider, code_service, mailer, ledger, require_current_password=False
    )
    user = await make_user("a@x.com")

    await service.request_code(_principal(user))

    assert "sign_in" not in identity_provider.calls
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_request_code_for_unknown_local_user(password_service):
    with pytest.raises(NotFound):
        await password_service.request_code(
            Principal(user_id="ghost", email="ghost@x.com"), current_password="whatever-1"
        )


@pytest.mark.asyncio
async def test_request_code_is_rate_limited(password_service, make_user, mailer):
    user = await make_user("a@x.com")
    for _ in range(3):
        await password_service.request_code(_principal(user), current_password="initial-pass-1")

    with pytest.raises(RateLimited):
        await password_service.request_code(_principal(user), current_password="initial-pass-1")

    assert len(mailer.sent) == 3


@pytest.mark.asyncio
async def test_change_with_code(password_service, make_user, mailer, identity_provider, db_session):
    user = await make_user("a@x.com")
    await password_service.request_code(_principal(user), current_password="initial-pass-1")

    await password_service.change_with_code(_principal(user), mailer.last_code, NEW_PASSWORD)

    assert identity_provider.identities[user.id]["password"] == NEW_PASSWORD
    audits = await _password_audits(db_session)
    assert len(audits) == 1
    assert audits[0].actor_id == user.id
    assert audits[0].entity_id == user.id
    assert NEW_PASSWORD not in str(audits[0].diff)


@pytest.mark.asyncio
async def test_code_cannot_be_reused(password_service, make_user, mailer):
    user = await make_user("a@x.com")
    await password_service.request_code(_principal(user), current_password="initial-pass-1")
    code = mailer.last_code
    await password_service.change_with_code(_principal(user), code, NEW_PASSWORD)

    with pytest.raises(InvalidOrExpired):
        await password_service.change_with_code(_principal(user), code, "another-pass-2")


@pytest.mark.asyncio
async def test_short_new_password_keeps_code(password_service, make_user, mailer, code_service):
    user = await make_user("a@x.com")
    await password_service.request_code(_principal(user), current_password="initial-pass-1")

    with pytest.raises(ValidationFailed):
        await password_service.change_with_code(_principal(user), mailer.last_code, "short")

    await code_service.check(user.id, mailer.last_code)


@pytest.mark.asyncio
async def test_provider_failure_gives_code_back(
    password_service, make_user, mailer, identity_provider, db_session
):
    user = await make_user("a@x.com")
    await password_service.request_code(_principal(user), current_password="initial-pass-1")
    identity_provider.fail("update_password", status_code=503)

    with pytest.raises(Internal) as exc:
        await password_service.change_with_code(_principal(user), mailer.last_code, NEW_PASSWORD)
    assert exc.value.message == "Failed to update password"

    identity_provider.recover("update_password")
    await password_service.change_with_code(_principal(user), mailer.last_code, NEW_PASSWORD)

    assert identity_provider.identities[user.id]["password"] == NEW_PASSWORD
    assert len(await _password_audits(db_session)) == 1


@pytest.mark.asyncio
async def test_wrong_code_changes_nothing(password_service, make_user, identity_provider, db_session):
    user = await make_user("a@x.com")
    await password_service.request_code(_principal(user), current_password="initial-pass-1")

    with pytest.raises(InvalidOrExpired):
        await password_service.change_with_code(_principal(user), "000000", NEW_PASSWORD)

    assert identity_provider.identities[user.id]["password"] == "initial-pass-1"
    assert await _password_audits(db_session) == []


@pytest.mark.asyncio
async def test_consuming_one_code_invalidates_the_others(
    password_service, make_user, mailer, db_session
):
    user = await make_user("a@x.com")
    await password_service.request_code(_principal(user), current_password="initial-pass-1")
    first = mailer.last_code
    await password_service.request_code(_principal(user), current_password="initial-pass-1")
    second = mailer.last_code

    await password_service.change_with_code(_principal(user), second, NEW_PASSWORD)

    if first != second:
        with pytest.raises(InvalidOrExpired):
            await password_service.change_with_code(_principal(user), first, "another-pass-2")
    result = await db_session.execute(
        select(VerificationCodeModel).where(VerificationCodeModel.used_at.is_(None))
    )
    assert result.scalars().all() == []


# --- forgot password --------------------------------------------------------


@pytest.mark.asyncio
async def test_reset_code_for_unknown_email_is_silent(password_service, mailer, identity_provider):
    await password_service.request_reset_code("nobody@x.com")

    assert mailer.sent == []


@pytest.mark.asyncio
async def test_reset_request_throttling_is_silent(password_service, make_user, mailer):
    await make_user("a@x.com")
    for _ in range(5):
        await password_service.request_reset_code("a@x.com")

    assert len(mailer.sent) == 3
    assert all(purpose == "password_reset" for _, _, purpose in mailer.sent)


@pytest.mark.asyncio
async def test_verify_reset_code_does_not_consume(password_service, make_user, mailer):
    await make_user("a@x.com")
    await password_service.request_reset_code("a@x.com")

    await password_service.verify_reset_code("a@x.com", mailer.last_code)
    await password_service.verify_reset_code("a@x.com", mailer.last_code)


@pytest.mark.asyncio
async def test_verify_reset_code_unknown_email(password_service):
    with pytest.raises(InvalidOrExpired):
        await password_service.verify_reset_code("nobody@x.com", "123456")


@pytest.mark.asyncio
async def test_reset_with_code(password_service, make_user, mailer, identity_provider, db_session):
    user = await make_user("a@x.com")
    await password_service.request_reset_code("a@x.com")

    await password_service.reset_with_code("a@x.com", mailer.last_code, NEW_PASSWORD)

    assert identity_provider.identities[user.id]["password"] == NEW_PASSWORD
    assert len(await _password_audits(db_session)) == 1
    with pytest.raises(InvalidOrExpired):
        await password_service.verify_reset_code("a@x.com", mailer.last_code)


@pytest.mark.asyncio
async def test_reset_code_of_another_user_is_rejected(password_service, make_user, mailer):
    await make_user("a@x.com")
    await make_user("b@x.com")
    await password_service.request_reset_code("a@x.com")

    with pytest.raises(InvalidOrExpired):
        await password_service.reset_with_code("b@x.com", mailer.last_code, NEW_PASSWORD)


@pytest.mark.asyncio
async def test_expired_reset_code_is_rejected(password_service, make_user, mailer, clock):
    await make_user("a@x.com")
    await password_service.request_reset_code("a@x.com")
    clock.advance(minutes=11)

    with pytest.raises(InvalidOrExpired):
        await password_service.reset_with_code("a@x.com", mailer.last_code, NEW_PASSWORD)
