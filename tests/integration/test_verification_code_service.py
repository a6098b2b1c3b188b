"""Integration tests for issuing and consuming verification codes."""

from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.errors import InvalidOrExpired, RateLimited
from visionara.domain.services.verification_code_service import (
    VerificationCodePolicy,
    VerificationCodeService,
)
from visionara.infrastructure.persistence.models import VerificationCodeModel

USER_ID = "user-1"


async def _codes(session: AsyncSession) -> list[VerificationCodeModel]:
    result = await session.execute(
        select(VerificationCodeModel)
        .where(VerificationCodeModel.user_id == USER_ID)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_code_is_single_use(code_service):
    code = await code_service.issue(USER_ID)

    await code_service.consume(USER_ID, code)

    with pytest.raises(InvalidOrExpired):
        await code_service.consume(USER_ID, code)


@pytest.mark.asyncio
async def test_plaintext_is_never_persisted(code_service, db_session):
    code = await code_service.issue(USER_ID)

    stored = await _codes(db_session)
    assert len(stored) == 1
    assert stored[0].code_hash != code
    assert code not in stored[0].code_hash


@pytest.mark.asyncio
async def test_issuing_does_not_invalidate_earlier_codes(code_service, clock):
    first = await code_service.issue(USER_ID)
    clock.advance(seconds=5)
    await code_service.issue(USER_ID)

    await code_service.consume(USER_ID, first)


@pytest.mark.asyncio
async def test_consuming_invalidates_siblings(code_service, clock, db_session):
    first = await code_service.issue(USER_ID)
    clock.advance(seconds=5)
    second = await code_service.issue(USER_ID)

    await code_service.consume(USER_ID, second)

    with pytest.raises(InvalidOrExpired):
        await code_service.consume(USER_ID, first)
    assert all(code.used_at is not None for code in await _codes(db_session))


@pytest.mark.asyncio
async def test_other_users_codes_are_untouched(code_service):
    mine = await code_service.issue(USER_ID)
    theirs = await code_service.issue("user-2")

    await code_service.consume(USER_ID, mine)
    await code_service.consume("user-2", theirs)


@pytest.mark.asyncio
async def test_wrong_code_is_rejected(code_service):
    code = await code_service.issue(USER_ID)
    wrong = "100000" if code != "100000" else "100001"

    with pytest.raises(InvalidOrExpired):
        await code_service.consume(USER_ID, wrong)
    with pytest.raises(InvalidOrExpired):
        await code_service.consume(USER_ID, "abc")

    # Failed attempts leave the real code usable
    await code_service.consume(USER_ID, code)


@pytest.mark.asyncio
async def test_code_cannot_be_used_by_another_user(code_service):
    code = await code_service.issue(USER_ID)

    with pytest.raises(InvalidOrExpired):
        await code_service.consume("user-2", code)


@pytest.mark.asyncio
async def test_rate_limit_and_window_reset(code_service, clock, db_session):
    for _ in range(3):
        await code_service.issue(USER_ID)
        clock.advance(seconds=10)

    with pytest.raises(RateLimited):
        await code_service.issue(USER_ID)
    assert len(await _codes(db_session)) == 3

    clock.advance(minutes=10)
    await code_service.issue(USER_ID)
    assert len(await _codes(db_session)) == 4


@pytest.mark.asyncio
async def test_used_codes_still_count_toward_rate_limit(code_service):
    for _ in range(3):
        await code_service.consume(USER_ID, await code_service.issue(USER_ID))

    with pytest.raises(RateLimited):
        await code_service.issue(USER_ID)


@pytest.mark.asyncio
async def test_expired_code_is_rejected_even_when_hash_matches(code_service, clock):
    code = await code_service.issue(USER_ID)
    clock.advance(minutes=10)

    with pytest.raises(InvalidOrExpired) as exc:
        await code_service.consume(USER_ID, code)

    assert exc.value.message == "Invalid or expired verification code"


@pytest.mark.asyncio
async def test_zero_ttl_expires_immediately(db_session, clock):
    service = VerificationCodeService(
        db_session, policy=VerificationCodePolicy(ttl=timedelta(0)), clock=clock
    )
    code = await service.issue(USER_ID)

    with pytest.raises(InvalidOrExpired):
        await service.consume(USER_ID, code)


@pytest.mark.asyncio
async def test_check_does_not_consume(code_service):
    code = await code_service.issue(USER_ID)

    await code_service.check(USER_ID, code)
    await code_service.check(USER_ID, code)
    await code_service.consume(USER_ID, code)

    with pytest.raises(InvalidOrExpired):
        await code_service.check(USER_ID, code)


@pytest.mark.asyncio
async def test_claim_race_has_a_single_winner(code_service, db_session, clock):
    await code_service.issue(USER_ID)
    stored = (await _codes(db_session))[0]

    first = await code_service.repo.mark_used_if_unused(stored.id, clock())
    second = await code_service.repo.mark_used_if_unused(stored.id, clock())
    await db_session.commit()

    assert (first, second) == (True, False)


@pytest.mark.asyncio
async def test_rolled_back_claim_leaves_code_usable(code_service, db_session):
    code = await code_service.issue(USER_ID)

    await code_service.claim(USER_ID, code)
    await db_session.rollback()

    await code_service.consume(USER_ID, code)


def _wrong(code: str) -> str:
    return "100000" if code != "100000" else "100001"


@pytest.mark.asyncio
async def test_code_survives_fewer_wrong_guesses_than_the_limit(code_service):
    code = await code_service.issue(USER_ID)

    for _ in range(code_service.policy.max_attempts - 1):
        with pytest.raises(InvalidOrExpired):
            await code_service.check(USER_ID, _wrong(code))

    await code_service.consume(USER_ID, code)


@pytest.mark.asyncio
async def test_repeated_wrong_guesses_burn_live_codes(code_service, clock, db_session):
    first = await code_service.issue(USER_ID)
    clock.advance(seconds=5)
    second = await code_service.issue(USER_ID)
    wrong = next(c for c in ("100000", "100001", "100002") if c not in (first, second))

    for _ in range(code_service.policy.max_attempts):
        with pytest.raises(InvalidOrExpired):
            await code_service.consume(USER_ID, wrong)

    for code in (first, second):
        with pytest.raises(InvalidOrExpired):
            await code_service.check(USER_ID, code)
    stored = await _codes(db_session)
    assert all(c.used_at is not None for c in stored)
    assert all(c.failed_attempts == code_service.policy.max_attempts for c in stored)


@pytest.mark.asyncio
async def test_failed_attempts_survive_claim_rollback(code_service, db_session):
    code = await code_service.issue(USER_ID)

    with pytest.raises(InvalidOrExpired):
        await code_service.claim(USER_ID, _wrong(code))
    await db_session.rollback()

    assert [c.failed_attempts for c in await _codes(db_session)] == [1]


@pytest.mark.asyncio
async def test_malformed_input_is_not_counted(code_service, db_session):
    code = await code_service.issue(USER_ID)

    for _ in range(code_service.policy.max_attempts):
        with pytest.raises(InvalidOrExpired):
            await code_service.check(USER_ID, "12ab")

    assert [c.failed_attempts for c in await _codes(db_session)] == [0]
    await code_service.consume(USER_ID, code)


@pytest.mark.asyncio
async def test_wrong_guesses_do_not_touch_used_or_other_users_codes(code_service, db_session):
    used = await code_service.issue(USER_ID)
    await code_service.consume(USER_ID, used)
    other = await code_service.issue("user-2")

    with pytest.raises(InvalidOrExpired):
        await code_service.check(USER_ID, _wrong(used))

    assert [c.failed_attempts for c in await _codes(db_session)] == [0]
    await code_service.check("user-2", other)


@pytest.mark.asyncio
async def test_claims_lock_unused_codes_in_id_order(code_service, clock):
    code = await code_service.issue(USER_ID)
    clock.advance(seconds=5)
    await code_service.issue(USER_ID)
    locked = []
    real_lock = code_service.repo.lock_unused_for_user

    async def recording_lock(user_id):
        ids = await real_lock(user_id)
        locked.append(ids)
        return ids

    code_service.repo.lock_unused_for_user = recording_lock

    await code_service.consume(USER_ID, code)

    assert len(locked) == 1
    assert len(locked[0]) == 2
    assert locked[0] == sorted(locked[0])
