"""Issuing and consuming password-change verification codes.

Codes are 6-digit numbers, stored only as Argon2id hashes, valid for a fixed
TTL, and throttled per user with a sliding window counted from the codes
already issued. Consuming one code invalidates every other unused code of
the same user. Every live code of a user is burned after a fixed number
of wrong guesses.
"""

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.clock import Clock, utc_now
from visionara.core.config import Settings
from visionara.core.errors import InvalidOrExpired, RateLimited
from visionara.core.logging import get_logger
from visionara.domain.entities import VerificationCode
from visionara.infrastructure.auth.code_hasher import verify_code
from visionara.infrastructure.persistence.repositories import VerificationCodeRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class VerificationCodePolicy:
    """Lifetime and throttling of verification codes.

    Attributes:
        ttl: How long an issued code stays usable.
        window: Length of the sliding rate-limit window.
        max_per_window: Issuances allowed per user within one window.
        max_attempts: Wrong guesses a live code survives before it is burned.
    """

    ttl: timedelta = timedelta(minutes=10)
    window: timedelta = timedelta(minutes=10)
    max_per_window: int = 3
    max_attempts: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerificationCodePolicy":
        return cls(
            ttl=timedelta(minutes=settings.verification_code_ttl_minutes),
            window=timedelta(minutes=settings.verification_code_window_minutes),
            max_per_window=settings.verification_code_max_per_window,
            max_attempts=settings.verification_code_max_attempts,
        )


def _well_formed(code: str) -> bool:
    return len(code) == 6 and code.isascii() and code.isdigit()


class VerificationCodeService:
    """Issues, checks and consumes verification codes."""

    def __init__(
        self,
        session: AsyncSession,
        policy: VerificationCodePolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
            policy: TTL and rate-limit settings.
            clock: Time source, injectable for tests.
        """
        self.session = session
        self.policy = policy or VerificationCodePolicy()
        self.clock = clock
        self.repo = VerificationCodeRepository(session)

    async def issue(self, user_id: str) -> str:
        """Issue a new code for a user.

        Returns:
            The plaintext code. It is not stored anywhere and must be handed
            straight to the mailer.

        Raises:
            RateLimited: If the user already received ``max_per_window``
                codes within the window. Nothing is written in that case.
        """
        now = self.clock()
        recent = await self.repo.count_created_since(user_id, now - self.policy.window)
        if recent >= self.policy.max_per_window:
            logger.info("Verification code rate limit hit", user_id=user_id, recent=recent)
            raise RateLimited()

        entity, plaintext = VerificationCode.generate(user_id, now, self.policy.ttl)
        await self.repo.create(entity)
        await self.session.commit()

        logger.info(
            "Verification code issued",
            user_id=user_id,
            code_id=entity.id,
            expires_at=entity.expires_at.isoformat(),
        )
        return plaintext

    async def _find_match(self, user_id: str, code: str) -> VerificationCode | None:
        if not _well_formed(code):
            return None

        now = self.clock()
        for candidate in await self.repo.list_live_for_user(user_id, now):
            if candidate.is_usable(now) and verify_code(code, candidate.code_hash):
                return candidate
        return None

    async def _record_failure(self, user_id: str, code: str) -> None:
        """Charge a wrong guess to the user's live codes and commit it.

        Malformed input is not a guess and is not counted.
        """
        if not _well_formed(code):
            return
        await self.repo.lock_unused_for_user(user_id)
        burned = await self.repo.record_failed_attempt(
            user_id, self.clock(), self.policy.max_attempts
        )
        await self.session.commit()
        if burned:
            logger.info(
                "Verification codes invalidated after repeated failures",
                user_id=user_id,
                invalidated=burned,
            )

    async def check(self, user_id: str, code: str) -> None:
        """Verify a code without consuming it.

        Raises:
            InvalidOrExpired: If no live code of the user matches.
        """
        if await self._find_match(user_id, code) is None:
            await self._record_failure(user_id, code)
            raise InvalidOrExpired()

    async def claim(self, user_id: str, code: str) -> VerificationCode:
        """Mark the matching code used and invalidate its siblings, uncommitted.

        The caller commits once the action the code authorizes has succeeded,
        or rolls back to give the code back. A wrong guess is the exception:
        its attempt count is committed before InvalidOrExpired is raised.

        Raises:
            InvalidOrExpired: If no live code matches or a concurrent claim
                won the race for it.
        """
        match = await self._find_match(user_id, code)
        if match is None:
            logger.info("Verification code rejected", user_id=user_id)
            await self._record_failure(user_id, code)
            raise InvalidOrExpired()

        now = self.clock()
        await self.repo.lock_unused_for_user(user_id)
        if not await self.repo.mark_used_if_unused(match.id, now):
            logger.info("Verification code already claimed", user_id=user_id, code_id=match.id)
            raise InvalidOrExpired()

        invalidated = await self.repo.invalidate_unused_for_user(user_id, now, exclude_id=match.id)
        match.used_at = now
        logger.info(
            "Verification code claimed",
            user_id=user_id,
            code_id=match.id,
            invalidated=invalidated,
        )
        return match

    async def consume(self, user_id: str, code: str) -> None:
        """Claim a code and commit.

        Raises:
            InvalidOrExpired: If the code is wrong, expired or already used.
        """
        try:
            await self.claim(user_id, code)
        except InvalidOrExpired:
            await self.session.rollback()
            raise
        await self.session.commit()
