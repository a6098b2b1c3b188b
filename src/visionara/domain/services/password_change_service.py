"""Password change and forgot-password flows.

Both flows follow the same shape: issue a code and mail it, then claim the
code, rotate the password at the identity provider, and only then commit the
claim. A provider failure rolls the claim back so the code stays usable.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.errors import (
    Internal,
    InvalidOrExpired,
    NotFound,
    RateLimited,
    ValidationFailed,
)
from visionara.core.logging import get_logger
from visionara.domain.entities import AuditAction, Principal
from visionara.domain.services.audit_ledger import AuditLedger
from visionara.domain.services.identity_synchronizer import USERS_ENTITY
from visionara.domain.services.password_validator import PasswordValidator
from visionara.domain.services.verification_code_service import VerificationCodeService
from visionara.infrastructure.identity.provider import IdentityProvider, IdentityProviderError
from visionara.infrastructure.persistence.models import UserModel
from visionara.infrastructure.persistence.repositories import UserRepository
from visionara.infrastructure.services.email.verification_mailer import (
    PURPOSE_PASSWORD_CHANGE,
    PURPOSE_PASSWORD_RESET,
    VerificationMailer,
)

logger = get_logger(__name__)


class PasswordChangeService:
    """Service for code-authorized password changes."""

    def __init__(
        self,
        session: AsyncSession,
        provider: IdentityProvider,
        codes: VerificationCodeService,
        mailer: VerificationMailer,
        ledger: AuditLedger,
        password_validator: PasswordValidator | None = None,
        require_current_password: bool = True,
    ) -> None:
        """Initialize the password change service.

        Args:
            session: SQLAlchemy async session, shared with ``codes``.
            provider: External identity provider.
            codes: Verification code issuer.
            mailer: Delivers codes by email.
            ledger: Audit sink.
            password_validator: Policy for new passwords.
            require_current_password: Re-check the current password before
                issuing a code to a signed-in user.
        """
        self.session = session
        self.provider = provider
        self.codes = codes
        self.mailer = mailer
        self.ledger = ledger
        self.password_validator = password_validator or PasswordValidator()
        self.require_current_password = require_current_password
        self.users = UserRepository(session)

    async def _local_user(self, user_id: str) -> UserModel:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound()
        return user

    async def request_code(self, principal: Principal, current_password: str | None = None) -> None:
        """Issue a code to a signed-in user and mail it.

        Raises:
            ValidationFailed: If the current password is required and missing
                or incorrect.
            NotFound: If the principal has no local account.
            RateLimited: If too many codes were issued recently.
        """
        if self.require_current_password and not current_password:
            raise ValidationFailed("Current password is required")

        user = await self._local_user(principal.user_id)

        if current_password is not None:
            try:
                accepted = await self.provider.sign_in(user.email, current_password)
            except IdentityProviderError as e:
                logger.error("Current password check failed", user_id=user.id, error=str(e))
                raise Internal("Failed to verify current password") from e
            if not accepted:
                raise ValidationFailed("Current password is incorrect")

        code = await self.codes.issue(user.id)
        await self.mailer.send_code(user.email, code, PURPOSE_PASSWORD_CHANGE)

    async def change_with_code(self, principal: Principal, code: str, new_password: str) -> None:
        """Consume a code and set the signed-in user's new password.

        Raises:
            ValidationFailed: If the new password breaks the policy.
            InvalidOrExpired: If the code does not match a live code.
            Internal: If the provider refused the new password.
        """
        self.password_validator.ensure_valid(new_password, field="new_password")
        await self._rotate_with_code(principal.user_id, code, new_password)

    async def request_reset_code(self, email: str) -> None:
        """Issue a reset code for an email address, if it belongs to a user.

        Always returns normally so the response cannot reveal whether an
        account exists. Throttled requests are dropped the same way.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        try:
            code = await self.codes.issue(user.id)
        except RateLimited:
            logger.info("Password reset request throttled", user_id=user.id)
            return
        await self.mailer.send_code(user.email, code, PURPOSE_PASSWORD_RESET)

    async def verify_reset_code(self, email: str, code: str) -> None:
        """Check a reset code without consuming it.

        Raises:
            InvalidOrExpired: If the email is unknown or the code does not match.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            raise InvalidOrExpired()
        await self.codes.check(user.id, code)

    async def reset_with_code(self, email: str, code: str, new_password: str) -> None:
        """Consume a reset code and set a new password.

        Raises:
            ValidationFailed: If the new password breaks the policy.
            InvalidOrExpired: If the email is unknown or the code does not match.
            Internal: If the provider refused the new password.
        """
        self.password_validator.ensure_valid(new_password, field="new_password")
        user = await self.users.get_by_email(email)
        if user is None:
            raise InvalidOrExpired()
        await self._rotate_with_code(user.id, code, new_password)

    async def _rotate_with_code(self, user_id: str, code: str, new_password: str) -> None:
        try:
            await self.codes.claim(user_id, code)
        except InvalidOrExpired:
            await self.session.rollback()
            raise

        try:
            await self.provider.update_password(user_id, new_password)
        except IdentityProviderError as e:
            await self.session.rollback()
            logger.error("Password update at provider failed", user_id=user_id, error=str(e))
            raise Internal("Failed to update password") from e

        await self.session.commit()
        logger.info("Password changed with verification code", user_id=user_id)

        await self.ledger.append(
            actor_id=user_id,
            action=AuditAction.PASSWORD_CHANGE,
            entity=USERS_ENTITY,
            entity_id=user_id,
            diff={"newValues": {"passwordChanged": True}},
        )
