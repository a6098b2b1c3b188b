"""Signed-in user's own account: login recording and profile edits."""

from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.errors import Forbidden, NotAuthenticated, NotFound, ValidationFailed
from visionara.core.logging import get_logger
from visionara.domain.entities import AuditAction, Principal
from visionara.domain.services.audit_ledger import AuditLedger
from visionara.domain.services.identity_synchronizer import USERS_ENTITY
from visionara.infrastructure.persistence.models import UserModel
from visionara.infrastructure.persistence.repositories import UserRepository

logger = get_logger(__name__)

DISPLAY_NAME_MAX_LENGTH = 100


class ProfileService:
    def __init__(self, session: AsyncSession, ledger: AuditLedger) -> None:
        self.session = session
        self.ledger = ledger
        self.users = UserRepository(session)

    async def record_login(self, principal: Principal, user_id: str) -> UserModel:
        """Record a completed sign-in.

        Args:
            principal: Identity the access token resolved to.
            user_id: User the client claims to have signed in as.

        Raises:
            NotAuthenticated: If the token belongs to a different identity.
            Forbidden: If the identity has no local account.
        """
        if principal.user_id != user_id:
            raise NotAuthenticated("Invalid authentication")

        user = await self.users.get_by_id_with_role(user_id)
        if user is None:
            logger.info("Sign-in without local account", user_id=user_id)
            raise Forbidden(
                "Account not found. Please contact an administrator to create your account."
            )

        await self.ledger.append(
            actor_id=user.id,
            action=AuditAction.LOGIN,
            entity="auth",
            entity_id=user.id,
            diff={"newValues": {"email": user.email, "role": user.role_name}},
        )
        return user

    async def get_profile(self, principal: Principal) -> UserModel:
        user = await self.users.get_by_id_with_role(principal.user_id)
        if user is None:
            raise NotFound()
        return user

    async def update_display_name(self, principal: Principal, display_name: str) -> UserModel:
        """Change the signed-in user's display name.

        Raises:
            ValidationFailed: If the trimmed name is empty or too long.
            NotFound: If the principal has no local account.
        """
        name = (display_name or "").strip()
        if not name or len(name) > DISPLAY_NAME_MAX_LENGTH:
            raise ValidationFailed(
                f"Display name must be between 1 and {DISPLAY_NAME_MAX_LENGTH} characters",
                details=[{"field": "display_name", "code": "length"}],
            )

        user = await self.users.get_by_id(principal.user_id)
        if user is None:
            raise NotFound()
        old_name = user.display_name

        affected = await self.users.update_fields(user.id, {"display_name": name})
        if affected == 0:
            await self.session.rollback()
            raise NotFound()
        await self.session.commit()

        await self.ledger.append(
            actor_id=user.id,
            action=AuditAction.UPDATE,
            entity=USERS_ENTITY,
            entity_id=user.id,
            diff={"oldValues": {"displayName": old_name}, "newValues": {"displayName": name}},
        )
        return await self.get_profile(principal)
