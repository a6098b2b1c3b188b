"""Keeps users consistent across the identity provider and the local table.

The provider owns credentials, the local table owns role assignment and
profile data, and the two share no transaction. Create is a two-step saga
with one compensating action: if the local insert fails, the identity just
created at the provider is deleted again. Update and delete treat the local
row as authoritative and touch the provider best-effort.
"""

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.best_effort import best_effort
from visionara.core.errors import (
    Conflict,
    IdentityError,
    Internal,
    InvalidOperation,
    NotAuthenticated,
    NotFound,
    ValidationFailed,
)
from visionara.core.logging import get_logger
from visionara.domain.entities import AuditAction
from visionara.domain.services.audit_ledger import AuditLedger
from visionara.domain.services.password_validator import PasswordValidator
from visionara.domain.services.role_directory import RoleDirectory
from visionara.infrastructure.identity.provider import IdentityProvider, IdentityProviderError
from visionara.infrastructure.persistence.models import UserModel
from visionara.infrastructure.persistence.repositories import UserRepository

logger = get_logger(__name__)

USERS_ENTITY = "users"

# Local column -> name used in audit diffs
_AUDITED_FIELDS = {
    "email": "email",
    "display_name": "displayName",
    "role_id": "roleId",
}


def _snapshot(user: UserModel) -> dict[str, Any]:
    return {label: getattr(user, column) for column, label in _AUDITED_FIELDS.items()}


def translate_provider_error(e: IdentityProviderError) -> IdentityError:
    """Map a provider failure to the error a caller sees.

    Provider rejections of the request itself are relayed with the provider's
    own reason; outages and timeouts become Internal.
    """
    if e.status_code == 422 and "already" in e.detail.lower():
        return Conflict()
    if e.status_code is not None and 400 <= e.status_code < 500:
        return ValidationFailed(e.detail)
    return Internal("Identity provider unavailable")


class IdentitySynchronizer:
    """Create, update and delete users in both systems of record."""

    def __init__(
        self,
        session: AsyncSession,
        provider: IdentityProvider,
        ledger: AuditLedger,
        password_validator: PasswordValidator | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            session: SQLAlchemy async session. Committed by this service.
            provider: External identity provider.
            ledger: Audit sink written after each successful mutation.
            password_validator: Policy for new passwords.
        """
        self.session = session
        self.provider = provider
        self.ledger = ledger
        self.password_validator = password_validator or PasswordValidator()
        self.users = UserRepository(session)
        self.roles = RoleDirectory(session)

    async def create(
        self,
        actor_id: str | None,
        email: str,
        password: str,
        display_name: str,
        role_id: str,
        audit_action: AuditAction = AuditAction.CREATE,
    ) -> UserModel:
        """Create a user at the provider and locally.

        Args:
            actor_id: Acting user, None for system bootstrap.
            email: Email address, unique across users.
            password: Initial password, handed to the provider only.
            display_name: Display name.
            role_id: Role to assign, must exist.
            audit_action: Action recorded in the ledger.

        Returns:
            The created user with its role loaded.

        Raises:
            RoleNotFound: If ``role_id`` does not reference a role.
            Conflict: If the email is already taken.
            ValidationFailed: If the password is too short or the provider
                rejected the request.
            Internal: If the provider is unavailable or the local insert
                failed for another reason.
        """
        await self.roles.resolve(role_id)
        if await self.users.email_exists(email):
            raise Conflict()
        self.password_validator.ensure_valid(password)

        try:
            identity_id = await self.provider.create_identity(email, password)
        except IdentityProviderError as e:
            logger.error("Identity provider refused user creation", error=str(e))
            raise translate_provider_error(e) from e

        try:
            await self.users.create(
                UserModel(
                    id=identity_id,
                    email=email,
                    display_name=display_name,
                    role_id=role_id,
                )
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Local user insert failed, removing provider identity",
                user_id=identity_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await best_effort(
                self.provider.delete_identity(identity_id),
                "compensating identity delete",
                user_id=identity_id,
            )
            if isinstance(e, IntegrityError) and await self.users.email_exists(email):
                raise Conflict() from e
            raise Internal("Failed to create user") from e

        logger.info("User created", user_id=identity_id, role_id=role_id)
        await self.ledger.append(
            actor_id=actor_id,
            action=audit_action,
            entity=USERS_ENTITY,
            entity_id=identity_id,
            diff={"newValues": {"email": email, "displayName": display_name, "roleId": role_id}},
        )
        return await self._reload(identity_id)

    async def update(
        self,
        actor_id: str | None,
        user_id: str,
        email: str | None = None,
        display_name: str | None = None,
        role_id: str | None = None,
        password: str | None = None,
    ) -> UserModel:
        """Update profile fields locally and optionally rotate the password.

        The email change stays local; the provider keeps the address it was
        created with.

        Raises:
            NotAuthenticated: If there is no acting user.
            NotFound: If the user does not exist or vanished mid-update.
            Conflict: If another user already has the new email.
            RoleNotFound: If the new role does not exist.
            ValidationFailed: If nothing is to be changed or the password is
                too short.
        """
        if not actor_id:
            raise NotAuthenticated()

        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound()

        if email is not None and email != user.email:
            if await self.users.email_exists(email, exclude_user_id=user_id):
                raise Conflict()
        if role_id is not None:
            await self.roles.resolve(role_id)
        if password is not None:
            self.password_validator.ensure_valid(password)

        values: dict[str, Any] = {}
        if email is not None:
            values["email"] = email
        if display_name is not None:
            values["display_name"] = display_name
        if role_id is not None:
            values["role_id"] = role_id
        if not values and password is None:
            raise ValidationFailed("No fields to update")

        old_values = _snapshot(user)

        if values:
            try:
                affected = await self.users.update_fields(user_id, values)
            except IntegrityError as e:
                await self.session.rollback()
                raise Conflict() from e
            if affected == 0:
                await self.session.rollback()
                raise NotFound()
            await self.session.commit()

        rotated = False
        if password is not None:
            rotated = await best_effort(
                self.provider.update_password(user_id, password),
                "password rotation during user update",
                user_id=user_id,
            )

        new_values = {_AUDITED_FIELDS[column]: value for column, value in values.items()}
        if password is not None:
            new_values["passwordChanged"] = rotated

        logger.info("User updated", user_id=user_id, fields=sorted(new_values))
        await self.ledger.append(
            actor_id=actor_id,
            action=AuditAction.UPDATE,
            entity=USERS_ENTITY,
            entity_id=user_id,
            diff={"oldValues": old_values, "newValues": new_values},
        )
        return await self._reload(user_id)

    async def delete(self, actor_id: str | None, user_id: str) -> None:
        """Hard-delete a user locally, then at the provider.

        Raises:
            NotAuthenticated: If there is no acting user.
            InvalidOperation: If the actor tries to delete themselves.
            NotFound: If the user does not exist or vanished mid-delete.
        """
        if not actor_id:
            raise NotAuthenticated()
        if actor_id == user_id:
            raise InvalidOperation("You cannot delete your own account")

        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound()
        old_values = _snapshot(user)

        affected = await self.users.delete(user_id)
        if affected == 0:
            await self.session.rollback()
            raise NotFound()
        await self.session.commit()

        await best_effort(
            self.provider.delete_identity(user_id),
            "identity delete after local hard delete",
            user_id=user_id,
        )

        logger.info("User deleted", user_id=user_id)
        await self.ledger.append(
            actor_id=actor_id,
            action=AuditAction.DELETE,
            entity=USERS_ENTITY,
            entity_id=user_id,
            diff={"oldValues": old_values},
        )

    async def _reload(self, user_id: str) -> UserModel:
        user = await self.users.get_by_id_with_role(user_id)
        if user is None:
            raise NotFound()
        return user
