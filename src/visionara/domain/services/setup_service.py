"""First-run bootstrap of the superadmin account."""

from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.logging import get_logger
from visionara.domain.entities import AuditAction
from visionara.domain.services.audit_ledger import AuditLedger
from visionara.domain.services.identity_synchronizer import IdentitySynchronizer
from visionara.domain.services.role_directory import RoleDirectory
from visionara.infrastructure.persistence.models import UserModel
from visionara.infrastructure.persistence.repositories import UserRepository

logger = get_logger(__name__)

SUPERADMIN_ROLE = "SuperAdmin"


class SetupService:
    """Creates the initial superadmin through the regular create flow."""

    def __init__(
        self,
        session: AsyncSession,
        synchronizer: IdentitySynchronizer,
        ledger: AuditLedger,
    ) -> None:
        self.session = session
        self.synchronizer = synchronizer
        self.ledger = ledger
        self.users = UserRepository(session)
        self.roles = RoleDirectory(session)

    async def bootstrap_superadmin(
        self, email: str, password: str, display_name: str = "Super Admin"
    ) -> tuple[UserModel, bool]:
        """Create the superadmin unless a user with that email exists.

        Returns:
            Tuple of (user, created). ``created`` is False when the account
            already existed and nothing was changed.

        Raises:
            RoleNotFound: If the SuperAdmin role has not been seeded.
        """
        role = await self.roles.resolve_by_name(SUPERADMIN_ROLE)

        existing = await self.users.get_by_email(email)
        if existing is not None:
            logger.info("Superadmin already present", user_id=existing.id)
            return await self.users.get_by_id_with_role(existing.id), False

        user = await self.synchronizer.create(
            actor_id=None,
            email=email,
            password=password,
            display_name=display_name,
            role_id=role.id,
        )
        await self.ledger.append(
            actor_id=None,
            action=AuditAction.SETUP,
            entity="system",
            entity_id=None,
            diff={"newValues": {"superadminId": user.id, "email": email}},
        )
        logger.info("Superadmin bootstrapped", user_id=user.id)
        return user, True
