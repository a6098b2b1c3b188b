"""FastAPI dependencies for authentication, authorization and services.

Every service is built per request around the request's database session.
Tests swap collaborators through ``app.dependency_overrides``.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.clock import Clock, utc_now
from visionara.core.config import get_settings
from visionara.core.errors import Forbidden
from visionara.core.logging import get_logger
from visionara.domain.entities import Principal
from visionara.domain.services.audit_ledger import AuditLedger
from visionara.domain.services.identity_synchronizer import IdentitySynchronizer
from visionara.domain.services.password_change_service import PasswordChangeService
from visionara.domain.services.password_validator import PasswordValidator
from visionara.domain.services.profile_service import ProfileService
from visionara.domain.services.role_directory import RoleDirectory
from visionara.domain.services.verification_code_service import (
    VerificationCodePolicy,
    VerificationCodeService,
)
from visionara.infrastructure.auth.session_validator import SessionValidator
from visionara.infrastructure.identity.provider import IdentityProvider, IdentityProviderSettings
from visionara.infrastructure.identity.supabase_provider import SupabaseIdentityProvider
from visionara.infrastructure.persistence.database import get_db_session
from visionara.infrastructure.persistence.repositories import UserRepository
from visionara.infrastructure.services.email import SMTPProvider, SMTPSettings, VerificationMailer

logger = get_logger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_identity_provider(request: Request) -> IdentityProvider:
    """Get the identity provider client from app state, creating it on first use."""
    if getattr(request.app.state, "identity_provider", None) is None:
        request.app.state.identity_provider = SupabaseIdentityProvider(
            IdentityProviderSettings.from_settings(get_settings())
        )
    return request.app.state.identity_provider


def get_clock() -> Clock:
    return utc_now


Provider = Annotated[IdentityProvider, Depends(get_identity_provider)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def get_session_validator(provider: Provider) -> SessionValidator:
    return SessionValidator(provider, cookie_name=get_settings().session_cookie_name)


async def get_current_principal(
    request: Request,
    validator: Annotated[SessionValidator, Depends(get_session_validator)],
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Resolve the request's bearer header or session cookie to a principal.

    Raises:
        NotAuthenticated: For a missing, malformed or rejected credential.
    """
    cookie = request.cookies.get(validator.cookie_name)
    return await validator.authenticate(authorization, cookie)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def require_permission(
    resource: str, action: str
) -> Callable[[Principal, AsyncSession], Awaitable[Principal]]:
    """Build a dependency that admits principals whose role grants an action.

    Args:
        resource: Permission resource, e.g. 'users'.
        action: Permission action, e.g. 'write'.
    """

    async def checker(principal: CurrentPrincipal, session: DbSession) -> Principal:
        user = await UserRepository(session).get_by_id_with_role(principal.user_id)
        if user is None or user.role is None or not user.role.allows(resource, action):
            logger.info(
                "Permission denied",
                user_id=principal.user_id,
                resource=resource,
                action=action,
            )
            raise Forbidden()
        return principal

    return checker


def get_audit_ledger(session: DbSession, clock: ClockDep) -> AuditLedger:
    return AuditLedger(session, clock=clock)


def get_password_validator() -> PasswordValidator:
    return PasswordValidator(min_length=get_settings().password_min_length)


def get_code_policy() -> VerificationCodePolicy:
    return VerificationCodePolicy.from_settings(get_settings())


def get_verification_mailer() -> VerificationMailer:
    settings = get_settings()
    smtp_settings = SMTPSettings.from_settings(settings)
    return VerificationMailer(
        provider=SMTPProvider(smtp_settings) if smtp_settings else None,
        app_name=settings.app_name,
        ttl_minutes=settings.verification_code_ttl_minutes,
        dev_fallback=settings.is_development,
    )


Ledger = Annotated[AuditLedger, Depends(get_audit_ledger)]
Validator = Annotated[PasswordValidator, Depends(get_password_validator)]


def get_role_directory(session: DbSession) -> RoleDirectory:
    return RoleDirectory(session)


def get_identity_synchronizer(
    session: DbSession, provider: Provider, ledger: Ledger, validator: Validator
) -> IdentitySynchronizer:
    return IdentitySynchronizer(session, provider, ledger, password_validator=validator)


def get_verification_code_service(
    session: DbSession,
    clock: ClockDep,
    policy: Annotated[VerificationCodePolicy, Depends(get_code_policy)],
) -> VerificationCodeService:
    return VerificationCodeService(session, policy=policy, clock=clock)


def get_password_change_service(
    session: DbSession,
    provider: Provider,
    codes: Annotated[VerificationCodeService, Depends(get_verification_code_service)],
    mailer: Annotated[VerificationMailer, Depends(get_verification_mailer)],
    ledger: Ledger,
    validator: Validator,
) -> PasswordChangeService:
    return PasswordChangeService(
        session,
        provider,
        codes,
        mailer,
        ledger,
        password_validator=validator,
        require_current_password=get_settings().password_change_requires_current_password,
    )


def get_profile_service(session: DbSession, ledger: Ledger) -> ProfileService:
    return ProfileService(session, ledger)
