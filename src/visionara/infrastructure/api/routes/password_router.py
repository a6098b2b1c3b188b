"""Router for verification-code password flows."""

from typing import Annotated

from fastapi import APIRouter, Depends

from visionara.domain.services.password_change_service import PasswordChangeService
from visionara.infrastructure.api.dependencies import (
    CurrentPrincipal,
    get_password_change_service,
)
from visionara.infrastructure.api.schemas.password_schemas import (
    ChangePasswordRequest,
    ForgotRequestCodeRequest,
    ForgotResetRequest,
    ForgotVerifyCodeRequest,
    OkResponse,
    RequestCodeRequest,
)

router = APIRouter(tags=["Password"])

PasswordService = Annotated[PasswordChangeService, Depends(get_password_change_service)]


@router.post("/request-code", summary="Send a password change code")
async def request_code(
    principal: CurrentPrincipal,
    service: PasswordService,
    body: RequestCodeRequest | None = None,
) -> OkResponse:
    current = body.current_password.get_secret_value() if body and body.current_password else None
    await service.request_code(principal, current_password=current)
    return OkResponse(message="Verification code sent to your email")


@router.post("/change", summary="Change password with a code")
async def change_password(
    body: ChangePasswordRequest,
    principal: CurrentPrincipal,
    service: PasswordService,
) -> OkResponse:
    await service.change_with_code(
        principal, code=body.code.strip(), new_password=body.new_password.get_secret_value()
    )
    return OkResponse(message="Password changed successfully")


@router.post("/forgot/request-code", summary="Send a password reset code")
async def forgot_request_code(body: ForgotRequestCodeRequest, service: PasswordService) -> OkResponse:
    """Always answers ok, whether or not the email belongs to an account."""
    await service.request_reset_code(body.email)
    return OkResponse()


@router.post("/forgot/verify-code", summary="Check a password reset code")
async def forgot_verify_code(body: ForgotVerifyCodeRequest, service: PasswordService) -> OkResponse:
    await service.verify_reset_code(body.email, body.code.strip())
    return OkResponse()


@router.post("/forgot/reset", summary="Reset password with a code")
async def forgot_reset(body: ForgotResetRequest, service: PasswordService) -> OkResponse:
    await service.reset_with_code(
        body.email, body.code.strip(), body.new_password.get_secret_value()
    )
    return OkResponse(message="Password reset successfully")
