"""
Phone password-reset endpoints.

POST /auth/phone/request-password-reset — send an OTP by SMS
POST /auth/phone/reset-password         — verify the OTP and set a new password

Every OTP failure (unknown, wrong, expired, exhausted) returns the same 400
body; the cause only appears in the logs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_password_reset_service
from schemas.dto.requests.password_reset import PhoneResetConfirm, PhoneResetRequest
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from services.password_reset_service import PasswordResetService

router = APIRouter(prefix="/auth/phone", tags=["password-reset"])


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def request_password_reset(
    payload: PhoneResetRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    return await service.request_reset(payload.phone)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def reset_password(
    payload: PhoneResetConfirm,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    return await service.confirm_reset(payload.phone, payload.otp, payload.new_password)
