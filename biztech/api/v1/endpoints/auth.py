from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.account import RegisterRequest
from biztech.schemas.auth import (
    ForgotPasswordRequest,
    LoginOut,
    LoginRequest,
    RegisterOut,
    ResendVerificationRequest,
    ResetPasswordRequest,
    VerifyEmailOut,
    VerifyEmailRequest,
)
from biztech.schemas.common import MessageResponse
from biztech.services import accounts
from biztech.services.auth import Actor, get_actor
from biztech.services.rate_limit import rate_limit

router = APIRouter(prefix="/auth")


@router.post(
    "/register",
    response_model=RegisterOut,
    status_code=201,
    dependencies=[Depends(rate_limit("register", limit=10, window_seconds=3600))],
)
async def register(
    payload: RegisterRequest = Body(...),
    db: AsyncSession = Depends(get_db),
) -> RegisterOut:
    return await accounts.register(db, payload)


@router.post(
    "/verify-email",
    response_model=VerifyEmailOut,
    dependencies=[Depends(rate_limit("verify-email", limit=20, window_seconds=900))],
)
async def verify_email(payload: VerifyEmailRequest, db: AsyncSession = Depends(get_db)) -> VerifyEmailOut:
    return await accounts.verify_email(db, payload.email, payload.otp)


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("resend-verification", limit=5, window_seconds=900))],
)
async def resend_verification(payload: ResendVerificationRequest, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    return MessageResponse(message=await accounts.resend_verification(db, payload.email))


@router.post(
    "/login",
    response_model=LoginOut,
    dependencies=[Depends(rate_limit("login", limit=20, window_seconds=900))],
)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> LoginOut:
    return await accounts.login(db, payload.email, payload.password)


@router.post("/logout", response_model=MessageResponse)
async def logout(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)) -> MessageResponse:
    await accounts.logout(db, actor)
    return MessageResponse(message="Signed out")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("forgot-password", limit=5, window_seconds=900))],
)
async def forgot_password(payload: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    return MessageResponse(message=await accounts.forgot_password(db, payload.email))


@router.put("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await accounts.reset_password(db, token, payload.password)
    return MessageResponse(message="Password reset successful. You can now sign in.")
