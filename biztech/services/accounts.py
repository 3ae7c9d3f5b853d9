"""
Account lifecycle: registration, email verification, sign-in, sign-out and
password recovery.

Plain one-time codes and reset tokens are only ever placed on the outbox for
the mailer; the database keeps their SHA-256 digests.
"""
from __future__ import annotations

import hmac
import logging
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.config import settings
from biztech.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    EmailNotVerifiedError,
    NotFoundError,
    ValidationError,
)
from biztech.core.ids import gen_numeric_code
from biztech.core.security import (
    check_password_policy,
    create_access_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from biztech.models.account import Account, EmailVerification, PasswordResetToken
from biztech.models.base import as_aware, utcnow
from biztech.schemas.account import BuyerRegister, ProfileUpdate, SellerRegister, account_out
from biztech.schemas.auth import LoginOut, RegisterOut, VerifyEmailOut
from biztech.services import outbox
from biztech.services.auth import Actor

log = logging.getLogger(__name__)

GENERIC_RESET_MESSAGE = "If that email is registered, a reset link has been sent."
GENERIC_RESEND_MESSAGE = "If that email is awaiting verification, a new code has been sent."


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_account(db: AsyncSession, account_id: str) -> Account:
    account = (await db.execute(select(Account).where(Account.id == account_id))).scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account not found")
    return account


async def find_by_email(db: AsyncSession, email: str) -> Account | None:
    stmt = select(Account).where(Account.email == normalize_email(email))
    return (await db.execute(stmt)).scalar_one_or_none()


def issue_token(account: Account) -> str:
    return create_access_token(account_id=account.id, role=account.role, token_version=account.token_version)


async def _issue_verification_code(db: AsyncSession, account: Account) -> None:
    # Only the newest code is valid
    await db.execute(
        update(EmailVerification)
        .where(EmailVerification.account_id == account.id, EmailVerification.used_at.is_(None))
        .values(used_at=utcnow())
    )
    code = gen_numeric_code(6)
    db.add(EmailVerification(
        account_id=account.id,
        code_hash=hash_token(code),
        expires_at=utcnow() + timedelta(minutes=settings.verification_code_ttl_minutes),
    ))
    outbox.emit(
        db,
        aggregate_type="account",
        aggregate_id=account.id,
        event_type=outbox.VERIFICATION_REQUESTED,
        payload={"account_id": account.id, "email": account.email, "name": account.name, "code": code},
    )


async def register(db: AsyncSession, payload: SellerRegister | BuyerRegister) -> RegisterOut:
    check_password_policy(payload.password)

    email = normalize_email(payload.email)
    if await find_by_email(db, email) is not None:
        raise ConflictError("An account with this email already exists", code="email_taken")

    account = Account(
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        role=payload.role,
        account_status="pending",
        email_verified=False,
        created_by="self",
        updated_by="self",
    )
    if isinstance(payload, SellerRegister):
        if not payload.agreed_commission:
            raise ValidationError("Sellers must accept the success commission terms", code="commission_not_accepted")
        account.agreed_commission = True
    else:
        account.financial_means = payload.financial_means

    try:
        db.add(account)
        await db.flush()
        await _issue_verification_code(db, account)
        await db.commit()
    except IntegrityError:
        # two registrations raced on the unique email
        await db.rollback()
        log.info("register: email already taken (race) email=%s", email)
        raise ConflictError("An account with this email already exists", code="email_taken")

    log.info("register: account created id=%s role=%s", account.id, account.role)
    return RegisterOut(message="Registration successful. Check your email for the verification code.", email=email)


async def resend_verification(db: AsyncSession, email: str) -> str:
    account = await find_by_email(db, email)
    if account is not None and not account.email_verified:
        await _issue_verification_code(db, account)
        await db.commit()
    return GENERIC_RESEND_MESSAGE


async def verify_email(db: AsyncSession, email: str, otp: str) -> VerifyEmailOut:
    account = await find_by_email(db, email)
    if account is None:
        raise AuthenticationError("Verification code is invalid or expired", code="invalid_code")
    if account.email_verified:
        raise ConflictError("Email is already verified", code="already_verified")

    stmt = (
        select(EmailVerification)
        .where(EmailVerification.account_id == account.id, EmailVerification.used_at.is_(None))
        .order_by(EmailVerification.created_at.desc())
        .limit(1)
    )
    challenge = (await db.execute(stmt)).scalar_one_or_none()
    if challenge is None or as_aware(challenge.expires_at) <= utcnow():
        raise AuthenticationError("Verification code is invalid or expired", code="invalid_code")
    if challenge.attempts >= settings.verification_max_attempts:
        raise AuthenticationError("Too many wrong codes, request a new one", code="too_many_attempts")

    if not hmac.compare_digest(challenge.code_hash, hash_token(otp.strip())):
        challenge.attempts += 1
        await db.commit()
        raise AuthenticationError("Verification code is invalid or expired", code="invalid_code")

    challenge.used_at = utcnow()
    account.email_verified = True
    account.updated_by = "self"
    # Sellers wait for an admin; buyers can use the marketplace right away
    require_approval = account.role == "seller"
    if not require_approval and account.account_status == "pending":
        account.account_status = "active"
    await db.commit()

    log.info("verify_email: account=%s require_approval=%s", account.id, require_approval)
    if require_approval:
        return VerifyEmailOut(
            message="Email verified. Your account is awaiting admin approval.",
            require_approval=True,
            account=account_out(account),
        )
    return VerifyEmailOut(
        message="Email verified successfully.",
        require_approval=False,
        token=issue_token(account),
        account=account_out(account),
    )


async def login(db: AsyncSession, email: str, password: str) -> LoginOut:
    account = await find_by_email(db, email)
    if account is None or not verify_password(password, account.password_hash):
        raise AuthenticationError("Invalid email or password", code="invalid_credentials")
    if not account.email_verified:
        raise EmailNotVerifiedError("Please verify your email before signing in")
    if account.account_status == "rejected":
        raise AuthorizationError("This account has been rejected", code="account_rejected")

    return LoginOut(token=issue_token(account), account=account_out(account))


async def logout(db: AsyncSession, actor: Actor) -> None:
    account = await get_account(db, actor.account_id)
    account.token_version += 1
    await db.commit()


async def forgot_password(db: AsyncSession, email: str) -> str:
    account = await find_by_email(db, email)
    if account is None:
        return GENERIC_RESET_MESSAGE

    await db.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.account_id == account.id, PasswordResetToken.used_at.is_(None))
        .values(used_at=utcnow())
    )
    token = generate_reset_token()
    db.add(PasswordResetToken(
        account_id=account.id,
        token_hash=hash_token(token),
        expires_at=utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes),
    ))
    outbox.emit(
        db,
        aggregate_type="account",
        aggregate_id=account.id,
        event_type=outbox.PASSWORD_RESET_REQUESTED,
        payload={
            "account_id": account.id,
            "email": account.email,
            "name": account.name,
            "reset_token": token,
        },
    )
    await db.commit()
    return GENERIC_RESET_MESSAGE


async def reset_password(db: AsyncSession, token: str, new_password: str) -> None:
    check_password_policy(new_password)

    stmt = select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_token(token))
    row = (await db.execute(stmt)).scalar_one_or_none()
    if row is None or row.used_at is not None or as_aware(row.expires_at) <= utcnow():
        raise AuthenticationError("Reset link is invalid or has expired", code="invalid_reset_token")

    account = await get_account(db, row.account_id)
    account.password_hash = hash_password(new_password)
    # revoke every bearer token issued with the old password
    account.token_version += 1
    account.updated_by = "self"
    row.used_at = utcnow()
    await db.commit()
    log.info("reset_password: account=%s", account.id)


async def update_profile(db: AsyncSession, actor: Actor, payload: ProfileUpdate) -> Account:
    account = await get_account(db, actor.account_id)

    if payload.financial_means is not None:
        if account.role != "buyer":
            raise ValidationError("Only buyers have a financial means band", code="field_not_allowed")
        account.financial_means = payload.financial_means
    if payload.name is not None:
        account.name = payload.name.strip()
    if payload.phone is not None:
        account.phone = payload.phone

    account.updated_by = actor.account_id
    await db.commit()
    return account
