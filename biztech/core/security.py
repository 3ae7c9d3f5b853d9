import hashlib
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from biztech.core.config import settings
from biztech.core.errors import AuthenticationError, ValidationError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)

PASSWORD_MIN_LENGTH = 8
_DIGIT_RE = re.compile(r"\d")
_UPPER_RE = re.compile(r"[A-Z]")


def password_policy_errors(password: str) -> list[dict]:
    errors: list[dict] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append({"field": "password", "rule": "min_length", "min": PASSWORD_MIN_LENGTH})
    if not _DIGIT_RE.search(password):
        errors.append({"field": "password", "rule": "digit_required"})
    if not _UPPER_RE.search(password):
        errors.append({"field": "password", "rule": "uppercase_required"})
    return errors


def check_password_policy(password: str) -> None:
    errors = password_policy_errors(password)
    if errors:
        raise ValidationError(
            "Password must be at least 8 characters and contain a number and an uppercase letter",
            code="weak_password",
            details=errors,
        )


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def hash_token(token: str) -> str:
    # One-time codes and reset tokens are stored hashed; the plain value only travels by email.
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> str:
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    role: str
    token_version: int


def create_access_token(*, account_id: str, role: str, token_version: int, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    claims = {"sub": account_id, "role": role, "ver": token_version, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret.get_secret_value(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """
    Decode a bearer token. Expired, tampered or malformed tokens all raise
    AuthenticationError; callers must still check ``token_version`` against the account.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret.get_secret_value(), algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthenticationError("Invalid or expired token", code="invalid_token")

    account_id = payload.get("sub")
    if not account_id:
        raise AuthenticationError("Invalid or expired token", code="invalid_token")

    return TokenClaims(
        account_id=account_id,
        role=str(payload.get("role") or ""),
        token_version=int(payload.get("ver") or 0),
    )
