from pydantic import BaseModel, EmailStr, Field

from biztech.schemas.account import AccountOut


class RegisterOut(BaseModel):
    message: str
    email: EmailStr


class VerifyEmailRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=4, max_length=12)


class VerifyEmailOut(BaseModel):
    message: str
    require_approval: bool = False
    # Issued only when the account is usable right away (buyers)
    token: str | None = None
    account: AccountOut | None = None


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginOut(BaseModel):
    token: str
    account: AccountOut


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str
