from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, EmailStr, Field

from biztech.models.account import Account


class _RegisterBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=40)
    password: str


class SellerRegister(_RegisterBase):
    role: Literal["seller"]
    agreed_commission: bool


class BuyerRegister(_RegisterBase):
    role: Literal["buyer"]
    financial_means: str = Field(min_length=1, max_length=60)


# Agents and admins never self-register, so only these two variants are accepted.
RegisterRequest = Annotated[Union[SellerRegister, BuyerRegister], Field(discriminator="role")]


class _AccountOutBase(BaseModel):
    id: str
    name: str
    email: EmailStr
    phone: str | None
    account_status: Literal["pending", "active", "rejected"]
    email_verified: bool
    created_at: datetime


class AdminAccountOut(_AccountOutBase):
    role: Literal["admin"]


class AgentAccountOut(_AccountOutBase):
    role: Literal["agent"]


class SellerAccountOut(_AccountOutBase):
    role: Literal["seller"]
    agreed_commission: bool


class BuyerAccountOut(_AccountOutBase):
    role: Literal["buyer"]
    financial_means: str | None


AccountOut = Annotated[
    Union[AdminAccountOut, AgentAccountOut, SellerAccountOut, BuyerAccountOut],
    Field(discriminator="role"),
]


def account_out(a: Account) -> AdminAccountOut | AgentAccountOut | SellerAccountOut | BuyerAccountOut:
    common = dict(
        id=a.id,
        name=a.name,
        email=a.email,
        phone=a.phone,
        account_status=a.account_status,
        email_verified=a.email_verified,
        created_at=a.created_at,
    )
    if a.role == "seller":
        return SellerAccountOut(role="seller", agreed_commission=bool(a.agreed_commission), **common)
    if a.role == "buyer":
        return BuyerAccountOut(role="buyer", financial_means=a.financial_means, **common)
    if a.role == "agent":
        return AgentAccountOut(role="agent", **common)
    return AdminAccountOut(role="admin", **common)


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = Field(default=None, max_length=40)
    # buyers only
    financial_means: str | None = Field(default=None, min_length=1, max_length=60)
