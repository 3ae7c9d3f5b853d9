from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ListingPublicData(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    industry: str = Field(min_length=1, max_length=120)
    region: str = Field(min_length=1, max_length=120)
    price: float = Field(gt=0)
    turnover: float = Field(default=0, ge=0)
    net_profit: float = 0


class ListingPrivateData(BaseModel):
    legal_business_name: str | None = Field(default=None, max_length=200)
    owner_name: str | None = Field(default=None, max_length=200)
    full_address: str | None = None


class ListingCreate(BaseModel):
    public_data: ListingPublicData
    private_data: ListingPrivateData = Field(default_factory=ListingPrivateData)
    description: str | None = None
    agreed_to_commission: bool = False
    # Card/payment-method token from the payment provider; required for premium listings
    payment_token: str | None = None


class ListingUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    industry: str | None = Field(default=None, min_length=1, max_length=120)
    region: str | None = Field(default=None, min_length=1, max_length=120)
    price: float | None = Field(default=None, gt=0)
    turnover: float | None = Field(default=None, ge=0)
    net_profit: float | None = None
    description: str | None = None
    legal_business_name: str | None = Field(default=None, max_length=200)
    owner_name: str | None = Field(default=None, max_length=200)
    full_address: str | None = None


class DeliverablesOut(BaseModel):
    sale_pack_ready: bool
    financial_analysis_ready: bool
    legal_attestation_ready: bool


class ListingOut(BaseModel):
    id: str
    seller_id: str
    tier: Literal["basic", "premium"]
    status: Literal["pending", "active", "rejected"]
    views: int
    public_data: ListingPublicData
    description: str | None
    # None unless the viewer is the owner, the assigned agent or an admin
    private_data: ListingPrivateData | None = None
    assigned_agent_id: str | None = None
    deliverables: DeliverablesOut | None = None
    created_at: datetime


class DeliverableUpdate(BaseModel):
    field: Literal["sale_pack_ready", "financial_analysis_ready", "legal_attestation_ready"]
    value: bool
