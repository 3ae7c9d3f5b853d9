from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

LeadStatus = Literal["new", "contacted", "negotiating", "closed"]


class LeadCreate(BaseModel):
    listing_id: str
    message: str = Field(min_length=1, max_length=4000)


class LeadStatusUpdate(BaseModel):
    status: LeadStatus


class LeadOut(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    message: str
    status: LeadStatus
    created_at: datetime
    updated_at: datetime


class BuyerEnquiryOut(LeadOut):
    listing_title: str


class AgentLeadOut(LeadOut):
    listing_title: str
    buyer_name: str
    buyer_email: str
    buyer_financial_means: str | None
