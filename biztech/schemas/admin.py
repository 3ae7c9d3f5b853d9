from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class AdminStatsOut(BaseModel):
    total_users: int
    pending_approvals: int
    active_listings: int
    total_agents: int
    monthly_revenue: float


class UserStatusUpdate(BaseModel):
    status: Literal["active", "rejected"]


class AssignAgentRequest(BaseModel):
    listing_id: str
    agent_id: str


class AgentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str
    phone: str | None = Field(default=None, max_length=40)
