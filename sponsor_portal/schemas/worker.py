from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field


class Worker(BaseModel):
    """Worker record as listed by ``GET /workers``; unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    job_title: str | None = None
    department: str | None = None
    status: str | None = None
    risk_level: str | None = None
    visa_expiry: datetime.date | None = None


class ChecklistItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    status: str = "not_started"
    document_name: str | None = None


class VisaBreakdown(BaseModel):
    expired: int = 0
    expiring_30: int = 0
    expiring_60: int = 0
    expiring_90: int = 0
    valid: int = 0
    no_visa: int = 0


class ExpiringWorker(BaseModel):
    id: str
    name: str
    visa_expiry: datetime.date
    days_left: int
    category: str | None = None
    department: str | None = None
    job_title: str | None = None


class DashboardOverview(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_employees: int = 0
    active_employees: int = 0
    sponsored: int = 0
    non_sponsored: int = 0
    pending_leaves: int = 0
    cos_allocated: int = 0
    cos_used: int = 0
    cos_available: int = 0
    visa_breakdown: VisaBreakdown = Field(default_factory=VisaBreakdown)
    expiring_workers: list[ExpiringWorker] = Field(default_factory=list)


class Reference(BaseModel):
    """Background-verification referee for one worker."""

    model_config = ConfigDict(extra="allow")

    id: str
    referee_name: str
    referee_email: str | None = None
    status: str = "pending"
