from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ApplicationCounts(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class PassCounts(BaseModel):
    total: int = 0
    active: int = Field(default=0, description="Active flag set and valid_until >= now")
    expired: int = Field(default=0, description="valid_until < now")


class RevenueSummary(BaseModel):
    total: Decimal = Decimal("0")
    completed_payments: int = 0


class StatisticsResponse(BaseModel):
    applications: ApplicationCounts
    passes: PassCounts
    revenue: RevenueSummary
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    generated_at: datetime
