# facility_analytics/schemas/records.py
"""
Read-only snapshots of the platform entities the aggregators consume.

Date fields are kept as the ISO strings the platform returns so month keys
can be sliced from them directly (see ``utils.dates``).
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from facility_analytics.utils.dates import month_key


class Booking(BaseModel):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    service_id: Optional[str] = None
    assigned_provider_id: Optional[str] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    status: Optional[str] = None  # pending | confirmed | in_progress | completed | cancelled
    payment_status: Optional[str] = None  # paid | pending | ...
    total_amount: Optional[float] = None
    addons_amount: Optional[float] = None  # portion of total_amount from add-ons
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_date: Optional[str] = None

    @property
    def amount(self) -> float:
        return self.total_amount or 0.0

    @property
    def addons(self) -> float:
        return self.addons_amount or 0.0

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class Subscription(BaseModel):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    package_id: Optional[str] = None
    status: Optional[str] = None  # active | paused | cancelled
    monthly_amount: Optional[float] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    cancelled_at: Optional[str] = None
    paused_at: Optional[str] = None
    cancel_reason: Optional[str] = None
    auto_renew: Optional[bool] = None
    created_date: Optional[str] = None

    @property
    def amount(self) -> float:
        return self.monthly_amount or 0.0


class Provider(BaseModel):
    id: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None
    average_rating: Optional[float] = None
    specialization: List[str] = Field(default_factory=list)
    total_jobs_completed: Optional[int] = None

    @field_validator("specialization", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v if v is not None else []

    @property
    def counts_as_active(self) -> bool:
        """Providers without an explicit ``is_active`` flag are treated as active."""
        return self.is_active is not False


class Service(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    duration_minutes: Optional[int] = None
    category_id: Optional[str] = None


class Package(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class Review(BaseModel):
    id: Optional[str] = None
    provider_id: Optional[str] = None
    booking_id: Optional[str] = None
    rating: float = 0
    review_date: Optional[str] = None
    created_date: Optional[str] = None

    @property
    def reviewed_on(self) -> Optional[str]:
        if self.review_date:
            return self.review_date
        if self.created_date:
            return self.created_date.split("T")[0]
        return None


class DateRange(BaseModel):
    """Inclusive ``YYYY-MM-DD`` range selected on the dashboard."""
    start_date: str
    end_date: str

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_iso_date(cls, v):
        date.fromisoformat(v)
        return v

    @property
    def start_month(self) -> str:
        return month_key(self.start_date)

    @property
    def end_month(self) -> str:
        return month_key(self.end_date)

    def contains(self, value: Optional[str]) -> bool:
        """True when the ISO date ``value`` falls inside the range. Missing dates never do."""
        return bool(value) and self.start_date <= value <= self.end_date

    def contains_month(self, key: Optional[str]) -> bool:
        return bool(key) and self.start_month <= key <= self.end_month
