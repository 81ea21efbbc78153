from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from jambi.external_services.webhook_service import WebhookEvent
from jambi.models.submission_model import SubmissionStatus
from jambi.schemas.form_schema import EMAIL_RE
from jambi.schemas.payment_schema import BankAccount


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Submissions

class SubmissionRead(BaseModel):
    id: int
    full_name: str
    business_name: str
    phone: str
    email: Optional[str] = None
    business_type: str
    system_category: str
    problem: str
    goals: Optional[str] = None
    payments: List[str]
    requires_login: str
    timeline: str
    budget_range: str
    additional_info: Optional[str] = None
    consent: bool
    status: SubmissionStatus
    internal_notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionUpdate(BaseModel):
    status: Optional[SubmissionStatus] = None
    internal_notes: Optional[str] = Field(default=None, max_length=5000)


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionRead]
    total: int
    page: int
    per_page: int
    pages: int


# Merchants

class MerchantCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    email: str
    phone: Optional[str] = None
    mtn_momo_number: Optional[str] = None
    bank_account_info: Optional[BankAccount] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not EMAIL_RE.match(v.strip()):
            raise ValueError("Please provide a valid email address")
        return v.strip().lower()


class MerchantRead(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    mtn_momo_number: Optional[str] = None
    bank_account_info: Optional[BankAccount] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ApiKeyCreate(BaseModel):
    name: str = Field(default="Default", max_length=100)
    is_live: bool = False


class ApiKeyCreated(BaseModel):
    """Returned once; the plaintext key is never stored."""
    id: str
    name: str
    key: str
    key_prefix: str
    is_live: bool
    created_at: datetime


class WebhookCreate(BaseModel):
    url: str = Field(max_length=2000)
    events: List[WebhookEvent] = Field(default_factory=lambda: list(WebhookEvent))

    @field_validator("url")
    @classmethod
    def check_url(cls, v):
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ValueError("Webhook URL must start with http:// or https://")
        return v

    @field_validator("events")
    @classmethod
    def check_events(cls, v):
        if not v:
            raise ValueError("At least one event is required")
        return v


class WebhookCreated(BaseModel):
    id: str
    url: str
    events: List[str]
    secret: str
    is_active: bool
    created_at: datetime
