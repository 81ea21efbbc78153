from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

BUSINESS_TYPE_LABELS = {
    "creator_influencer": "Creator / Influencer",
    "media_news": "Media / News Platform",
    "online_business": "Online Business / Software",
    "shop_landlord": "Shop / Landlord / Service Business",
    "school_ngo": "School / NGO / Institution",
    "service_provider": "Service Provider (Gym, Salon, Clinic)",
    "other": "Other",
}

SYSTEM_CATEGORY_LABELS = {
    "creator_subscription": "Creator Subscription System",
    "payment_access": "Payment & Access Control System",
    "debt_tracking": "Debt & Customer Tracking System",
    "booking_scheduling": "Booking & Scheduling",
    "internal_management": "Internal Management System",
    "custom": "Custom",
    "not_sure": "Not sure (help me decide)",
}

PAYMENT_LABELS = {
    "mobile_money": "Mobile money",
    "bank": "Bank payments",
    "card": "Card payments",
    "cash_only": "Cash tracking only",
    "none": "No payments needed",
}

REQUIRES_LOGIN_LABELS = {
    "yes": "Yes",
    "no": "No",
    "not_sure": "Not sure",
}

TIMELINE_LABELS = {
    "asap": "As soon as possible",
    "2_4_weeks": "Within 2-4 weeks",
    "1_2_months": "1-2 months",
    "flexible": "Flexible",
}

BUDGET_LABELS = {
    "under_500": "Under $500",
    "500_800": "$500 - $800",
    "800_1500": "$800 - $1,500",
    "1500_3000": "$1,500 - $3,000",
    "3000_plus": "$3,000+",
    "not_sure": "Not sure yet",
}


def _text(value, minimum: int, message: str) -> str:
    if not isinstance(value, str) or len(value.strip()) < minimum:
        raise ValueError(message)
    return value.strip()


def _choice(value, choices: dict, message: str) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValueError(message)
    return value


def _optional_text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class ContactForm(BaseModel):
    name: Optional[str] = Field(default=None, validate_default=True)
    message: Optional[str] = Field(default=None, validate_default=True)
    email: Optional[str] = None
    phone: Optional[str] = None
    company_website: Optional[str] = None  # honeypot

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _text(v, 2, "Name is required (minimum 2 characters)")

    @field_validator("message", mode="before")
    @classmethod
    def check_message(cls, v):
        return _text(v, 10, "Message is required (minimum 10 characters)")

    @field_validator("email", "phone", "company_website", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _optional_text(v)

    @model_validator(mode="after")
    def check_contact_channel(self):
        if not self.email and not self.phone:
            raise ValueError("Please provide either an email address or phone number")
        if self.email and not EMAIL_RE.match(self.email):
            raise ValueError("Please provide a valid email address")
        return self

    @property
    def is_spam(self) -> bool:
        return bool(self.company_website)


class SystemRequestForm(BaseModel):
    full_name: Optional[str] = Field(default=None, validate_default=True)
    business_name: Optional[str] = Field(default=None, validate_default=True)
    phone: Optional[str] = Field(default=None, validate_default=True)
    email: Optional[str] = None
    business_type: Optional[str] = Field(default=None, validate_default=True)
    system_category: Optional[str] = Field(default=None, validate_default=True)
    problem: Optional[str] = Field(default=None, validate_default=True)
    goals: Optional[str] = None
    payments: Optional[List[str]] = Field(default=None, validate_default=True)
    requires_login: Optional[str] = Field(default=None, validate_default=True)
    timeline: Optional[str] = Field(default=None, validate_default=True)
    budget_range: Optional[str] = Field(default=None, validate_default=True)
    additional_info: Optional[str] = None
    consent: Optional[bool] = Field(default=None, validate_default=True)
    company_website: Optional[str] = None  # honeypot

    @field_validator("full_name", mode="before")
    @classmethod
    def check_full_name(cls, v):
        return _text(v, 2, "Full name is required (minimum 2 characters)")

    @field_validator("business_name", mode="before")
    @classmethod
    def check_business_name(cls, v):
        return _text(v, 2, "Business name is required (minimum 2 characters)")

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v):
        return _text(v, 9, "Valid phone number is required")

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        email = _optional_text(v)
        if email and not EMAIL_RE.match(email):
            raise ValueError("Please provide a valid email address")
        return email

    @field_validator("business_type", mode="before")
    @classmethod
    def check_business_type(cls, v):
        return _choice(v, BUSINESS_TYPE_LABELS, "Business type is required")

    @field_validator("system_category", mode="before")
    @classmethod
    def check_system_category(cls, v):
        return _choice(v, SYSTEM_CATEGORY_LABELS, "System category is required")

    @field_validator("problem", mode="before")
    @classmethod
    def check_problem(cls, v):
        return _text(v, 10, "Problem description is required (minimum 10 characters)")

    @field_validator("payments", mode="before")
    @classmethod
    def check_payments(cls, v):
        if not isinstance(v, list) or not v:
            raise ValueError("At least one payment option is required")
        if any(not isinstance(p, str) or p not in PAYMENT_LABELS for p in v):
            raise ValueError("Unknown payment option")
        return v

    @field_validator("requires_login", mode="before")
    @classmethod
    def check_requires_login(cls, v):
        return _choice(v, REQUIRES_LOGIN_LABELS, "Login requirement selection is required")

    @field_validator("timeline", mode="before")
    @classmethod
    def check_timeline(cls, v):
        return _choice(v, TIMELINE_LABELS, "Timeline selection is required")

    @field_validator("budget_range", mode="before")
    @classmethod
    def check_budget_range(cls, v):
        return _choice(v, BUDGET_LABELS, "Budget range is required")

    @field_validator("consent", mode="before")
    @classmethod
    def check_consent(cls, v):
        if v is not True:
            raise ValueError("You must accept the terms to submit")
        return v

    @field_validator("goals", "additional_info", "company_website", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _optional_text(v)

    @property
    def is_spam(self) -> bool:
        return bool(self.company_website)


class FormResponse(BaseModel):
    success: bool = True
