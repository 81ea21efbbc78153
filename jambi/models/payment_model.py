from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Numeric, UniqueConstraint
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid


class PaymentStatus(str, Enum):
    pending = "pending"
    matched = "matched"
    confirmed = "confirmed"
    rejected = "rejected"
    expired = "expired"


class PaymentMethod(str, Enum):
    mtn_momo = "mtn_momo"
    bank_transfer = "bank_transfer"


class PaymentSource(str, Enum):
    api = "api"
    dashboard = "dashboard"
    checkout = "checkout"


class Payment(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("merchant_id", "external_id", name="uq_payment_merchant_external_id"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    merchant_id: str = Field(foreign_key="merchant.id", index=True)
    reference_code: str = Field(unique=True, index=True, max_length=10)
    external_id: Optional[str] = Field(default=None, index=True)
    amount: Decimal = Field(sa_column=Column(Numeric(14, 2), nullable=False))
    currency: str = Field(default="SSP", max_length=3)
    status: PaymentStatus = Field(default=PaymentStatus.pending, index=True)
    payment_method: PaymentMethod = Field(default=PaymentMethod.mtn_momo)
    customer_phone: str = Field(index=True)
    customer_email: Optional[str] = None
    description: Optional[str] = None
    metadata_json: str = Field(default="{}")
    transaction_id: Optional[str] = None
    proof_url: Optional[str] = None
    source: PaymentSource = Field(default=PaymentSource.api)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: Optional[datetime] = None
    expires_at: datetime
    matched_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

