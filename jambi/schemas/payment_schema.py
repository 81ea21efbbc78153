from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
import json
import logging

from jambi.models.payment_model import Payment, PaymentMethod

logger = logging.getLogger(__name__)


class CreatePaymentRequest(BaseModel):
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    description: Optional[str] = Field(default=None, max_length=500)
    external_id: Optional[str] = Field(default=None, max_length=255)
    metadata: Optional[Dict[str, Any]] = None
    expires_in_hours: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "amount": 100,
                "currency": "SSP",
                "customer_phone": "0920000000",
                "payment_method": "mtn_momo",
                "description": "Order #1042",
                "external_id": "order_1042",
                "metadata": {"plan": "pro"},
                "expires_in_hours": 24
            }
        }


class PaymentRead(BaseModel):
    id: str
    reference_code: str
    amount: float
    currency: str
    status: str
    payment_method: str
    customer_phone: str
    customer_email: Optional[str] = None
    description: Optional[str] = None
    external_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    transaction_id: Optional[str] = None
    proof_url: Optional[str] = None
    source: str
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    matched_at: Optional[str] = None
    confirmed_at: Optional[str] = None
    rejected_at: Optional[str] = None


class BankAccount(BaseModel):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None


class PaymentInstructions(BaseModel):
    mtn_momo_number: Optional[str] = None
    bank_account: Optional[BankAccount] = None
    instructions: str


class MerchantSummary(BaseModel):
    name: str


class CreatePaymentResponse(BaseModel):
    success: bool = True
    payment: PaymentRead
    payment_instructions: PaymentInstructions
    merchant: MerchantSummary


class PaymentResponse(BaseModel):
    success: bool = True
    payment: PaymentRead


class PaymentActionResponse(BaseModel):
    success: bool = True
    message: str
    payment: PaymentRead


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class PaymentListResponse(BaseModel):
    success: bool = True
    payments: List[PaymentRead]
    pagination: Pagination


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        return str(value)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def _enum_value(value) -> Optional[str]:
    return getattr(value, "value", value)


def _amount(value) -> float:
    try:
        return float(Decimal(str(value)))
    except (InvalidOperation, TypeError, ValueError):
        return 0.0


def _metadata(payment: Payment) -> dict:
    try:
        data = json.loads(payment.metadata_json or "{}")
    except (TypeError, ValueError):
        logger.warning(f"Unreadable metadata on payment {payment.id}")
        return {}
    return data if isinstance(data, dict) else {}


def format_payment_response(payment: Payment) -> dict:
    """Map a stored payment to its wire representation. merchant_id and updated_at stay internal."""
    return {
        "id": payment.id,
        "reference_code": payment.reference_code,
        "amount": _amount(payment.amount),
        "currency": payment.currency,
        "status": _enum_value(payment.status),
        "payment_method": _enum_value(payment.payment_method),
        "customer_phone": payment.customer_phone,
        "customer_email": payment.customer_email,
        "description": payment.description,
        "external_id": payment.external_id,
        "metadata": _metadata(payment),
        "transaction_id": payment.transaction_id,
        "proof_url": payment.proof_url,
        "source": _enum_value(payment.source),
        "created_at": format_timestamp(payment.created_at),
        "expires_at": format_timestamp(payment.expires_at),
        "matched_at": format_timestamp(payment.matched_at),
        "confirmed_at": format_timestamp(payment.confirmed_at),
        "rejected_at": format_timestamp(payment.rejected_at),
    }
