from fastapi import APIRouter, Depends, Query, Request
from typing import Optional
import logging

from jambi.core.config import settings
from jambi.core.rate_limit import API_POLICY, rate_limit
from jambi.crud.payment_crud import PaymentCRUD, build_payment_instructions
from jambi.dependencies import get_current_merchant, get_payment_crud
from jambi.models.merchant_model import Merchant
from jambi.schemas.payment_schema import (
    CreatePaymentRequest,
    CreatePaymentResponse,
    PaymentActionResponse,
    PaymentListResponse,
    PaymentResponse,
    format_payment_response,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix=f"{settings.API_V1_STR}/payments", tags=["payments"])

MAX_PAGE_SIZE = 100


@router.post("/create", response_model=CreatePaymentResponse)
@rate_limit(API_POLICY)
async def create_payment(
    request: Request,
    payment_data: CreatePaymentRequest,
    merchant: Merchant = Depends(get_current_merchant),
    crud: PaymentCRUD = Depends(get_payment_crud)
):
    """Create a pending payment and return how the customer should pay it."""
    payment = crud.create_payment(merchant, payment_data)
    return {
        "success": True,
        "payment": format_payment_response(payment),
        "payment_instructions": build_payment_instructions(merchant, payment),
        "merchant": {"name": merchant.name},
    }


@router.get("/list", response_model=PaymentListResponse)
@rate_limit(API_POLICY)
async def list_payments(
    request: Request,
    status: Optional[str] = None,
    customer_phone: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    merchant: Merchant = Depends(get_current_merchant),
    crud: PaymentCRUD = Depends(get_payment_crud)
):
    """List the merchant's payments, newest first."""
    limit = min(limit, MAX_PAGE_SIZE)
    payments, total = crud.list_payments(
        merchant.id, status=status, customer_phone=customer_phone, limit=limit, offset=offset
    )
    return {
        "success": True,
        "payments": [format_payment_response(p) for p in payments],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


@router.get("/{payment_id}", response_model=PaymentResponse)
@rate_limit(API_POLICY)
async def get_payment(
    request: Request,
    payment_id: str,
    merchant: Merchant = Depends(get_current_merchant),
    crud: PaymentCRUD = Depends(get_payment_crud)
):
    """Fetch one payment by id, reference code or external id."""
    payment = crud.get_payment(merchant.id, payment_id)
    return {"success": True, "payment": format_payment_response(payment)}


@router.post("/{payment_id}/confirm", response_model=PaymentActionResponse)
@rate_limit(API_POLICY)
async def confirm_payment(
    request: Request,
    payment_id: str,
    merchant: Merchant = Depends(get_current_merchant),
    crud: PaymentCRUD = Depends(get_payment_crud)
):
    payment = crud.confirm_payment(merchant.id, payment_id)
    return {
        "success": True,
        "message": "Payment confirmed successfully",
        "payment": format_payment_response(payment),
    }


@router.post("/{payment_id}/reject", response_model=PaymentActionResponse)
@rate_limit(API_POLICY)
async def reject_payment(
    request: Request,
    payment_id: str,
    merchant: Merchant = Depends(get_current_merchant),
    crud: PaymentCRUD = Depends(get_payment_crud)
):
    payment = crud.reject_payment(merchant.id, payment_id)
    return {
        "success": True,
        "message": "Payment rejected successfully",
        "payment": format_payment_response(payment),
    }
