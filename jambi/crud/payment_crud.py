from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Tuple
import json
import logging
import re

from jambi.core.config import settings
from jambi.core.exceptions import InternalError, InvalidTransition, NotFound, ValidationError
from jambi.core.lifecycle import OPEN_STATUSES, ensure_can_confirm, ensure_can_reject
from jambi.core.security import generate_reference_code
from jambi.external_services.webhook_service import WebhookDispatcher, WebhookEvent
from jambi.models.merchant_model import Merchant
from jambi.models.payment_model import Payment, PaymentMethod, PaymentSource, PaymentStatus
from jambi.schemas.payment_schema import CreatePaymentRequest, format_payment_response

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
PHONE_RE = re.compile(r"^\+?\d{9,15}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
CENT = Decimal("0.01")
# Numeric(14, 2)
MAX_AMOUNT = Decimal("999999999999.99")


def format_amount(amount: Decimal) -> str:
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.quantize(CENT), "f")


def build_payment_instructions(merchant: Merchant, payment: Payment) -> dict:
    currency = payment.currency
    amount = format_amount(payment.amount)
    method = PaymentMethod(payment.payment_method)
    code = payment.reference_code

    if method == PaymentMethod.mtn_momo and merchant.mtn_momo_number:
        return {
            "mtn_momo_number": merchant.mtn_momo_number,
            "instructions": f"Send {currency} {amount} to {merchant.mtn_momo_number}. Include reference code: {code}",
        }
    bank_account = merchant.bank_account_info
    if method == PaymentMethod.bank_transfer and bank_account:
        return {
            "bank_account": bank_account,
            "instructions": f"Transfer {currency} {amount} to the bank account. Include reference code: {code}",
        }
    return {"instructions": f"Pay {currency} {amount}. Reference code: {code}"}


class PaymentCRUD:
    def __init__(
        self,
        session: Session,
        dispatcher: Optional[WebhookDispatcher] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session = session
        self.dispatcher = dispatcher
        self.clock = clock

    # Validation

    def _validate_create(self, data: CreatePaymentRequest) -> dict:
        if data.amount is None or data.amount <= 0:
            raise ValidationError("Amount is required and must be greater than 0")
        if data.amount > MAX_AMOUNT:
            raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}")
        amount = data.amount.quantize(CENT, rounding=ROUND_HALF_UP)
        if amount <= 0:
            raise ValidationError("Amount is required and must be greater than 0")

        phone = (data.customer_phone or "").strip()
        if not phone:
            raise ValidationError("Customer phone is required")
        if not PHONE_RE.match(re.sub(r"[\s\-()]", "", phone)):
            raise ValidationError("Customer phone must be a valid phone number")

        email = (data.customer_email or "").strip() or None
        if email and not EMAIL_RE.match(email):
            raise ValidationError("Customer email must be a valid email address")

        currency = (data.currency or settings.PAYMENT_DEFAULT_CURRENCY).strip().upper()
        if not CURRENCY_RE.match(currency):
            raise ValidationError("Currency must be a 3-letter code")

        expires_in_hours = data.expires_in_hours or settings.PAYMENT_DEFAULT_EXPIRY_HOURS
        if expires_in_hours < 1 or expires_in_hours > settings.PAYMENT_MAX_EXPIRY_HOURS:
            raise ValidationError(
                f"expires_in_hours must be between 1 and {settings.PAYMENT_MAX_EXPIRY_HOURS}"
            )

        return {
            "amount": amount,
            "currency": currency,
            "customer_phone": phone,
            "customer_email": email,
            "payment_method": data.payment_method or PaymentMethod.mtn_momo,
            "description": (data.description or "").strip() or None,
            "external_id": (data.external_id or "").strip() or None,
            "metadata_json": json.dumps(data.metadata or {}),
            "expires_in_hours": expires_in_hours,
        }

    # Create

    def create_payment(self, merchant: Merchant, data: CreatePaymentRequest) -> Payment:
        fields = self._validate_create(data)
        expires_in_hours = fields.pop("expires_in_hours")

        if fields["external_id"] and self._find_by(merchant.id, Payment.external_id, fields["external_id"]):
            raise ValidationError("A payment with this external_id already exists")

        for attempt in range(1, settings.REFERENCE_CODE_MAX_ATTEMPTS + 1):
            now = self.clock()
            payment = Payment(
                merchant_id=merchant.id,
                reference_code=generate_reference_code(),
                status=PaymentStatus.pending,
                source=PaymentSource.api,
                created_at=now,
                expires_at=now + timedelta(hours=expires_in_hours),
                **fields,
            )
            try:
                self.session.add(payment)
                self.session.commit()
                self.session.refresh(payment)
            except IntegrityError as e:
                self.session.rollback()
                if fields["external_id"] and self._find_by(merchant.id, Payment.external_id, fields["external_id"]):
                    raise ValidationError("A payment with this external_id already exists")
                logger.warning(f"Reference code collision on attempt {attempt} for merchant {merchant.id}: {str(e)}")
                continue
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"Failed to create payment for merchant {merchant.id}: {str(e)}")
                raise InternalError("Failed to create payment")

            logger.info(f"Created payment {payment.id} ({payment.reference_code}) for merchant {merchant.id}")
            self._emit(payment, WebhookEvent.payment_created)
            return payment

        logger.error(f"Could not allocate a unique reference code for merchant {merchant.id}")
        raise InternalError("Failed to create payment")

    # Lookup

    def _find_by(self, merchant_id: str, column, value: str) -> Optional[Payment]:
        return self.session.exec(
            select(Payment)
            .where(Payment.merchant_id == merchant_id)
            .where(column == value)
        ).first()

    def find_payment(self, merchant_id: str, token: str) -> Payment:
        """Resolve a token to one of the merchant's payments: id, then reference_code, then external_id."""
        token = (token or "").strip()
        if not token:
            raise ValidationError("Payment ID is required")

        try:
            payment = None
            if UUID_RE.match(token):
                payment = self._find_by(merchant_id, Payment.id, token.lower())
            if payment is None:
                payment = self._find_by(merchant_id, Payment.reference_code, token)
            if payment is None:
                payment = self._find_by(merchant_id, Payment.external_id, token)
        except SQLAlchemyError as e:
            logger.error(f"Payment lookup failed for merchant {merchant_id}: {str(e)}")
            raise InternalError("Failed to retrieve payment")

        if payment is None:
            raise NotFound("Payment not found")
        return payment

    def get_payment(self, merchant_id: str, token: str) -> Payment:
        payment = self.find_payment(merchant_id, token)
        self._expire_if_overdue(payment)
        return payment

    def list_payments(
        self,
        merchant_id: str,
        status: Optional[str] = None,
        customer_phone: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Payment], int]:
        self.expire_overdue_payments(merchant_id)

        conditions = [Payment.merchant_id == merchant_id]
        if status in PaymentStatus.__members__:
            conditions.append(Payment.status == PaymentStatus(status))
        if customer_phone:
            conditions.append(Payment.customer_phone == customer_phone)

        try:
            total = self.session.exec(
                select(func.count()).select_from(Payment).where(*conditions)
            ).one()
            payments = self.session.exec(
                select(Payment)
                .where(*conditions)
                .order_by(Payment.created_at.desc())
                .offset(offset)
                .limit(limit)
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list payments for merchant {merchant_id}: {str(e)}")
            raise InternalError("Failed to retrieve payments")
        return list(payments), total

    # Transitions

    def confirm_payment(self, merchant_id: str, token: str) -> Payment:
        payment = self.get_payment(merchant_id, token)
        return self._transition(
            payment, PaymentStatus.confirmed, ensure_can_confirm, "confirmed_at", WebhookEvent.payment_confirmed
        )

    def reject_payment(self, merchant_id: str, token: str) -> Payment:
        payment = self.get_payment(merchant_id, token)
        return self._transition(
            payment, PaymentStatus.rejected, ensure_can_reject, "rejected_at", WebhookEvent.payment_rejected
        )

    def _apply_status(self, payment: Payment, target: PaymentStatus, action: str, stamp_field: Optional[str] = None) -> bool:
        """Compare-and-swap on status. Returns False when another writer got there first."""
        now = self.clock()
        stmt = (
            update(Payment)
            .where(Payment.id == payment.id)
            .where(Payment.status == PaymentStatus(payment.status))
            .values(status=target, updated_at=now, **({stamp_field: now} if stamp_field else {}))
        )
        try:
            result = self.session.connection().execute(stmt)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to move payment {payment.id} to {target.value}: {str(e)}")
            raise InternalError(f"Failed to {action} payment")
        self.session.refresh(payment)
        return result.rowcount == 1

    def _transition(self, payment, target, guard, stamp_field, event) -> Payment:
        guard(payment.status)
        action = "confirm" if target == PaymentStatus.confirmed else "reject"
        if not self._apply_status(payment, target, action, stamp_field):
            # lost the race: report against whatever status won
            guard(payment.status)
            raise InvalidTransition("Payment status changed concurrently, please retry")
        logger.info(f"Payment {payment.id} {target.value}")
        self._emit(payment, event)
        return payment

    # Expiry

    def _expire_if_overdue(self, payment: Payment, now: Optional[datetime] = None) -> bool:
        if PaymentStatus(payment.status) not in OPEN_STATUSES or payment.expires_at >= (now or self.clock()):
            return False
        if not self._apply_status(payment, PaymentStatus.expired, "expire"):
            return False
        logger.info(f"Payment {payment.id} expired")
        self._emit(payment, WebhookEvent.payment_expired)
        return True

    def expire_overdue_payments(self, merchant_id: Optional[str] = None, now: Optional[datetime] = None) -> List[Payment]:
        """Move open payments past their expires_at to expired. Returns the payments moved."""
        now = now or self.clock()
        query = (
            select(Payment)
            .where(Payment.status.in_(list(OPEN_STATUSES)))
            .where(Payment.expires_at < now)
        )
        if merchant_id:
            query = query.where(Payment.merchant_id == merchant_id)
        try:
            overdue = self.session.exec(query).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query overdue payments: {str(e)}")
            raise InternalError("Failed to retrieve payments")
        return [payment for payment in overdue if self._expire_if_overdue(payment, now)]

    # Webhooks

    def _emit(self, payment: Payment, event: WebhookEvent) -> None:
        if self.dispatcher is None:
            return
        try:
            self.dispatcher.dispatch(payment.merchant_id, event, format_payment_response(payment))
        except Exception as e:
            logger.error(f"Failed to enqueue {event.value} for payment {payment.id}: {str(e)}")
