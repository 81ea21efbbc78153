import asyncio
import logging
from typing import Optional

from sqlmodel import Session

from jambi.core.config import settings
from jambi.crud.payment_crud import PaymentCRUD
from jambi.db.session import engine
from jambi.external_services.webhook_service import WebhookDispatcher, get_webhook_dispatcher

logger = logging.getLogger(__name__)


def sweep_expired_payments(dispatcher: Optional[WebhookDispatcher] = None) -> int:
    """Expire every overdue open payment across all merchants. Returns how many moved."""
    with Session(engine) as session:
        expired = PaymentCRUD(session, dispatcher).expire_overdue_payments()
    if expired:
        logger.info(f"Expired {len(expired)} overdue payments")
    return len(expired)


async def payment_expiry_loop(interval: int = settings.PAYMENT_EXPIRY_SWEEP_SECONDS):
    logger.info(f"Payment expiry loop started (every {interval}s)")
    dispatcher = get_webhook_dispatcher()

    while True:
        try:
            await asyncio.to_thread(sweep_expired_payments, dispatcher)
        except Exception as e:
            logger.exception(f"Payment expiry sweep failed: {e}")

        await asyncio.sleep(interval)
