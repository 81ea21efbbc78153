from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional
import json
import logging
import threading

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from jambi.core.config import settings
from jambi.core.security import create_webhook_signature
from jambi.db.session import engine
from jambi.models.merchant_model import Webhook, WebhookLog
from jambi.schemas.payment_schema import format_timestamp

logger = logging.getLogger(__name__)

RESPONSE_BODY_LIMIT = 2000


class WebhookEvent(str, Enum):
    payment_created = "payment.created"
    payment_confirmed = "payment.confirmed"
    payment_rejected = "payment.rejected"
    payment_expired = "payment.expired"


class WebhookDispatcher:
    """
    Fire-and-forget delivery of payment events to merchant endpoints.

    Deliveries run on a small thread pool. At most `max_pending` deliveries are
    queued or in flight; past that, events are dropped and logged. Nothing
    raised while delivering ever reaches the caller of `dispatch`.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        http: Optional[requests.Session] = None,
        max_workers: int = settings.WEBHOOK_MAX_WORKERS,
        max_pending: int = settings.WEBHOOK_MAX_PENDING,
        timeout: float = settings.WEBHOOK_TIMEOUT_SECONDS,
    ):
        self.session_factory = session_factory or (lambda: Session(engine))
        self.http = http or requests.Session()
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="webhook")
        self._slots = threading.BoundedSemaphore(max_pending)

    def dispatch(self, merchant_id: str, event: WebhookEvent, payment: Dict[str, Any]) -> Optional[Future]:
        event = WebhookEvent(event)
        if not self._slots.acquire(blocking=False):
            logger.warning(f"Webhook queue full, dropping {event.value} for payment {payment.get('id')}")
            return None
        try:
            future = self._executor.submit(self._deliver_all, merchant_id, event, payment)
        except RuntimeError as e:
            # executor already shut down
            self._slots.release()
            logger.error(f"Could not queue webhook {event.value} for merchant {merchant_id}: {str(e)}")
            return None
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        self._slots.release()
        exc = future.exception()
        if exc is not None:
            logger.error(f"Webhook dispatch failed: {str(exc)}")

    def _deliver_all(self, merchant_id: str, event: WebhookEvent, payment: Dict[str, Any]) -> int:
        with self.session_factory() as session:
            webhooks = session.exec(
                select(Webhook)
                .where(Webhook.merchant_id == merchant_id)
                .where(Webhook.is_active == True)
            ).all()
            targets = [w for w in webhooks if w.subscribes_to(event.value)]
            if not targets:
                logger.debug(f"No webhook registered for {event.value} on merchant {merchant_id}")
                return 0

            timestamp = format_timestamp(datetime.utcnow())
            body = json.dumps(
                {"event": event.value, "timestamp": timestamp, "payment": payment},
                separators=(",", ":"),
            )
            delivered = 0
            for webhook in targets:
                if self._send(session, webhook, event, body, timestamp, payment.get("id")):
                    delivered += 1
            return delivered

    def _send(
        self,
        session: Session,
        webhook: Webhook,
        event: WebhookEvent,
        body: str,
        timestamp: str,
        payment_id: Optional[str],
    ) -> bool:
        headers = {
            "Content-Type": "application/json",
            "X-Payssd-Signature": create_webhook_signature(body, timestamp, webhook.secret),
            "X-Payssd-Timestamp": timestamp,
            "X-Payssd-Event": event.value,
        }

        response_status = None
        response_body = None
        delivered = False
        try:
            response = self.http.post(webhook.url, data=body.encode("utf-8"), headers=headers, timeout=self.timeout)
            response_status = response.status_code
            response_body = (response.text or "")[:RESPONSE_BODY_LIMIT]
            delivered = response.ok
            if delivered:
                logger.info(f"Delivered {event.value} for payment {payment_id} to {webhook.url}")
            else:
                logger.warning(f"Webhook {webhook.id} answered HTTP {response_status} for {event.value}")
        except requests.exceptions.Timeout:
            response_body = "Request timeout"
            logger.warning(f"Webhook {webhook.id} timed out for {event.value}")
        except requests.exceptions.RequestException as e:
            response_body = str(e)[:RESPONSE_BODY_LIMIT]
            logger.warning(f"Webhook {webhook.id} delivery failed for {event.value}: {str(e)}")

        log = WebhookLog(
            webhook_id=webhook.id,
            payment_id=payment_id,
            event=event.value,
            payload_json=body,
            response_status=response_status,
            response_body=response_body,
            attempts=1,
            delivered_at=datetime.utcnow() if delivered else None,
        )
        try:
            session.add(log)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to record webhook log for {webhook.id}: {str(e)}")
        return delivered

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


webhook_dispatcher = WebhookDispatcher()


def get_webhook_dispatcher() -> WebhookDispatcher:
    return webhook_dispatcher
