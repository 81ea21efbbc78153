"""
Webhook dispatcher tests. Outbound HTTP is a mocked requests session.
"""
import json
from unittest.mock import MagicMock

import pytest
import requests
from sqlmodel import select

from jambi.core.security import generate_webhook_secret, verify_webhook_signature
from jambi.external_services.webhook_service import WebhookDispatcher, WebhookEvent
from jambi.models.merchant_model import Webhook, WebhookLog

PAYMENT = {"id": "pay_1", "reference_code": "1234567890", "status": "confirmed", "amount": 100.0}


def http_response(status_code=200, text="ok"):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.ok = 200 <= status_code < 300
    return response


@pytest.fixture
def http():
    http = MagicMock(spec=requests.Session)
    http.post.return_value = http_response()
    return http


@pytest.fixture
def webhook_dispatcher(http):
    dispatcher = WebhookDispatcher(http=http, max_workers=1, max_pending=10, timeout=2)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def endpoint(session, merchant):
    merchant, _ = merchant
    webhook = Webhook(
        merchant_id=merchant.id,
        url="https://merchant.test/hooks",
        secret=generate_webhook_secret(),
        events_json=json.dumps(["payment.confirmed", "payment.rejected"]),
    )
    session.add(webhook)
    session.commit()
    session.refresh(webhook)
    return webhook


def logs(session):
    session.expire_all()
    return session.exec(select(WebhookLog)).all()


class TestWebhookDispatcher:
    def test_no_endpoint_is_a_no_op(self, webhook_dispatcher, http, merchant) -> None:
        merchant, _ = merchant
        future = webhook_dispatcher.dispatch(merchant.id, WebhookEvent.payment_confirmed, PAYMENT)

        assert future.result(timeout=5) == 0
        http.post.assert_not_called()

    def test_signed_delivery(self, webhook_dispatcher, http, endpoint, session) -> None:
        future = webhook_dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_confirmed, PAYMENT)
        assert future.result(timeout=5) == 1

        http.post.assert_called_once()
        args, kwargs = http.post.call_args
        assert args[0] == "https://merchant.test/hooks"
        assert kwargs["timeout"] == 2

        body = kwargs["data"].decode("utf-8")
        headers = kwargs["headers"]
        assert headers["X-Payssd-Event"] == "payment.confirmed"
        assert verify_webhook_signature(body, headers["X-Payssd-Timestamp"], headers["X-Payssd-Signature"], endpoint.secret)

        payload = json.loads(body)
        assert payload["event"] == "payment.confirmed"
        assert payload["timestamp"] == headers["X-Payssd-Timestamp"]
        assert payload["payment"] == PAYMENT

        [log] = logs(session)
        assert log.response_status == 200
        assert log.delivered_at is not None
        assert log.payment_id == "pay_1"

    def test_unsubscribed_event_is_skipped(self, webhook_dispatcher, http, endpoint) -> None:
        future = webhook_dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_created, PAYMENT)

        assert future.result(timeout=5) == 0
        http.post.assert_not_called()

    def test_connection_failure_is_logged_not_raised(self, webhook_dispatcher, http, endpoint, session) -> None:
        http.post.side_effect = requests.exceptions.ConnectionError("connection refused")

        future = webhook_dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_rejected, PAYMENT)
        assert future.result(timeout=5) == 0

        [log] = logs(session)
        assert log.response_status is None
        assert log.delivered_at is None
        assert "connection refused" in log.response_body

    def test_timeout_is_recorded(self, webhook_dispatcher, http, endpoint, session) -> None:
        http.post.side_effect = requests.exceptions.Timeout()

        webhook_dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_rejected, PAYMENT).result(timeout=5)

        [log] = logs(session)
        assert log.response_body == "Request timeout"

    def test_error_status_is_not_delivered(self, webhook_dispatcher, http, endpoint, session) -> None:
        http.post.return_value = http_response(500, "boom")

        future = webhook_dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_confirmed, PAYMENT)
        assert future.result(timeout=5) == 0

        [log] = logs(session)
        assert log.response_status == 500
        assert log.response_body == "boom"
        assert log.delivered_at is None

    def test_full_queue_drops_event(self, http, endpoint) -> None:
        dispatcher = WebhookDispatcher(http=http, max_workers=1, max_pending=0)
        try:
            assert dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_confirmed, PAYMENT) is None
        finally:
            dispatcher.shutdown()
        http.post.assert_not_called()

    def test_dispatch_after_shutdown_is_dropped(self, http, endpoint) -> None:
        dispatcher = WebhookDispatcher(http=http, max_workers=1)
        dispatcher.shutdown()

        assert dispatcher.dispatch(endpoint.merchant_id, WebhookEvent.payment_confirmed, PAYMENT) is None
