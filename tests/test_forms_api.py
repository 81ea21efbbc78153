"""
Lead form endpoint tests. SMTP is replaced by a mocked EmailClient.
"""
from sqlmodel import select

from jambi.core.rate_limit import FORMS_POLICY
from jambi.models.submission_model import SubmissionStatus, SystemRequest

CONTACT = {
    "name": "Akol Deng",
    "email": "akol@example.com",
    "message": "We would like a quote for a booking system.",
}

SYSTEM_REQUEST = {
    "full_name": "Akol Deng",
    "business_name": "Deng Fitness",
    "phone": "0921234567",
    "email": "akol@example.com",
    "business_type": "service_provider",
    "system_category": "booking_scheduling",
    "problem": "Members book sessions over WhatsApp and we lose track.",
    "goals": "Online booking with mobile money deposits",
    "payments": ["mobile_money", "cash_only"],
    "requires_login": "yes",
    "timeline": "1_2_months",
    "budget_range": "800_1500",
    "consent": True,
}


class TestContactForm:
    def test_sends_email_to_team_inbox(self, client, email_client) -> None:
        response = client.post("/api/forms/contact", json=CONTACT)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        email_client.send_email.assert_called_once()
        args, kwargs = email_client.send_email.call_args
        assert args[0] == "team@jambi.test"
        assert "Akol Deng" in args[1]
        assert CONTACT["message"] in args[2]
        assert kwargs["reply_to"] == "akol@example.com"

    def test_phone_alone_is_enough(self, client, email_client) -> None:
        body = {"name": "Akol", "phone": "0921234567", "message": "Please call me back today."}
        assert client.post("/api/forms/contact", json=body).status_code == 200

    def test_requires_email_or_phone(self, client, email_client) -> None:
        body = {"name": "Akol", "message": "Please call me back today."}
        response = client.post("/api/forms/contact", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Please provide either an email address or phone number"}
        email_client.send_email.assert_not_called()

    def test_short_message_is_rejected(self, client) -> None:
        response = client.post("/api/forms/contact", json=dict(CONTACT, message="hi"))
        assert response.status_code == 400
        assert response.json()["error"] == "Message is required (minimum 10 characters)"

    def test_honeypot_is_silently_accepted(self, client, email_client) -> None:
        response = client.post("/api/forms/contact", json=dict(CONTACT, company_website="http://spam.test"))

        assert response.status_code == 200
        assert response.json() == {"success": True}
        email_client.send_email.assert_not_called()

    def test_mail_failure_is_500(self, client, email_client) -> None:
        email_client.send_email.return_value = False
        response = client.post("/api/forms/contact", json=CONTACT)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to send email. Please try again later."}

    def test_rate_limited_after_policy_cap(self, client, email_client) -> None:
        for _ in range(FORMS_POLICY.times):
            assert client.post("/api/forms/contact", json=CONTACT).status_code == 200

        assert client.post("/api/forms/contact", json=CONTACT).status_code == 429


class TestSystemRequestForm:
    def test_persists_and_notifies(self, client, email_client, session) -> None:
        response = client.post("/api/forms/request-system", json=SYSTEM_REQUEST)

        assert response.status_code == 200
        submission = session.exec(select(SystemRequest)).one()
        assert submission.status == SubmissionStatus.new
        assert submission.payments == ["mobile_money", "cash_only"]

        assert email_client.send_email.call_count == 2
        admin_call, confirmation_call = email_client.send_email.call_args_list
        assert admin_call.args[0] == "team@jambi.test"
        assert "Deng Fitness" in admin_call.args[1]
        assert "Booking & Scheduling" in admin_call.args[2]
        assert confirmation_call.args[0] == "akol@example.com"

    def test_no_confirmation_without_email(self, client, email_client) -> None:
        body = dict(SYSTEM_REQUEST)
        del body["email"]
        assert client.post("/api/forms/request-system", json=body).status_code == 200
        assert email_client.send_email.call_count == 1

    def test_confirmation_failure_is_not_fatal(self, client, email_client) -> None:
        email_client.send_email.side_effect = [True, False]
        assert client.post("/api/forms/request-system", json=SYSTEM_REQUEST).status_code == 200

    def test_admin_mail_failure_is_500(self, client, email_client) -> None:
        email_client.send_email.return_value = False
        response = client.post("/api/forms/request-system", json=SYSTEM_REQUEST)
        assert response.status_code == 500

    def test_consent_is_required(self, client, email_client, session) -> None:
        response = client.post("/api/forms/request-system", json=dict(SYSTEM_REQUEST, consent=False))

        assert response.status_code == 400
        assert response.json()["error"] == "You must accept the terms to submit"
        assert session.exec(select(SystemRequest)).all() == []

    def test_unknown_budget_is_rejected(self, client) -> None:
        response = client.post("/api/forms/request-system", json=dict(SYSTEM_REQUEST, budget_range="millions"))
        assert response.status_code == 400
        assert response.json()["error"] == "Budget range is required"

    def test_empty_payments_is_rejected(self, client) -> None:
        response = client.post("/api/forms/request-system", json=dict(SYSTEM_REQUEST, payments=[]))
        assert response.json()["error"] == "At least one payment option is required"

    def test_honeypot_stores_nothing(self, client, email_client, session) -> None:
        response = client.post("/api/forms/request-system", json=dict(SYSTEM_REQUEST, company_website="x"))

        assert response.json() == {"success": True}
        assert session.exec(select(SystemRequest)).all() == []
        email_client.send_email.assert_not_called()
