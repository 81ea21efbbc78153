import smtplib
from unittest.mock import patch

from jambi.external_services.email_service import EmailClient


def test_sends_over_starttls_with_reply_to():
    with patch("jambi.external_services.email_service.smtplib.SMTP") as smtp:
        server = smtp.return_value.__enter__.return_value
        sent = EmailClient().send_email("team@jambi.test", "Hello", "Body text", reply_to="akol@example.com")

    assert sent is True
    smtp.assert_called_once_with("smtp.test", 587)
    smtp.return_value.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer@jambi.test", "secret")
    msg = server.send_message.call_args.args[0]
    assert msg["To"] == "team@jambi.test"
    assert msg["Reply-To"] == "akol@example.com"
    assert "Jambi Systems" in msg["From"]


def test_invalid_recipient_is_not_sent():
    with patch("jambi.external_services.email_service.smtplib.SMTP") as smtp:
        assert EmailClient().send_email("not-an-address", "Hello", "Body") is False
    smtp.assert_not_called()


def test_smtp_failure_returns_false():
    with patch("jambi.external_services.email_service.smtplib.SMTP") as smtp:
        server = smtp.return_value.__enter__.return_value
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        assert EmailClient().send_email("team@jambi.test", "Hello", "Body") is False


def test_unreachable_server_returns_false():
    with patch("jambi.external_services.email_service.smtplib.SMTP", side_effect=ConnectionRefusedError()):
        assert EmailClient().send_email("team@jambi.test", "Hello", "Body") is False
