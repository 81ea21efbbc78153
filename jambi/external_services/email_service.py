import smtplib
import ssl
import logging
from email.mime.text import MIMEText
from email.utils import formataddr, parseaddr
from typing import Optional
from jambi.core.config import settings

logger = logging.getLogger(__name__)

SMTPS_PORT = 465


class EmailClient:
    """Plain-text mail over the configured SMTP relay."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.sender = formataddr((settings.EMAILS_FROM_NAME, settings.EMAILS_FROM_EMAIL or settings.SMTP_USER))

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        address = parseaddr(email or "")[1]
        local, _, domain = address.partition("@")
        return bool(local) and "." in domain

    def _build_message(self, to_email: str, subject: str, body: str, reply_to: Optional[str]) -> MIMEText:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        if reply_to and self.is_valid_email(reply_to):
            msg["Reply-To"] = reply_to
        return msg

    def _open(self) -> smtplib.SMTP:
        if self.smtp_port == SMTPS_PORT:
            return smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=ssl.create_default_context())
        server = smtplib.SMTP(self.smtp_host, self.smtp_port)
        try:
            server.starttls(context=ssl.create_default_context())
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def send_email(self, to_email: str, subject: str, body: str, reply_to: Optional[str] = None) -> bool:
        """
        Send one message. Returns False instead of raising when the relay
        refuses it or cannot be reached.
        """
        if not subject or not body or not self.is_valid_email(to_email):
            logger.error(f"Refusing to send malformed email to {to_email!r}")
            return False

        msg = self._build_message(to_email, subject, body, reply_to)
        try:
            with self._open() as server:
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for {self.smtp_user}: {e}")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error sending '{subject}' to {to_email}: {e}")
            return False
        except OSError as e:
            logger.error(f"Could not reach SMTP server {self.smtp_host}:{self.smtp_port}: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True


def get_email_client() -> EmailClient:
    return EmailClient()
