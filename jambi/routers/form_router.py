from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
import logging

from jambi.core.config import settings
from jambi.core.exceptions import InternalError
from jambi.core.form_emails import confirmation_email, contact_email, system_request_email
from jambi.core.rate_limit import FORMS_POLICY, rate_limit
from jambi.crud.submission_crud import SubmissionCRUD
from jambi.db.session import get_session
from jambi.external_services.email_service import EmailClient, get_email_client
from jambi.schemas.form_schema import ContactForm, FormResponse, SystemRequestForm

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/forms", tags=["forms"])

SEND_FAILED = "Failed to send email. Please try again later."


def _forms_inbox() -> str:
    if not settings.FORMS_TO_EMAIL:
        logger.error("FORMS_TO_EMAIL is not configured")
        raise InternalError(SEND_FAILED)
    return settings.FORMS_TO_EMAIL


@router.post("/contact", response_model=FormResponse)
@rate_limit(FORMS_POLICY)
async def submit_contact(
    request: Request,
    form: ContactForm,
    email_client: EmailClient = Depends(get_email_client)
):
    """Forward a contact message to the team inbox."""
    if form.is_spam:
        logger.warning("Honeypot filled on contact form, dropping submission")
        return {"success": True}

    subject, body = contact_email(form)
    if not email_client.send_email(_forms_inbox(), subject, body, reply_to=form.email):
        raise InternalError(SEND_FAILED)
    return {"success": True}


@router.post("/request-system", response_model=FormResponse)
@rate_limit(FORMS_POLICY)
async def submit_system_request(
    request: Request,
    form: SystemRequestForm,
    session: Session = Depends(get_session),
    email_client: EmailClient = Depends(get_email_client)
):
    """Store a system request, notify the team and thank the submitter."""
    if form.is_spam:
        logger.warning("Honeypot filled on system request form, dropping submission")
        return {"success": True}

    inbox = _forms_inbox()
    submission = SubmissionCRUD(session).create_submission(form)

    subject, body = system_request_email(form, submission.id)
    if not email_client.send_email(inbox, subject, body, reply_to=form.email):
        raise InternalError(SEND_FAILED)

    if form.email:
        subject, body = confirmation_email(form)
        if not email_client.send_email(form.email, subject, body):
            logger.warning(f"Confirmation email to {form.email} failed for submission {submission.id}")

    return {"success": True}
