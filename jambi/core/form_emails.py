from typing import Tuple
from jambi.core.config import settings
from jambi.schemas.form_schema import (
    BUDGET_LABELS,
    BUSINESS_TYPE_LABELS,
    PAYMENT_LABELS,
    REQUIRES_LOGIN_LABELS,
    SYSTEM_CATEGORY_LABELS,
    TIMELINE_LABELS,
    ContactForm,
    SystemRequestForm,
)


def contact_email(form: ContactForm) -> Tuple[str, str]:
    subject = f"[{settings.EMAILS_FROM_NAME}] Contact: {form.name}"
    body = "\n".join([
        "New contact message",
        "",
        f"Name: {form.name}",
        f"Email: {form.email or 'Not provided'}",
        f"Phone: {form.phone or 'Not provided'}",
        "",
        "Message:",
        form.message,
    ])
    return subject, body


def system_request_email(form: SystemRequestForm, submission_id: int) -> Tuple[str, str]:
    """Admin notification for a new system request."""
    subject = f"[{settings.EMAILS_FROM_NAME}] New Request: {form.business_name}"
    payments = ", ".join(PAYMENT_LABELS[p] for p in form.payments)
    body = "\n".join([
        f"New system request #{submission_id}",
        "",
        f"Full name: {form.full_name}",
        f"Business: {form.business_name}",
        f"Phone: {form.phone}",
        f"Email: {form.email or 'Not provided'}",
        f"Business type: {BUSINESS_TYPE_LABELS[form.business_type]}",
        f"System category: {SYSTEM_CATEGORY_LABELS[form.system_category]}",
        f"Payments: {payments}",
        f"Requires login: {REQUIRES_LOGIN_LABELS[form.requires_login]}",
        f"Timeline: {TIMELINE_LABELS[form.timeline]}",
        f"Budget: {BUDGET_LABELS[form.budget_range]}",
        "",
        "Problem:",
        form.problem,
        "",
        "Goals:",
        form.goals or "Not provided",
        "",
        "Additional info:",
        form.additional_info or "Not provided",
    ])
    return subject, body


def confirmation_email(form: SystemRequestForm) -> Tuple[str, str]:
    subject = f"Thank you for your request - {settings.EMAILS_FROM_NAME}"
    body = "\n".join([
        f"Hi {form.full_name},",
        "",
        f"We received your request for {form.business_name} "
        f"({SYSTEM_CATEGORY_LABELS[form.system_category]}).",
        "Our team will review it and get back to you within 1-2 business days.",
        "",
        settings.EMAILS_FROM_NAME,
    ])
    return subject, body
