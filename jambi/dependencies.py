from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from datetime import datetime
from typing import Optional

from jambi.core.exceptions import InvalidCredential, MerchantInactive, Unauthenticated
from jambi.core.security import API_KEY_PREFIX_LENGTH, api_key_matches, verify_token
from jambi.crud.payment_crud import PaymentCRUD
from jambi.db.session import get_session
from jambi.external_services.webhook_service import WebhookDispatcher, get_webhook_dispatcher
from jambi.models.admin_model import AdminUser
from jambi.models.merchant_model import ApiKey, Merchant
import logging

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/admin/login")
api_key_scheme = HTTPBearer(auto_error=False)

MIN_API_KEY_LENGTH = 10


def get_current_merchant(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(api_key_scheme),
    session: Session = Depends(get_session)
) -> Merchant:
    """Resolve the Bearer API key to an active merchant."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated()

    api_key = credentials.credentials.strip()
    if len(api_key) < MIN_API_KEY_LENGTH:
        raise InvalidCredential("Invalid API key format")

    prefix = api_key[:API_KEY_PREFIX_LENGTH]
    candidates = session.exec(
        select(ApiKey)
        .where(ApiKey.key_prefix == prefix)
        .where(ApiKey.is_active == True)
    ).all()

    # compare every candidate so timing does not depend on which one matched
    matched = None
    for candidate in candidates:
        if api_key_matches(api_key, candidate.key_hash) and matched is None:
            matched = candidate

    if matched is None:
        logger.warning(f"Rejected API key with prefix {prefix}")
        raise InvalidCredential()

    merchant = session.get(Merchant, matched.merchant_id)
    if not merchant or not merchant.is_active:
        raise MerchantInactive()

    try:
        matched.last_used_at = datetime.utcnow()
        session.add(matched)
        session.commit()
        session.refresh(merchant)
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning(f"Could not stamp last_used_at on API key {matched.id}: {str(e)}")

    return merchant


def get_payment_crud(
    session: Session = Depends(get_session),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher)
) -> PaymentCRUD:
    return PaymentCRUD(session, dispatcher)


def get_admin_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session)
) -> AdminUser:
    """Decode the admin JWT and return the AdminUser from DB."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    email = verify_token(token)
    if email is None:
        raise credentials_exception

    admin = session.exec(select(AdminUser).where(AdminUser.email == email)).first()
    if admin is None or not admin.is_active:
        raise credentials_exception

    return admin
