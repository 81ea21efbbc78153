from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from typing import List, Tuple
import json
import logging

from jambi.core.exceptions import InternalError, NotFound
from jambi.core.security import generate_api_key, generate_webhook_secret
from jambi.models.merchant_model import ApiKey, Merchant, Webhook
from jambi.schemas.admin_schema import ApiKeyCreate, MerchantCreate, WebhookCreate

logger = logging.getLogger(__name__)


class MerchantCRUD:
    def __init__(self, session: Session):
        self.session = session

    def _save(self, obj, what: str):
        try:
            self.session.add(obj)
            self.session.commit()
            self.session.refresh(obj)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to create {what}: {str(e)}")
            raise InternalError(f"Failed to create {what}")
        return obj

    def create_merchant(self, data: MerchantCreate) -> Merchant:
        bank_account = data.bank_account_info.model_dump() if data.bank_account_info else None
        merchant = Merchant(
            name=data.name.strip(),
            email=data.email,
            phone=data.phone,
            mtn_momo_number=data.mtn_momo_number,
            bank_account_info_json=json.dumps(bank_account) if bank_account else None,
        )
        merchant = self._save(merchant, "merchant")
        logger.info(f"Created merchant {merchant.id} ({merchant.name})")
        return merchant

    def list_merchants(self) -> List[Merchant]:
        return list(self.session.exec(select(Merchant).order_by(Merchant.created_at.desc())).all())

    def get_merchant(self, merchant_id: str) -> Merchant:
        merchant = self.session.get(Merchant, merchant_id)
        if not merchant:
            raise NotFound("Merchant not found")
        return merchant

    def create_api_key(self, merchant_id: str, data: ApiKeyCreate) -> Tuple[ApiKey, str]:
        """Issue a key for the merchant. Returns the stored row and the plaintext key."""
        merchant = self.get_merchant(merchant_id)
        key, prefix, key_hash = generate_api_key(data.is_live)
        api_key = ApiKey(
            merchant_id=merchant.id,
            key_prefix=prefix,
            key_hash=key_hash,
            name=data.name,
            is_live=data.is_live,
        )
        api_key = self._save(api_key, "API key")
        logger.info(f"Issued {'live' if data.is_live else 'test'} API key {api_key.id} for merchant {merchant.id}")
        return api_key, key

    def create_webhook(self, merchant_id: str, data: WebhookCreate) -> Webhook:
        merchant = self.get_merchant(merchant_id)
        webhook = Webhook(
            merchant_id=merchant.id,
            url=data.url,
            secret=generate_webhook_secret(),
            events_json=json.dumps([event.value for event in data.events]),
        )
        webhook = self._save(webhook, "webhook")
        logger.info(f"Registered webhook {webhook.id} for merchant {merchant.id}")
        return webhook
