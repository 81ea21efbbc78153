from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import List, Optional
import json
import uuid


class Merchant(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=200)
    email: str = Field(index=True)
    phone: Optional[str] = None
    mtn_momo_number: Optional[str] = None
    bank_account_info_json: Optional[str] = Field(default=None, nullable=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def bank_account_info(self) -> Optional[dict]:
        """Return the bank account descriptor (bank_name, account_number, account_name)."""
        if not self.bank_account_info_json:
            return None
        return json.loads(self.bank_account_info_json)


class ApiKey(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    merchant_id: str = Field(foreign_key="merchant.id", index=True)
    key_prefix: str = Field(index=True, max_length=8)
    key_hash: str = Field(unique=True)
    name: str = Field(default="Default")
    is_live: bool = Field(default=False)
    is_active: bool = Field(default=True)
    last_used_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Webhook(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    merchant_id: str = Field(foreign_key="merchant.id", index=True)
    url: str
    secret: str
    events_json: str = Field(default="[]")
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def events(self) -> List[str]:
        """Return the list of subscribed event names."""
        return json.loads(self.events_json or "[]")

    def subscribes_to(self, event: str) -> bool:
        return event in self.events


class WebhookLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    webhook_id: str = Field(foreign_key="webhook.id", index=True)
    payment_id: Optional[str] = Field(default=None, index=True)
    event: str
    payload_json: str = Field(default="{}")
    response_status: Optional[int] = None
    response_body: Optional[str] = None
    attempts: int = Field(default=1)
    delivered_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
