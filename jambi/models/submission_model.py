from sqlmodel import SQLModel, Field
from datetime import datetime
from enum import Enum
from typing import List, Optional
import json


class SubmissionStatus(str, Enum):
    new = "new"
    in_review = "in_review"
    contacted = "contacted"
    closed = "closed"


class SystemRequest(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    full_name: str = Field(max_length=200)
    business_name: str = Field(max_length=200)
    phone: str = Field(max_length=30)
    email: Optional[str] = None
    business_type: str
    system_category: str = Field(index=True)
    problem: str
    goals: Optional[str] = None
    payments_json: str = Field(default="[]")
    requires_login: str
    timeline: str
    budget_range: str = Field(index=True)
    additional_info: Optional[str] = None
    consent: bool = Field(default=False)
    status: SubmissionStatus = Field(default=SubmissionStatus.new, index=True)
    internal_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: Optional[datetime] = None

    @property
    def payments(self) -> List[str]:
        """Return the selected payment options."""
        return json.loads(self.payments_json or "[]")
