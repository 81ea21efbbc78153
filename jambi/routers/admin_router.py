from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session
from typing import List, Optional
import math

from jambi.core.rate_limit import LOGIN_POLICY, rate_limit
from jambi.crud.admin_crud import AdminCRUD
from jambi.crud.merchant_crud import MerchantCRUD
from jambi.crud.submission_crud import SubmissionCRUD
from jambi.db.session import get_session
from jambi.dependencies import get_admin_user
from jambi.models.admin_model import AdminUser
from jambi.models.submission_model import SubmissionStatus
from jambi.schemas.admin_schema import (
    ApiKeyCreate,
    ApiKeyCreated,
    MerchantCreate,
    MerchantRead,
    SubmissionListResponse,
    SubmissionRead,
    SubmissionUpdate,
    Token,
    WebhookCreate,
    WebhookCreated,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=Token)
@rate_limit(LOGIN_POLICY)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session)
):
    """Exchange admin email and password for an access token."""
    access_token = AdminCRUD(session).login_admin(form_data.username, form_data.password)
    return {"access_token": access_token, "token_type": "bearer"}


# Submissions

@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    status: Optional[SubmissionStatus] = None,
    system_category: Optional[str] = None,
    budget_range: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    submissions, total = SubmissionCRUD(session).list_submissions(
        status=status,
        system_category=system_category,
        budget_range=budget_range,
        search=search,
        page=page,
        per_page=per_page,
    )
    return {
        "submissions": submissions,
        "total": total,
        "page": page,
        "per_page": per_page,
        "pages": math.ceil(total / per_page) if total else 0,
    }


@router.get("/submissions/{submission_id}", response_model=SubmissionRead)
async def get_submission(
    submission_id: int,
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    return SubmissionCRUD(session).get_submission(submission_id)


@router.patch("/submissions/{submission_id}", response_model=SubmissionRead)
async def update_submission(
    submission_id: int,
    data: SubmissionUpdate,
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    """Change a submission's triage status or internal notes."""
    return SubmissionCRUD(session).update_submission(submission_id, data)


# Merchants

@router.post("/merchants", response_model=MerchantRead, status_code=status.HTTP_201_CREATED)
async def create_merchant(
    data: MerchantCreate,
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    return MerchantCRUD(session).create_merchant(data)


@router.get("/merchants", response_model=List[MerchantRead])
async def list_merchants(
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    return MerchantCRUD(session).list_merchants()


@router.post("/merchants/{merchant_id}/api-keys", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    merchant_id: str,
    data: ApiKeyCreate,
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    """Issue an API key. The plaintext key is only ever shown in this response."""
    api_key, key = MerchantCRUD(session).create_api_key(merchant_id, data)
    return {
        "id": api_key.id,
        "name": api_key.name,
        "key": key,
        "key_prefix": api_key.key_prefix,
        "is_live": api_key.is_live,
        "created_at": api_key.created_at,
    }


@router.post("/merchants/{merchant_id}/webhooks", response_model=WebhookCreated, status_code=status.HTTP_201_CREATED)
async def create_webhook(
    merchant_id: str,
    data: WebhookCreate,
    session: Session = Depends(get_session),
    admin: AdminUser = Depends(get_admin_user)
):
    webhook = MerchantCRUD(session).create_webhook(merchant_id, data)
    return {
        "id": webhook.id,
        "url": webhook.url,
        "events": webhook.events,
        "secret": webhook.secret,
        "is_active": webhook.is_active,
        "created_at": webhook.created_at,
    }
