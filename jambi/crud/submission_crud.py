from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, or_, select
from datetime import datetime
from typing import List, Optional, Tuple
import json
import logging

from jambi.core.exceptions import InternalError, NotFound, ValidationError
from jambi.models.submission_model import SubmissionStatus, SystemRequest
from jambi.schemas.admin_schema import SubmissionUpdate
from jambi.schemas.form_schema import SystemRequestForm

logger = logging.getLogger(__name__)


class SubmissionCRUD:
    def __init__(self, session: Session):
        self.session = session

    def create_submission(self, form: SystemRequestForm) -> SystemRequest:
        submission = SystemRequest(
            full_name=form.full_name,
            business_name=form.business_name,
            phone=form.phone,
            email=form.email,
            business_type=form.business_type,
            system_category=form.system_category,
            problem=form.problem,
            goals=form.goals,
            payments_json=json.dumps(form.payments),
            requires_login=form.requires_login,
            timeline=form.timeline,
            budget_range=form.budget_range,
            additional_info=form.additional_info,
            consent=form.consent,
            status=SubmissionStatus.new,
        )
        try:
            self.session.add(submission)
            self.session.commit()
            self.session.refresh(submission)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to store system request from {form.business_name}: {str(e)}")
            raise InternalError("Failed to submit request. Please try again later.")
        logger.info(f"Stored system request {submission.id} from {submission.business_name}")
        return submission

    def list_submissions(
        self,
        status: Optional[SubmissionStatus] = None,
        system_category: Optional[str] = None,
        budget_range: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[SystemRequest], int]:
        conditions = []
        if status:
            conditions.append(SystemRequest.status == status)
        if system_category:
            conditions.append(SystemRequest.system_category == system_category)
        if budget_range:
            conditions.append(SystemRequest.budget_range == budget_range)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            conditions.append(or_(
                func.lower(SystemRequest.full_name).like(pattern),
                func.lower(SystemRequest.business_name).like(pattern),
                func.lower(SystemRequest.phone).like(pattern),
                func.lower(SystemRequest.email).like(pattern),
            ))

        try:
            total = self.session.exec(
                select(func.count()).select_from(SystemRequest).where(*conditions)
            ).one()
            submissions = self.session.exec(
                select(SystemRequest)
                .where(*conditions)
                .order_by(SystemRequest.created_at.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list submissions: {str(e)}")
            raise InternalError("Failed to retrieve submissions")
        return list(submissions), total

    def get_submission(self, submission_id: int) -> SystemRequest:
        submission = self.session.get(SystemRequest, submission_id)
        if not submission:
            raise NotFound(f"Submission with ID {submission_id} not found")
        return submission

    def update_submission(self, submission_id: int, data: SubmissionUpdate) -> SystemRequest:
        submission = self.get_submission(submission_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("status") is None:
            changes.pop("status", None)
        if not changes:
            raise ValidationError("Nothing to update")

        for key, value in changes.items():
            setattr(submission, key, value)
        submission.updated_at = datetime.utcnow()

        try:
            self.session.add(submission)
            self.session.commit()
            self.session.refresh(submission)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to update submission {submission_id}: {str(e)}")
            raise InternalError("Failed to update submission")
        logger.info(f"Updated submission {submission_id}: {', '.join(changes)}")
        return submission
