from fastapi import HTTPException, status
from sqlmodel import Session, select
from datetime import datetime
import logging

from jambi.core.security import create_access_token
from jambi.models.admin_model import AdminUser

logger = logging.getLogger(__name__)


class AdminCRUD:
    def __init__(self, session: Session):
        self.session = session

    def login_admin(self, email: str, password: str) -> str:
        """Check admin credentials and return a fresh access token."""
        admin = self.session.exec(
            select(AdminUser).where(AdminUser.email == email.strip().lower())
        ).first()

        if not admin or not admin.verify_password(password):
            logger.warning(f"Failed admin login for {email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not admin.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        admin.last_login = datetime.utcnow()
        self.session.add(admin)
        self.session.commit()

        logger.info(f"Admin {admin.email} logged in")
        return create_access_token(data={"sub": admin.email})
