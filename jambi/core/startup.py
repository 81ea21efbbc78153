from sqlmodel import Session, select
from jambi.models.admin_model import AdminUser
from jambi.core.config import settings
from jambi.db.session import engine
import logging
from sqlalchemy.exc import SQLAlchemyError
import traceback

logger = logging.getLogger(__name__)


async def ensure_admin_exists():
    """Ensure that at least one admin user exists in the database."""
    session = Session(engine)
    try:
        logger.info("Checking for existing admin user...")
        admin = session.exec(select(AdminUser)).first()
        if admin:
            return

        logger.warning("No admin user found. Creating default admin...")
        admin = AdminUser(
            email=settings.DEFAULT_ADMIN_EMAIL.lower(),
            hashed_password=AdminUser.get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
            is_active=True,
        )
        session.add(admin)
        session.commit()
        session.refresh(admin)
        logger.info(f"Default admin user created successfully with ID: {admin.id}")
        logger.warning(
            "IMPORTANT: Please change the default admin password immediately! "
            f"Default login: {settings.DEFAULT_ADMIN_EMAIL}"
        )
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Database error: {str(e)}")
        logger.error(traceback.format_exc())
        raise
    finally:
        session.close()
