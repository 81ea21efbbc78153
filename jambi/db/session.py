from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import QueuePool, StaticPool
from jambi.core.config import settings
import logging

import jambi.models

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # one shared connection, otherwise each session would get its own in-memory database
        return create_engine(
            database_url,
            echo=settings.DB_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    # psycopg v3 driver
    return create_engine(
        database_url.replace("postgresql://", "postgresql+psycopg://"),
        echo=settings.DB_ECHO,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


engine = build_engine(settings.DATABASE_URL)
logger.info(f"Database engine ready ({engine.dialect.name})")


def get_session():
    with Session(engine) as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Rolling back request session: {str(e)}")
            session.rollback()
            raise


def create_db_and_tables():
    try:
        SQLModel.metadata.create_all(engine)
        logger.info(f"Tables ready: {', '.join(sorted(SQLModel.metadata.tables))}")
    except OperationalError as e:
        logger.error(f"Could not create tables: {str(e)}")
        raise
