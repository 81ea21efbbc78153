from pydantic_settings import BaseSettings
from typing import List, Optional
import secrets

class Settings(BaseSettings):
    PROJECT_NAME: str = "Jambi Systems API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # DB URL
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False

    # Security
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Rate Limiting
    FORMS_RATE_LIMIT_TIMES: int = 10
    FORMS_RATE_LIMIT_SECONDS: int = 60 * 60
    LOGIN_RATE_LIMIT_TIMES: int = 5
    LOGIN_RATE_LIMIT_SECONDS: int = 60
    API_RATE_LIMIT_TIMES: int = 120
    API_RATE_LIMIT_SECONDS: int = 60
    RATE_LIMIT_SWEEP_THRESHOLD: int = 10000

    # Email
    SMTP_PORT: int
    SMTP_HOST: str
    SMTP_USER: str
    SMTP_PASSWORD: str
    EMAILS_FROM_EMAIL: Optional[str] = None
    EMAILS_FROM_NAME: str = "Jambi Systems"
    FORMS_TO_EMAIL: Optional[str] = None

    # Payments
    PAYMENT_DEFAULT_CURRENCY: str = "SSP"
    PAYMENT_DEFAULT_EXPIRY_HOURS: int = 24
    PAYMENT_MAX_EXPIRY_HOURS: int = 720
    REFERENCE_CODE_MAX_ATTEMPTS: int = 5
    PAYMENT_EXPIRY_SWEEP_SECONDS: int = 300

    # Webhooks
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0
    WEBHOOK_MAX_WORKERS: int = 4
    WEBHOOK_MAX_PENDING: int = 100

    # Default Admin
    DEFAULT_ADMIN_EMAIL: str = "admin@jambisystems.com"
    DEFAULT_ADMIN_PASSWORD: str = "Admin123!"

    # Logging
    LOG_FILE: Optional[str] = "app.log"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        case_sensitive = True
        env_file = ".env"

settings = Settings()
