from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "FormDesk"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql://formdesk:formdesk@db:5432/formdesk"

    # Redis (Celery broker)
    REDIS_URL: str = "redis://redis:6379/0"

    # File Upload
    UPLOAD_DIR: str = "/app/uploads"
    PUBLIC_FILES_URL: str = "http://localhost:8000/files"
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB

    # App URL (admin dashboard)
    APP_URL: str = "https://designer.advertomedia.co.uk"

    # Brevo transactional email
    BREVO_API_KEY: Optional[str] = None
    BREVO_API_URL: str = "https://api.brevo.com/v3/smtp/email"
    EMAIL_SENDER_NAME: str = "Online Designer - Advertomedia"
    EMAIL_SENDER_EMAIL: str = "designer@advertomedia.co.uk"
    EMAIL_TIMEOUT: int = 30
    EMAIL_MAX_RETRIES: int = 3
    EMAIL_BATCH_SIZE: int = 10

    # Outbound webhooks
    WEBHOOK_TIMEOUT: int = 15
    WEBHOOK_MAX_ATTEMPTS: int = 3
    WEBHOOK_BATCH_SIZE: int = 10

    # Notification queue
    CLAIM_TIMEOUT_SECONDS: int = 600
    NOTIFICATION_POLL_INTERVAL: int = 0  # seconds, 0 disables the in-process poller

    # Zapier / public API keys
    API_KEY_PREFIX: str = "dk_live_"

    # Operator endpoints (/api/notifications); unset leaves them open to the internal network
    OPERATOR_TOKEN: Optional[str] = None

    # CORS
    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
