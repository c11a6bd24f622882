"""
Configuration settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Pilgrimage Portal API"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # Database
    DATABASE_URL: str = "sqlite:///./pilgrimage.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False
    NOTIFY_QUEUE_NAME: str = "portal_notifications"

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Default admin, created on startup when missing
    DEFAULT_ADMIN_EMAIL: str = "admin@srivishnu-yatra.com"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    DEFAULT_ADMIN_PHONE: str = "9999999999"
    DEFAULT_ADMIN_AADHAR: str = "999999999999"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173", "http://localhost:5174"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # Business rules
    GST_RATE: float = 0.18
    DEFAULT_CURRENCY: str = "INR"

    # Notifications
    NOTIFY_DRY_RUN: bool = True
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_SENDER: str = "Sri Vishnu Yatra <noreply@srivishnu-yatra.com>"
    SMTP_TIMEOUT_SECONDS: int = 30
    REMINDER_DAYS_AHEAD: int = 3

    # File import / export
    MAX_UPLOAD_SIZE_MB: int = 10
    ALLOWED_EXTENSIONS: List[str] = [".xlsx", ".xls", ".csv"]
    EXPORT_PDF_MAX_ROWS: int = 50

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
