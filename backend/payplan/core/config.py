from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DEBUG: bool = False
    APP_NAME: str = "payplan"
    version: str = "0.1.0"
    APP_DOMAIN: str = "example.com"
    APP_URL: str = "https://app.example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/payplan.db"
    REDIS_URL: str = "redis://localhost:6379"
    LOG_LEVEL: str = "INFO"

    # Shared secret expected in the X-API-Key header of job triggers
    JOB_API_KEY: str = ""

    # Retry policy for the status transition run: delays are base * 2**n (1s, 2s, 4s)
    JOB_MAX_ATTEMPTS: int = 3
    JOB_RETRY_BASE_DELAY: float = 1.0

    # Monitoring
    JOB_HEALTH_ALERT_HOURS: int = 25
    JOB_STUCK_AFTER_HOURS: int = 2
    ALERT_WEBHOOK_URL: str = ""  # Slack-compatible incoming webhook

    # Notification dispatch
    DISPATCH_CONCURRENCY: int = 5
    EMAIL_PROVIDER: str = "smtp"  # "smtp" or "resend"

    # SMTP transport
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_FROM_EMAIL: str = "notifications@example.com"
    SMTP_FROM_NAME: str = "Payment Notifications"

    # Resend transport
    RESEND_API_KEY: str = ""
    RESEND_TIMEOUT_SECONDS: float = 20.0

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def job_auth_enabled(self) -> bool:
        return bool(self.JOB_API_KEY)


settings = Settings()
