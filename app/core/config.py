from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Practice Ops API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:3000"
    public_app_url: str = Field(default="http://localhost:3000", alias="PUBLIC_APP_URL")
    max_upload_size_mb: int = 10
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")

    # Database (Postgres in production, SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./practice_dev.db",
        alias="DATABASE_URL",
    )
    slow_query_seconds: float = Field(default=1.0, alias="DB_SLOW_QUERY_SECONDS")  # 0 disables

    # Multi-tenancy default
    default_organization_id: str = Field(
        default="default", alias="DEFAULT_ORGANIZATION_ID",
    )

    # Scheduled sweeps (alert generation, compliance checks) authenticate with this
    cron_secret: str | None = Field(default=None, alias="CRON_SECRET")
    audit_enabled: bool = Field(default=True, alias="AUDIT_ENABLED")

    # OpenAI (document classification fallback)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4.1-mini", alias="OPENAI_MODEL")
    openai_max_tokens: int = Field(default=500, alias="OPENAI_MAX_TOKENS")
    openai_timeout: int = Field(default=60, alias="OPENAI_TIMEOUT")
    classification_confidence_threshold: float = Field(
        default=0.6, alias="CLASSIFICATION_CONFIDENCE_THRESHOLD",
    )  # Below this the keyword result is handed to the AI layer

    # VAPI voice agents
    vapi_api_key: str | None = Field(default=None, alias="VAPI_API_KEY")
    vapi_base_url: str = Field(default="https://api.vapi.ai", alias="VAPI_BASE_URL")
    vapi_timeout: int = Field(default=30, alias="VAPI_TIMEOUT")
    vapi_bulk_call_delay_seconds: float = Field(
        default=2.0, alias="VAPI_BULK_CALL_DELAY_SECONDS",
    )

    # Email delivery (first configured provider wins)
    resend_api_key: str | None = Field(default=None, alias="RESEND_API_KEY")
    sendgrid_api_key: str | None = Field(default=None, alias="SENDGRID_API_KEY")
    from_email: str = Field(default="noreply@practiceops.app", alias="FROM_EMAIL")
    from_name: str = Field(default="Practice Ops Team", alias="FROM_NAME")
    email_timeout: int = Field(default=15, alias="EMAIL_TIMEOUT")

    # Invitations
    invitation_ttl_days: int = Field(default=7, alias="INVITATION_TTL_DAYS")

    # Alert thresholds
    upcoming_deadline_days: int = Field(default=7, alias="UPCOMING_DEADLINE_DAYS")
    deadline_warning_days: int = Field(default=3, alias="DEADLINE_WARNING_DAYS")
    inactivity_threshold_days: int = Field(default=30, alias="INACTIVITY_THRESHOLD_DAYS")
    form_1099_threshold: Decimal = Field(default=Decimal("600"), alias="FORM_1099_THRESHOLD")
    w9_validity_years: int = Field(default=3, alias="W9_VALIDITY_YEARS")
    w9_reminder_interval_days: int = Field(default=7, alias="W9_REMINDER_INTERVAL_DAYS")
    w9_max_reminders: int = Field(default=3, alias="W9_MAX_REMINDERS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def ai_enabled(self) -> bool:
        """AI classification is available only when an OpenAI key is configured."""
        return bool(self.openai_api_key)

    @property
    def vapi_enabled(self) -> bool:
        return bool(self.vapi_api_key)

    @property
    def email_provider(self) -> str:
        """Name of the active email provider: resend | sendgrid | log."""
        if self.resend_api_key:
            return "resend"
        if self.sendgrid_api_key:
            return "sendgrid"
        return "log"

settings = Settings()
