from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    DATABASE_URL: str = "sqlite:///./yellowgenie.db"

    # JWT Authentication
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Application
    APP_NAME: str = "YellowGenie"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: str = (
        "http://localhost:3000,"
        "http://localhost:5173,"
        "http://127.0.0.1:3000,"
        "http://127.0.0.1:5173"
    )

    # Admin access is limited to accounts on this e-mail domain
    ADMIN_EMAIL_DOMAIN: str = "yellowgenie.io"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Billing
    INVOICE_PREFIX: str = "INV"

    # Account verification
    VERIFICATION_CODE_TTL_MINUTES: int = 15
    VERIFICATION_RESEND_SECONDS: int = 60
    PASSWORD_RESET_TTL_MINUTES: int = 60
    FRONTEND_URL: str = "http://localhost:5173"

    # Collaborators
    NOTIFICATIONS_ENABLED: bool = True


settings = Settings()
