"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Marketplace Admin Console"
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Database (durable audit sink + admin accounts)
    DATABASE_URL: str = "sqlite:///./admin_console.db"

    # Auth
    JWT_SECRET: str = "super-secret-jwt-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 30

    # Audit trail
    AUDIT_FALLBACK_CAPACITY: int = 200
    AUDIT_FAILED_EXECUTIONS: bool = False
    AUDIT_DEFAULT_PAGE_SIZE: int = 50

    # Super Admin Seed
    SUPER_ADMIN_EMAIL: str = "admin@console.local"
    SUPER_ADMIN_PASSWORD: str = "changeme123"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
