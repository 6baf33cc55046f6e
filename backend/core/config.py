import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./inventory.db"
    )
    database_echo: bool = _flag("DATABASE_ECHO", "False")

    # Auth (fastapi-users JWT backend)
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me-in-production")
    jwt_lifetime_seconds: int = int(os.getenv("JWT_LIFETIME_SECONDS", "3600"))

    frontend_url: str = os.getenv("FRONTEND_URL", "")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "5000"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_json: bool = _flag("LOG_JSON", "False")

    # Positive adjustments without an explicit type are recorded as purchases.
    infer_purchase_on_positive_adjustment: bool = _flag("INFER_PURCHASE_ON_POSITIVE_ADJUSTMENT", "True")

    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    @property
    def cors_origins(self) -> list[str]:
        origins = [self.frontend_url, "http://localhost:3000", "http://localhost:3001"]
        return [o for o in origins if o]


settings = Settings()
