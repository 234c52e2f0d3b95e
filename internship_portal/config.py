import os

from dotenv import load_dotenv

load_dotenv()


def _as_bool(val, default=False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    # --- Core ---
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./internship_portal.db")
    CORS_ORIGINS: list = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()
    ]

    # --- Review workflow ---
    # When on, approve/reject/request-revision only accept submitted or
    # under_review submissions (approve also accepts approved).
    STRICT_REVIEW_TRANSITIONS: bool = _as_bool(os.getenv("STRICT_REVIEW_TRANSITIONS"), False)

    # --- Seed admin account ---
    SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
    SEED_ADMIN_PASSWORD: str = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    LOG_FILENAME: str = os.getenv("LOG_FILENAME", "internship_portal.log")
    LOG_JSON: bool = _as_bool(os.getenv("LOG_JSON", "0"))


settings = Settings()
