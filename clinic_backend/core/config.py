import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")
CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Daily slot grid: [SLOT_START_HOUR, SLOT_END_HOUR) in SLOT_DURATION_MINUTES steps.
SLOT_START_HOUR = int(os.getenv("SLOT_START_HOUR", "9"))
SLOT_END_HOUR = int(os.getenv("SLOT_END_HOUR", "18"))
SLOT_DURATION_MINUTES = int(os.getenv("SLOT_DURATION_MINUTES", "30"))
SLOT_HORIZON_DAYS = int(os.getenv("SLOT_HORIZON_DAYS", "30"))

APPOINTMENT_WINDOW_DAYS = int(os.getenv("APPOINTMENT_WINDOW_DAYS", "30"))
ADMIN_PAGE_SIZE = int(os.getenv("ADMIN_PAGE_SIZE", "10"))
MAX_NOTES_LENGTH = int(os.getenv("MAX_NOTES_LENGTH", "600"))

ENFORCE_VISIT_DATE = _get_bool(os.getenv("ENFORCE_VISIT_DATE"), default=True)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_START_HOUR >= SLOT_END_HOUR:
        raise RuntimeError("SLOT_START_HOUR must be earlier than SLOT_END_HOUR.")
    if SLOT_DURATION_MINUTES <= 0 or 60 % SLOT_DURATION_MINUTES != 0:
        raise RuntimeError("SLOT_DURATION_MINUTES must evenly divide an hour.")
