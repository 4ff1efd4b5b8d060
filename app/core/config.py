import os
from urllib.parse import quote_plus
from dotenv import load_dotenv

load_dotenv()


def _build_database_url():
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    user = os.getenv("DB_USER")
    host = os.getenv("DB_HOST")
    if not user or not host:
        return "sqlite:///./automations.db"

    password = quote_plus(os.getenv("DB_PASSWORD", ""))
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "freelance")
    return f"postgresql://{user}:{password}@{host}:{port}/{name}"


class Settings:
    DATABASE_URL = _build_database_url()

    # ZEPTO MAIL SETTINGS
    ZEPTO_API_URL = os.getenv("ZEPTO_API_URL", "https://api.zeptomail.in/v1.1/email")
    ZEPTO_API_KEY = os.getenv("ZEPTO_API_KEY")
    ZEPTO_FROM_ADDRESS = os.getenv("ZEPTO_FROM_ADDRESS")
    ZEPTO_FROM_NAME = os.getenv("ZEPTO_FROM_NAME", "Freelance CRM")
    EMAIL_TIMEOUT_SECONDS = int(os.getenv("EMAIL_TIMEOUT_SECONDS", "15"))

    # SCHEDULER
    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "false").lower() in ("1", "true", "yes")
    SCHEDULER_INTERVAL_SECONDS = int(os.getenv("SCHEDULER_INTERVAL_SECONDS", "30"))
    SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "UTC")  # scheduleTime is read in this zone
    ONCE_GRACE_MINUTES = int(os.getenv("ONCE_GRACE_MINUTES", "5"))

    # INVOKER SCRIPT
    APP_URL = os.getenv("APP_URL", "http://localhost:8000")
    SCHEDULER_REQUEST_TIMEOUT = int(os.getenv("SCHEDULER_REQUEST_TIMEOUT", "30"))

    # BACKUPS
    BACKUP_DIR = os.getenv("BACKUP_DIR", "backups")

    CORS_ORIGINS = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if o.strip()
    ]

settings = Settings()
