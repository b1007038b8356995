"""
Application Settings

Values come from environment variables (a local .env file is loaded first).
"""
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    database_timeout_ms: int = 5000

    upload_dir: str = "uploads"
    static_dir: str = "static"
    allowed_origins: List[str] = ["*"]
    public_base_url: str = "http://localhost:8000"

    admin_email: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_sender: Optional[str] = None
    smtp_timeout: float = 10.0
    notifications_enabled: bool = True

    log_level: str = "INFO"
    port: int = 8000

    @property
    def mail_configured(self) -> bool:
        return bool(self.notifications_enabled and self.admin_email and self.smtp_host)

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("ALLOWED_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            database_name=os.getenv("DATABASE_NAME"),
            database_timeout_ms=int(os.getenv("DATABASE_TIMEOUT_MS", 5000)),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            static_dir=os.getenv("STATIC_DIR", "static"),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
            admin_email=os.getenv("ADMIN_EMAIL"),
            smtp_host=os.getenv("SMTP_HOST"),
            smtp_port=int(os.getenv("SMTP_PORT", 587)),
            smtp_user=os.getenv("SMTP_USER"),
            smtp_password=os.getenv("SMTP_PASSWORD"),
            smtp_sender=os.getenv("SMTP_SENDER"),
            smtp_timeout=float(os.getenv("SMTP_TIMEOUT", 10)),
            notifications_enabled=_flag(os.getenv("NOTIFICATIONS_ENABLED"), True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", 8000)),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
