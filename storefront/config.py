import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

DEFAULT_SQLITE = f"sqlite:///{Path(__file__).resolve().parent.parent / 'storefront.db'}"


def normalize_database_url(url: str) -> str:
    """Force the psycopg2 driver on Postgres URLs; empty means local SQLite."""
    if not url:
        return DEFAULT_SQLITE
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg2://" + url[len("postgresql://"):]
    return url


def _get_bool(name: str, fallback: str = "false") -> bool:
    return os.getenv(name, fallback).strip().lower() in {"1", "true", "yes", "on"}


def _get_list(name: str, fallback: str = "") -> List[str]:
    raw_value = os.getenv(name, fallback)
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = normalize_database_url(os.getenv("DATABASE_URL", ""))
    db_retry_count: int = int(os.getenv("DB_RETRY_COUNT", "3"))
    db_retry_delay: float = float(os.getenv("DB_RETRY_DELAY", "1.0"))
    db_reconnect_cooldown: float = float(os.getenv("DB_RECONNECT_COOLDOWN", "5.0"))
    expose_error_details: bool = _get_bool("EXPOSE_ERROR_DETAILS")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    allowed_origins: List[str] = field(
        default_factory=lambda: _get_list("ALLOWED_ORIGINS", "*")
    )

    storage_backend: str = os.getenv("STORAGE_BACKEND", "local")
    supabase_url: str | None = os.getenv("SUPABASE_URL")
    supabase_service_role_key: str | None = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    storage_bucket: str = os.getenv("STORAGE_BUCKET", "storefront")
    upload_dir: str = os.getenv(
        "UPLOAD_DIR", str(Path(__file__).resolve().parent.parent / "uploads")
    )
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "")

    rabbitmq_url: str | None = os.getenv("RABBITMQ_URL")
    events_exchange: str = os.getenv("EVENTS_EXCHANGE", "storefront.events")
    outbox_poll_sec: float = float(os.getenv("OUTBOX_POLL_SEC", "1.0"))
    outbox_batch_size: int = int(os.getenv("OUTBOX_BATCH_SIZE", "100"))


settings = Settings()
