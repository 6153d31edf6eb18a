"""Settings for TaskFlow.

Values come from environment variables, optionally loaded from a local
.env file. Use get_settings() (a FastAPI dependency) rather than
instantiating Settings directly so tests can override it.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "change-me"

ALLOWED_DOCUMENT_MIMETYPES = ("application/pdf",)
MAX_DOCUMENTS_PER_TASK = 3
MAX_FILE_SIZE = 5 * 1024 * 1024
RATE_LIMIT_WINDOW_MS = 15 * 60 * 1000
RATE_LIMIT_MAX_REQUESTS = 100


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./taskflow.db"
    sql_echo: bool = False
    upload_dir: Path = Path("uploads")
    max_file_size: int = MAX_FILE_SIZE
    max_documents_per_task: int = MAX_DOCUMENTS_PER_TASK
    allowed_document_mimetypes: Tuple[str, ...] = ALLOWED_DOCUMENT_MIMETYPES
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    allow_admin_registration: bool = False
    rate_limit_window_seconds: float = RATE_LIMIT_WINDOW_MS / 1000
    rate_limit_max_requests: int = RATE_LIMIT_MAX_REQUESTS
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            sql_echo=_env_bool("SQL_ECHO", False),
            upload_dir=Path(os.getenv("UPLOAD_PATH", "uploads")).expanduser(),
            max_file_size=_env_int("MAX_FILE_SIZE", MAX_FILE_SIZE),
            max_documents_per_task=_env_int("MAX_DOCUMENTS_PER_TASK", MAX_DOCUMENTS_PER_TASK),
            jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=_env_int("JWT_EXPIRE_MINUTES", 60),
            allow_admin_registration=_env_bool("ALLOW_ADMIN_REGISTRATION", False),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_MS", RATE_LIMIT_WINDOW_MS) / 1000,
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", RATE_LIMIT_MAX_REQUESTS),
            cors_origins=_env_list("FRONTEND_URL", ["http://localhost:3000"]),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache
def get_settings() -> Settings:
    settings = Settings.from_env()
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; using an insecure development secret.")
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)
