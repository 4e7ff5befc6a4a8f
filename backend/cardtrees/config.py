"""Runtime settings read from the environment (optionally a .env file)."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _env(key: str, default: str) -> str:
    value = os.environ.get(key, "").strip()
    return value or default


def _env_number(key: str, default: float, cast: type = float) -> float:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Invalid %s %r; falling back to %s", key, raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive %s %r; falling back to %s", key, raw, default)
        return default
    return value


@dataclass
class Settings:
    db_path: str = "cardtrees.db"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    store_timeout: float = 10.0
    max_payload_nodes: int = 500

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "Settings":
        """Build settings from CARDTREES_* variables, loading env_file first if given."""
        if env_file is not None:
            load_dotenv(env_file)
        origins = _env("CARDTREES_CORS_ORIGINS", "http://localhost:5173")
        return cls(
            db_path=_env("CARDTREES_DB_PATH", "cardtrees.db"),
            log_level=_env("CARDTREES_LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            store_timeout=_env_number("CARDTREES_STORE_TIMEOUT", 10.0),
            max_payload_nodes=int(_env_number("CARDTREES_MAX_PAYLOAD_NODES", 500, int)),
        )


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
