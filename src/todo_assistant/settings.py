from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

BACKENDS = ("memory", "sqlite")
LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration, read once from the environment by get_settings().

    Env vars:
    - PERSISTENCE_BACKEND: memory | sqlite (memory)
    - SQLITE_DB_PATH: database file for the sqlite backend (./data/todos.db)
    - SEED_DATA_PATH: data.json snapshot imported at startup (unset)
    - CORS_ALLOW_ORIGINS: '*' or a comma-separated origin list (*)
    - LOG_LEVEL: logging level name (INFO)
    - LOG_FORMAT: console | json (console)
    - HOST, PORT: bind address for `python -m todo_assistant` (0.0.0.0, 8081)
    """

    persistence_backend: str
    sqlite_db_path: str
    seed_data_path: Optional[str]
    cors_allow_origins: List[str]
    log_level: str
    log_format: str
    host: str = "0.0.0.0"
    port: int = 8081


def _env(name: str, default: str) -> str:
    """Value of an env var with surrounding spaces removed; unset or blank gives default."""
    value = (os.getenv(name) or "").strip()
    return value or default


def _env_choice(name: str, allowed: Sequence[str], default: str) -> str:
    # Unsupported values fall back to the default rather than failing startup
    value = _env(name, default).lower()
    return value if value in allowed else default


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _parse_origins(value: str) -> List[str]:
    """'*' allows every origin; otherwise a comma-separated list."""
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    return Settings(
        persistence_backend=_env_choice("PERSISTENCE_BACKEND", BACKENDS, "memory"),
        sqlite_db_path=_env("SQLITE_DB_PATH", "./data/todos.db"),
        seed_data_path=_env("SEED_DATA_PATH", "") or None,
        cors_allow_origins=_parse_origins(_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        log_format=_env_choice("LOG_FORMAT", LOG_FORMATS, "console"),
        host=_env("HOST", "0.0.0.0"),
        port=_env_int("PORT", 8081),
    )
