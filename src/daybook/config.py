# src/daybook/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time: every value has a local default.
- Components take settings as a parameter; get_settings() is only for the composition root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DAYBOOK"

CASCADE_POLICIES = ("forward_only", "bidirectional")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = _env(name, default).strip().lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Domain policy ----
    cascade_policy: str
    uncategorized_label: str

    # ---- HTTP ----
    host: str
    port: int
    user_header: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "daybook").strip() or "daybook"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/daybook"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "daybook.sqlite3")

        cascade_policy = _env_choice(_k("CASCADE_POLICY"), CASCADE_POLICIES, "forward_only")
        uncategorized_label = _env(_k("UNCATEGORIZED_LABEL"), "Uncategorized").strip() or "Uncategorized"

        host = _env(_k("HOST"), "127.0.0.1")
        port = _env_int(_k("PORT"), 8000)
        user_header = _env(_k("USER_HEADER"), "X-User-Id").strip() or "X-User-Id"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            cascade_policy=cascade_policy,
            uncategorized_label=uncategorized_label,
            host=host,
            port=port,
            user_header=user_header,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
