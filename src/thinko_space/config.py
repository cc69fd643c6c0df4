# src/thinko_space/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- The API key may also be entered at runtime and kept in the key-value store
  (see core/credentials.py); a key saved that way wins over the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "THINKO"

DEFAULT_LLM_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_LLM_MODELS = ["llama-3.3-70b-versatile"]


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    console_enabled: bool

    # ---- LLM (OpenAI-compatible endpoint) ----
    llm_api_key: str | None
    llm_base_url: str
    llm_models: list[str]
    llm_offline: bool
    llm_connect_timeout: float
    llm_read_timeout: float

    # ---- Tutorial video search ----
    youtube_api_key: str | None
    youtube_region: str
    youtube_safesearch: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    kv_db_path: Path
    backup_dir: Path

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "thinko")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        # Accept the provider's conventional variable names too.
        llm_api_key = _first_env(_k("LLM_API_KEY"), "GROQ_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), DEFAULT_LLM_BASE_URL)
        llm_models = _env_list(_k("LLM_MODELS"), DEFAULT_LLM_MODELS)
        llm_offline = _env_bool(_k("LLM_OFFLINE"), False)

        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 60.0)

        youtube_api_key = _first_env(_k("YOUTUBE_API_KEY"), "YOUTUBE_API_KEY", default=None)
        youtube_region = _env(_k("YOUTUBE_REGION"), "IN")
        youtube_safesearch = _env(_k("YOUTUBE_SAFESEARCH"), "moderate")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/thinko"))
        kv_db_path = _env_path(_k("KV_DB_PATH"), data_dir / "storage.sqlite3")
        backup_dir = _env_path(_k("BACKUP_DIR"), data_dir / "backups")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            llm_offline=llm_offline,
            llm_connect_timeout=connect_timeout,
            llm_read_timeout=max(read_timeout, connect_timeout),
            youtube_api_key=youtube_api_key,
            youtube_region=youtube_region,
            youtube_safesearch=youtube_safesearch,
            data_dir=data_dir,
            kv_db_path=kv_db_path,
            backup_dir=backup_dir,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
