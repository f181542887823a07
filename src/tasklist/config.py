from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKLIST"
STORE_BACKENDS = ("sqlite", "memory")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("./data/tasklist.db")
    store_backend: str = "sqlite"
    autosave: bool = True
    log_level: str = "INFO"
    log_dir: Path = Path("./logs")
    log_to_file: bool = True


def load_settings() -> Settings:
    backend = os.getenv(_k("STORE"), "sqlite").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(f"{_k('STORE')} must be one of {STORE_BACKENDS}, got {backend!r}")

    return Settings(
        db_path=_env_path(_k("DB_PATH"), Path("./data/tasklist.db")),
        store_backend=backend,
        autosave=_env_bool(_k("AUTOSAVE"), True),
        log_level=os.getenv(_k("LOG_LEVEL"), "INFO").upper(),
        log_dir=_env_path(_k("LOG_DIR"), Path("./logs")),
        log_to_file=_env_bool(_k("LOG_FILE"), True),
    )
