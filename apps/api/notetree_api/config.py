from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    store_key: str
    store_backend: str
    api_auth_mode: str
    api_auth_token: str | None
    api_debug_log: bool


def load_settings() -> Settings:
    data_dir = Path(os.environ.get("NOTES_DATA_DIR", "./data")).resolve()
    store_key = os.environ.get("NOTES_STORE_KEY", "extension-notes").strip() or "extension-notes"
    store_backend = os.environ.get("NOTES_STORE_BACKEND", "file").strip().lower()
    if store_backend not in {"file", "memory"}:
        raise ValueError(f"unsupported NOTES_STORE_BACKEND: {store_backend}")
    api_auth_mode = os.environ.get("API_AUTH_MODE", "none").strip().lower()
    api_auth_token = os.environ.get("API_AUTH_TOKEN")
    api_debug_log = os.environ.get("API_DEBUG_LOG", "false").lower() == "true"
    return Settings(
        data_dir=data_dir,
        store_key=store_key,
        store_backend=store_backend,
        api_auth_mode=api_auth_mode,
        api_auth_token=api_auth_token,
        api_debug_log=api_debug_log,
    )
