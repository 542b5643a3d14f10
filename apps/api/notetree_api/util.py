from __future__ import annotations

import json
import os
import time
import uuid
from pathlib import Path


def now_ms() -> int:
    return int(time.time() * 1000)


def new_entry_id() -> str:
    return uuid.uuid4().hex


def atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp.{os.getpid()}")
    tmp_path.write_text(content, encoding="utf-8")
    tmp_path.replace(path)


def atomic_write_json(path: Path, data: object) -> None:
    atomic_write_text(path, json.dumps(data, indent=2, sort_keys=True) + "\n")
