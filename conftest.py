"""Root conftest: exports .env.test before friend_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path


def _load_test_env(path: Path) -> None:
    if not path.exists():
        return
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip().strip('"'))


_load_test_env(Path(__file__).resolve().parent / ".env.test")
