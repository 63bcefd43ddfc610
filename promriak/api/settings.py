# lectura de env vars (solo lo que no viene del YAML: logging a fichero)
from __future__ import annotations

import os

_TRUE_SET = {"1", "true", "t", "yes", "y", "on"}


def env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip()
    return val if val else default


def env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if not val:
        return default
    return val in _TRUE_SET
