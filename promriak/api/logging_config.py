# logger y utilidades de logging
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from promriak.api.settings import env_bool, env_str

LOGGER_NAME = "promriak"

_CONSOLE_HANDLER_TAG = "_promriak_console_handler"
_FILE_HANDLER_TAG = "_promriak_file_handler"
_LOGGER_FILE_PATH_SENTINEL: object = object()
_LOGGER_FILE_PATH_CACHED: Path | None | object = _LOGGER_FILE_PATH_SENTINEL

# atributos estándar de LogRecord; lo que no esté aquí viene de `extra`
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Una línea JSON por registro, con los campos de `extra` al primer nivel."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _sanitize_filename_component(value: str) -> str:
    s = (value or "").strip()
    if not s:
        return ""
    out = []
    for ch in s:
        if ch.isalnum() or ch in ("-", "_", "."):
            out.append(ch)
        else:
            out.append("_")
    return "".join(out).strip("._-")


def _build_logger_file_path() -> Path | None:
    global _LOGGER_FILE_PATH_CACHED

    if _LOGGER_FILE_PATH_CACHED is not _LOGGER_FILE_PATH_SENTINEL:
        return None if _LOGGER_FILE_PATH_CACHED is None else _LOGGER_FILE_PATH_CACHED  # type: ignore[return-value]

    if not env_bool("LOGGER_FILE_ENABLED", False):
        _LOGGER_FILE_PATH_CACHED = None
        return None

    raw_path = env_str("LOGGER_FILE_PATH", "").strip()
    if raw_path:
        _LOGGER_FILE_PATH_CACHED = Path(raw_path).expanduser().resolve()
        return _LOGGER_FILE_PATH_CACHED

    log_dir = Path(env_str("LOGGER_FILE_DIR", "logs") or "logs").expanduser()
    prefix = (
        _sanitize_filename_component(env_str("LOGGER_FILE_PREFIX", "promriak") or "promriak")
        or "promriak"
    )
    ts_fmt = (
        env_str("LOGGER_FILE_TIMESTAMP_FORMAT", "%Y-%m-%d_%H-%M-%S")
        or "%Y-%m-%d_%H-%M-%S"
    )
    include_pid = env_bool("LOGGER_FILE_INCLUDE_PID", True)

    ts = datetime.now().strftime(ts_fmt)
    pid_part = f"_{os.getpid()}" if include_pid else ""
    filename = f"{prefix}_{ts}{pid_part}.log"
    _LOGGER_FILE_PATH_CACHED = (log_dir / filename).resolve()
    return _LOGGER_FILE_PATH_CACHED


def _tagged_handlers(root: logging.Logger, tag: str) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, tag, False)]


def _ensure_handler(root: logging.Logger, tag: str, factory, *, level: str) -> None:
    existing = _tagged_handlers(root, tag)
    if existing:
        for handler in existing:
            handler.setLevel(level)
        return

    handler = factory()
    if handler is None:
        return
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    setattr(handler, tag, True)
    root.addHandler(handler)


def _make_file_handler() -> logging.Handler | None:
    path = _build_logger_file_path()
    if path is None:
        return None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logging.getLogger(LOGGER_NAME).warning(
            "log_file_unavailable", extra={"path": str(path), "error": repr(exc)}
        )
        return None
    return logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Idempotente:
    - handler de consola (stderr, JSON por línea) una sola vez.
    - handler de fichero opcional (LOGGER_FILE_*).
    - `tracing_level` solo aplica al logger de la app; el root se queda en
      WARNING para que urllib3/uvicorn no logueen cada scrape.
    """
    root = logging.getLogger()
    root.setLevel(logging.WARNING)
    _ensure_handler(
        root, _CONSOLE_HANDLER_TAG, lambda: logging.StreamHandler(sys.stderr), level=level
    )
    _ensure_handler(root, _FILE_HANDLER_TAG, _make_file_handler, level=level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    return logger
