# carga YAML + defaults + herencia global -> instancia
from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Mapping

import yaml
from dotenv import load_dotenv

CONFIG_ENV_VAR: Final[str] = "PROMRIAK_CONFIG"

CONFIG_FILE_SEARCH_LOCATIONS: Final[tuple[str, ...]] = (
    "promriak.yaml",
    "/usr/local/etc/promriak/promriak.yaml",
    "/etc/promriak/promriak.yaml",
)

TRACING_LEVEL_DEFAULT: Final[str] = "INFO"
BIND_ADDRESS_DEFAULT: Final[str] = "127.0.0.1"
LISTENER_PORT_DEFAULT: Final[int] = 9198
SCRAPE_INTERVAL_MS_DEFAULT: Final[int] = 2500
STALE_THRESHOLD_MS_DEFAULT: Final[int] = 20_000
PREFIX_DEFAULT: Final[str] = "riak_"
SPECIAL_METRICS_DEFAULT: Final[bool] = True

DEFAULT_INSTANCE_ID: Final[str] = "local"
DEFAULT_INSTANCE_ENDPOINT: Final[str] = "http://127.0.0.1:8098/stats"

# niveles aceptados en `tracing_level` -> nivel de logging
_TRACING_LEVELS: Final[dict[str, str]] = {
    "trace": "DEBUG",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "error": "ERROR",
}


class ConfigError(ValueError):
    """Configuración ilegible o inválida. Es fatal en el arranque."""


def _ms_to_seconds(name: str, raw: object) -> float:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigError(f"{name}: expected integer milliseconds, got {raw!r}")
    if raw < 0:
        raise ConfigError(f"{name}: must be >= 0, got {raw!r}")
    return raw / 1000.0


def _as_str(name: str, raw: object) -> str:
    if not isinstance(raw, str):
        raise ConfigError(f"{name}: expected string, got {raw!r}")
    return raw


def _as_bool(name: str, raw: object) -> bool:
    if not isinstance(raw, bool):
        raise ConfigError(f"{name}: expected boolean, got {raw!r}")
    return raw


def _as_metric_set(name: str, raw: object) -> frozenset[str] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ConfigError(f"{name}: expected a list of metric names, got {raw!r}")
    return frozenset(_as_str(f"{name}[]", m) for m in raw)


def _tracing_level(raw: object) -> str:
    s = _as_str("tracing_level", raw).strip().lower()
    level = _TRACING_LEVELS.get(s)
    if level is None:
        raise ConfigError(
            f"tracing_level: invalid value {raw!r}. Allowed={sorted(_TRACING_LEVELS)}"
        )
    return level


def _bind_address(raw: object) -> str:
    s = _as_str("bind_address", raw).strip()
    try:
        return str(ipaddress.ip_address(s))
    except ValueError as exc:
        raise ConfigError(f"bind_address: {exc}") from exc


def _listener_port(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or not 0 <= raw <= 65535:
        raise ConfigError(f"listener_port: expected 0..65535, got {raw!r}")
    return raw


@dataclass(frozen=True)
class InstanceOverride:
    """
    Entrada de `instances` tal y como viene del YAML.

    `None` significa "no definido": se hereda del global al resolver.
    """

    id: str
    endpoint: str
    scrape_interval: float | None = None
    stale_threshold: float | None = None
    prefix: str | None = None
    metrics: frozenset[str] | None = None
    special_metrics: bool | None = None

    @staticmethod
    def from_mapping(raw: object) -> "InstanceOverride":
        if not isinstance(raw, Mapping):
            raise ConfigError(f"instances[]: expected a mapping, got {raw!r}")
        for required in ("id", "endpoint"):
            if raw.get(required) is None:
                raise ConfigError(f"instances[]: missing required field {required!r}")

        def opt(key: str, conv):
            val = raw.get(key)
            return None if val is None else conv(f"instances[].{key}", val)

        return InstanceOverride(
            id=_as_str("instances[].id", raw["id"]),
            endpoint=_as_str("instances[].endpoint", raw["endpoint"]),
            scrape_interval=opt("scrape_interval", _ms_to_seconds),
            stale_threshold=opt("stale_threshold", _ms_to_seconds),
            prefix=opt("prefix", _as_str),
            metrics=opt("metrics", _as_metric_set),
            special_metrics=opt("special_metrics", _as_bool),
        )


@dataclass(frozen=True)
class InstanceConfig:
    """Descriptor de instancia ya resuelto (sin campos pendientes de herencia)."""

    id: str
    endpoint: str
    scrape_interval: float
    stale_threshold: float
    prefix: str
    metrics: frozenset[str] | None
    special_metrics: bool


def _default_instances() -> tuple[InstanceOverride, ...]:
    return (InstanceOverride(id=DEFAULT_INSTANCE_ID, endpoint=DEFAULT_INSTANCE_ENDPOINT),)


@dataclass(frozen=True)
class Config:
    """
    Configuración global.

    Las duraciones se configuran en milisegundos y se guardan en segundos.
    """

    tracing_level: str = TRACING_LEVEL_DEFAULT
    bind_address: str = BIND_ADDRESS_DEFAULT
    listener_port: int = LISTENER_PORT_DEFAULT
    scrape_interval: float = SCRAPE_INTERVAL_MS_DEFAULT / 1000.0
    stale_threshold: float = STALE_THRESHOLD_MS_DEFAULT / 1000.0
    prefix: str = PREFIX_DEFAULT
    metrics: frozenset[str] | None = None
    special_metrics: bool = SPECIAL_METRICS_DEFAULT
    instances: tuple[InstanceOverride, ...] = field(default_factory=_default_instances)

    @staticmethod
    def from_mapping(raw: Mapping[str, Any]) -> "Config":
        kwargs: dict[str, Any] = {}
        if raw.get("tracing_level") is not None:
            kwargs["tracing_level"] = _tracing_level(raw["tracing_level"])
        if raw.get("bind_address") is not None:
            kwargs["bind_address"] = _bind_address(raw["bind_address"])
        if raw.get("listener_port") is not None:
            kwargs["listener_port"] = _listener_port(raw["listener_port"])
        if raw.get("scrape_interval") is not None:
            kwargs["scrape_interval"] = _ms_to_seconds("scrape_interval", raw["scrape_interval"])
        if raw.get("stale_threshold") is not None:
            kwargs["stale_threshold"] = _ms_to_seconds("stale_threshold", raw["stale_threshold"])
        if raw.get("prefix") is not None:
            kwargs["prefix"] = _as_str("prefix", raw["prefix"])
        if raw.get("metrics") is not None:
            kwargs["metrics"] = _as_metric_set("metrics", raw["metrics"])
        if raw.get("special_metrics") is not None:
            kwargs["special_metrics"] = _as_bool("special_metrics", raw["special_metrics"])

        instances = raw.get("instances")
        if instances is not None:
            if not isinstance(instances, list):
                raise ConfigError(f"instances: expected a list, got {instances!r}")
            kwargs["instances"] = tuple(InstanceOverride.from_mapping(i) for i in instances)

        return Config(**kwargs)


def resolve_instances(config: Config) -> list[InstanceConfig]:
    """
    Herencia global -> instancia, una sola vez.

    El orden se conserva (incluidos ids duplicados; quien construya el mapa decide).
    """
    resolved: list[InstanceConfig] = []
    for ov in config.instances:
        resolved.append(
            InstanceConfig(
                id=ov.id,
                endpoint=ov.endpoint,
                scrape_interval=(
                    config.scrape_interval if ov.scrape_interval is None else ov.scrape_interval
                ),
                stale_threshold=(
                    config.stale_threshold if ov.stale_threshold is None else ov.stale_threshold
                ),
                prefix=config.prefix if ov.prefix is None else ov.prefix,
                metrics=config.metrics if ov.metrics is None else ov.metrics,
                special_metrics=(
                    config.special_metrics if ov.special_metrics is None else ov.special_metrics
                ),
            )
        )
    return resolved


def _find_config_file(explicit: str | None) -> Path | None:
    if explicit:
        p = Path(explicit).expanduser()
        if not p.is_file():
            raise ConfigError(f"Configuration file not found: {p}")
        return p.resolve()

    for candidate in CONFIG_FILE_SEARCH_LOCATIONS:
        p = Path(candidate)
        if p.is_file():
            return p.resolve()
    return None


def load_config(config_file: str | None = None) -> tuple[Config, Path | None]:
    """
    Resuelve y carga la configuración.

    Prioridad del fichero:
      1) `config_file` (flag CLI)
      2) env PROMRIAK_CONFIG (también desde .env)
      3) CONFIG_FILE_SEARCH_LOCATIONS, en orden

    Sin fichero -> todo por defecto. Devuelve (config, path_usado_o_None).
    """
    load_dotenv(override=False)

    explicit = config_file or (os.getenv(CONFIG_ENV_VAR) or "").strip() or None
    path = _find_config_file(explicit)
    if path is None:
        return Config(), None

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"{path}: top-level YAML must be a mapping")

    return Config.from_mapping(data), path
