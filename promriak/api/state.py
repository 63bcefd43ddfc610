from __future__ import annotations

"""
promriak/api/state.py

Estado de la aplicación:
- Instance: descriptor resuelto + su CacheCell (propiedad exclusiva).
- AppState: Config + mapa id -> Instance. Se construye una vez y después
  solo se lee; lo único que cambia son las celdas, y solo desde su updater.

Lectura (read path):
- id desconocido          -> None
- celda nunca escrita     -> None
- edad >= stale_threshold -> log "stale_read" + None
- resto                   -> bytes cacheados
"""

import logging
import time
from dataclasses import dataclass, field

from promriak.api.caching.cache_cell import CacheCell
from promriak.api.config import Config, InstanceConfig, resolve_instances

logger = logging.getLogger("promriak")


@dataclass
class Instance:
    config: InstanceConfig
    cache: CacheCell = field(default_factory=CacheCell)

    @property
    def id(self) -> str:
        return self.config.id

    def read_fresh(self, now: float | None = None) -> bytes | None:
        entry = self.cache.get()
        if entry is None:
            return None

        ts = time.monotonic() if now is None else now
        age = ts - entry.last_update
        threshold = self.config.stale_threshold
        if age < threshold:
            return entry.value

        logger.warning(
            "stale_read",
            extra={
                "instance": self.config.id,
                "age_ms": int(age * 1000),
                "stale_threshold_ms": int(threshold * 1000),
            },
        )
        return None


Instances = dict[str, Instance]


def build_instances(descriptors: list[InstanceConfig]) -> Instances:
    # ids duplicados: gana el último, sin error
    instances: Instances = {}
    for desc in descriptors:
        instances[desc.id] = Instance(config=desc)
    return instances


@dataclass(frozen=True)
class AppState:
    config: Config
    instances: Instances

    @staticmethod
    def from_config(config: Config) -> "AppState":
        return AppState(config=config, instances=build_instances(resolve_instances(config)))

    def lookup(self, instance_id: str, now: float | None = None) -> bytes | None:
        instance = self.instances.get(instance_id)
        if instance is None:
            return None
        return instance.read_fresh(now)
