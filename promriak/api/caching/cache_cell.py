# celda por instancia: un escritor (updater), N lectores (requests)
from __future__ import annotations

import time
from dataclasses import dataclass
from threading import RLock


@dataclass(frozen=True)
class CachedEntry:
    """
    Snapshot renderizado.

    - last_update: time.monotonic() del momento de la escritura.
    - value: bytes en formato de exposición.

    Inmutable: la celda sustituye la referencia completa, nunca muta campos,
    así que un lector ve el par (last_update, value) entero o nada.
    """

    last_update: float
    value: bytes


class CacheCell:
    """
    Slot mutable de una sola instancia.

    Un lock por celda (nunca uno global) para que una instancia lenta no
    afecte a las demás.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._entry: CachedEntry | None = None

    def get(self) -> CachedEntry | None:
        with self._lock:
            return self._entry

    def put(self, value: bytes, *, now: float | None = None) -> CachedEntry:
        ts = time.monotonic() if now is None else now
        entry = CachedEntry(last_update=ts, value=value)
        with self._lock:
            prev = self._entry
            if prev is not None and ts < prev.last_update:
                # last_update nunca retrocede
                entry = CachedEntry(last_update=prev.last_update, value=value)
            self._entry = entry
        return entry
