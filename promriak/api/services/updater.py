from __future__ import annotations

"""
promriak/api/services/updater.py

Un hilo por instancia, para toda la vida del proceso:

    fetch (GET endpoint, timeout fijo) -> render -> CacheCell.put
    sleep(scrape_interval)   # siempre, haya ido bien o mal

Política:
- Sin retries ni backoff: el siguiente intento es el del ciclo normal.
- El sleep cuenta desde el final del ciclo (el periodo real = intervalo +
  lo que tarde fetch/render).
- Un fallo de fetch o de render se loguea y la celda no se toca: el valor
  previo, si existe, se conserva y simplemente envejece.
- Nada de lo que pase en un ciclo mata el hilo ni afecta a otras instancias.
"""

import logging
import threading
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException

from promriak import APP_NAME, __version__
from promriak.api.services.render import render_stats
from promriak.api.state import Instance, Instances

logger = logging.getLogger("promriak")

FETCH_TIMEOUT_S = 5.0
USER_AGENT = f"{APP_NAME}/{__version__}"


class FetchError(Exception):
    pass


def build_session() -> requests.Session:
    """
    Session compartida por todos los updaters (requests.Session es thread-safe
    para GETs simples). max_retries=0: el reintento es el siguiente ciclo.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
    )
    return session


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant: {name}")


def get_stats(session: requests.Session, url: str) -> dict[str, Any]:
    try:
        resp = session.get(url, timeout=FETCH_TIMEOUT_S)
        data = resp.json(parse_constant=_reject_constant)
    except (RequestException, ValueError, RecursionError) as exc:
        # RecursionError: JSON anidado en exceso
        raise FetchError(repr(exc)) from exc

    if not isinstance(data, dict):
        raise FetchError(f"expected a JSON object, got {type(data).__name__}")
    return data


def run_cycle(session: requests.Session, instance: Instance) -> bool:
    """Un ciclo completo. Devuelve True si la celda se actualizó."""
    cfg = instance.config
    start = time.monotonic()

    try:
        stats = get_stats(session, cfg.endpoint)
    except FetchError as exc:
        logger.warning(
            "get_stats_fail",
            extra={
                "instance": cfg.id,
                "duration_ms": int((time.monotonic() - start) * 1000),
                "error": str(exc),
            },
        )
        return False

    try:
        rendered = render_stats(stats, cfg)
    except Exception as exc:
        logger.warning("update_stats_fail", extra={"instance": cfg.id, "error": repr(exc)})
        return False

    instance.cache.put(rendered)
    logger.debug(
        "update_stats_ok",
        extra={"instance": cfg.id, "duration_ms": int((time.monotonic() - start) * 1000)},
    )
    return True


def update_loop(session: requests.Session, instance: Instance) -> None:
    while True:
        try:
            run_cycle(session, instance)
        except Exception:
            logger.exception("update_cycle_crash", extra={"instance": instance.config.id})
        time.sleep(instance.config.scrape_interval)


def start(session: requests.Session, instance: Instance) -> threading.Thread:
    cfg = instance.config
    logger.info(
        "updater starting",
        extra={
            "instance": cfg.id,
            "endpoint": cfg.endpoint,
            "scrape_interval_ms": int(cfg.scrape_interval * 1000),
            "stale_threshold_ms": int(cfg.stale_threshold * 1000),
            "prefix": cfg.prefix,
        },
    )
    thread = threading.Thread(
        target=update_loop,
        args=(session, instance),
        name=f"updater-{cfg.id}",
        daemon=True,
    )
    thread.start()
    return thread


def start_instance_updaters(
    instances: Instances, *, session: requests.Session | None = None
) -> list[threading.Thread]:
    shared = session if session is not None else build_session()
    return [start(shared, instance) for instance in instances.values()]
