from __future__ import annotations

"""
promriak/__main__.py

Arranque del proceso:
1) CLI (--config / PROMRIAK_CONFIG)
2) carga + validación de la configuración (fatal si falla)
3) logging al nivel configurado
4) un updater por instancia
5) servidor HTTP (uvicorn) en bind_address:listener_port
"""

import argparse
import logging
import sys

import uvicorn

from promriak import APP_DESCRIPTION, APP_NAME, __version__
from promriak.api.app import create_app
from promriak.api.config import CONFIG_ENV_VAR, ConfigError, load_config
from promriak.api.logging_config import configure_logging
from promriak.api.services.updater import start_instance_updaters
from promriak.api.state import AppState


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=APP_NAME, description=APP_DESCRIPTION)
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        default=None,
        help=f"Optional configuration file (env: {CONFIG_ENV_VAR})",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        config, config_file = load_config(args.config)
    except ConfigError as exc:
        configure_logging("ERROR")
        logging.getLogger(APP_NAME).error("config_error", extra={"error": str(exc)})
        return 2

    logger = configure_logging(config.tracing_level)
    logger.info(
        f"{APP_NAME} starting",
        extra={
            "version": __version__,
            "bind_address": config.bind_address,
            "listener_port": config.listener_port,
            "configuration": str(config_file) if config_file else None,
        },
    )

    state = AppState.from_config(config)
    start_instance_updaters(state.instances)

    uvicorn.run(
        create_app(state),
        host=config.bind_address,
        port=config.listener_port,
        log_config=None,
        access_log=False,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
