from __future__ import annotations

APP_NAME = "promriak"
APP_DESCRIPTION = "Prometheus exporter for Riak /stats endpoints"
__version__ = "0.3.0"
