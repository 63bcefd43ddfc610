from __future__ import annotations

"""
promriak/api/services/render.py

stats JSON (dict) -> bytes en formato de exposición de Prometheus.

Cada métrica es un bloque gauge seguido de una línea en blanco:

    # TYPE {prefix}{metric} gauge
    {prefix}{metric} {value}
    <línea vacía>

El orden de los bloques sigue el del dict y no forma parte del contrato.
"""

import math
from decimal import Decimal
from typing import Any, Mapping

from promriak.api.config import InstanceConfig

JsonMap = Mapping[str, Any]


class RenderError(Exception):
    pass


def _is_number(value: object) -> bool:
    # en JSON true/false no son números
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_value(value: float) -> str:
    """
    Dígitos más cortos que reproducen el float, sin notación científica:
    10.0 -> "10", 1e-07 -> "0.0000001", 1e23 -> "100000000000000000000000".
    """
    try:
        v = float(value)
    except OverflowError as exc:
        raise RenderError(f"value out of range: {exc}") from exc
    if not math.isfinite(v):
        raise RenderError(f"non-finite value: {value!r}")
    s = format(Decimal(repr(v)), "f")
    if s.endswith(".0"):
        s = s[:-2]
    return s


def render_metric(out: list[str], metric: str, value: float, prefix: str) -> None:
    name = f"{prefix}{metric}"
    out.append(f"# TYPE {name} gauge\n")
    out.append(f"{name} {format_value(value)}\n\n")


def render_special_metrics(out: list[str], stats: JsonMap, prefix: str) -> None:
    ring_members = stats.get("ring_members")
    if isinstance(ring_members, list):
        render_metric(out, "ring_members_count", len(ring_members), prefix)

    connected_nodes = stats.get("connected_nodes")
    if isinstance(connected_nodes, list):
        render_metric(out, "connected_nodes_count", len(connected_nodes), prefix)
        # el propio nodo también cuenta como disponible
        render_metric(out, "available_nodes_count", len(connected_nodes) + 1, prefix)


def render_stats(stats: JsonMap, instance: InstanceConfig) -> bytes:
    prefix = instance.prefix
    allow = instance.metrics

    out: list[str] = []
    for metric, value in stats.items():
        if allow is not None and metric not in allow:
            continue
        if not _is_number(value):
            continue
        render_metric(out, str(metric), value, prefix)

    if instance.special_metrics:
        render_special_metrics(out, stats, prefix)

    return "".join(out).encode("utf-8")
