"""Probe for firewall IP pool usage."""

from __future__ import annotations

from typing import Any

from .client import FortiHTTPError
from .metrics import Metric, MetricType, ProbeError
from .version import TargetMetadata

_PATH = "api/v2/monitor/firewall/ippool"

# (metric name, help, JSON field, divisor)
_FIELDS = (
    ("fortigate_ippool_available_ratio", "Percentage available in ippool (0 - 1.0)",
     "available", 100.0),
    ("fortigate_ippool_used_ips", "Ip addresses in use in ippool", "natip_in_use", 1.0),
    ("fortigate_ippool_total_ips", "Ip addresses total in ippool", "natip_total", 1.0),
    ("fortigate_ippool_clients", "Amount of clients using ippool", "clients", 1.0),
    ("fortigate_ippool_used_items", "Amount of items used in ippool", "used", 1.0),
    ("fortigate_ippool_total_items", "Amount of items total in ippool", "total", 1.0),
    ("fortigate_ippool_pba_per_ip", "Amount of available port block allocations per ip",
     "pba_per_ip", 1.0),
)


def _number(pool: dict[str, Any], key: str) -> float:
    value = pool.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProbeError(f"invalid value for {key!r} in response from {_PATH!r}")
    return float(value)


def probe_firewall_ippool(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report usage figures of every IP pool in every VDOM."""
    try:
        responses = client.get(_PATH, "vdom=*")
    except FortiHTTPError as exc:
        raise ProbeError(str(exc)) from exc
    if responses is None:
        return []
    if not isinstance(responses, list) or not all(isinstance(r, dict) for r in responses):
        raise ProbeError(f"unexpected response shape from {_PATH!r}")

    metrics = []
    for response in responses:
        vdom = str(response.get("vdom") or "")
        pools = response.get("results") or {}
        if not isinstance(pools, dict) or not all(isinstance(p, dict) for p in pools.values()):
            raise ProbeError(f"unexpected results in response from {_PATH!r}")
        for pool in pools.values():
            labels = {"vdom": vdom, "name": str(pool.get("name") or "")}
            metrics.extend(
                Metric(
                    name=name,
                    help=help_text,
                    type=MetricType.GAUGE,
                    value=_number(pool, key) / divisor,
                    labels=labels,
                )
                for name, help_text, key, divisor in _FIELDS
            )
    return metrics