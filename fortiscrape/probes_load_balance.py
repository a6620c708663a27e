"""Probe for firewall load balancer virtual and real servers."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from .client import FortiHTTPError
from .metrics import Metric, MetricType, ProbeError
from .version import TargetMetadata

log = logging.getLogger(__name__)

_PATH = "api/v2/monitor/firewall/load-balance"
# Pagination is not implemented, so at most 1000 entries are read.
_QUERY = "vdom=*&start=0&count=1000"

_VS_INFO = (
    "fortigate_lb_virtual_server_info",
    "Info metric regarding virtual servers",
)
_RS_INFO = (
    "fortigate_lb_real_server_info",
    "Info metric regarding real servers",
)
_RS_MODE = (
    "fortigate_lb_real_server_mode",
    "Mode of this real server: active, standby or disabled",
)
_RS_STATUS = (
    "fortigate_lb_real_server_status",
    "Status of this real server: up, down or unknown",
)
_RS_SESSIONS = (
    "fortigate_lb_real_server_active_sessions",
    "Number of sessions active on this real server",
)
_RS_RTT = (
    "fortigate_lb_real_server_rtt_seconds",
    "Round Trip Time (RTT) for this real server. A RTT of 1 ms or less is reported "
    "as 1 ms (0.001 s). A RTT of -1 indicates a parsing error.",
)
_RS_BYTES = (
    "fortigate_lb_real_server_processed_bytes_total",
    "Number of bytes processed by this real server",
)

_MODES = ("active", "standby", "disabled")


def parse_rtt(rtt: str) -> float:
    """Convert a round trip time in milliseconds, as reported, to seconds.

    ``"<1"`` counts as one millisecond; an empty or unparsable value gives NaN.
    """
    if rtt == "<1":
        return 0.001
    if rtt == "":
        return math.nan
    try:
        if rtt.strip() != rtt or "_" in rtt:
            raise ValueError(f"invalid syntax: {rtt!r}")
        millis = float(rtt)
    except ValueError as exc:
        log.warning("Failed to parse RTT value: %s", exc)
        return math.nan
    return millis / 1000


def _text(entry: Mapping[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ProbeError(f"invalid value for {key!r} in response from {_PATH!r}")
    return value


def _integer(entry: Mapping[str, Any], key: str) -> int:
    value = entry.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProbeError(f"invalid value for {key!r} in response from {_PATH!r}")
    return value


def _number(entry: Mapping[str, Any], key: str) -> float:
    value = entry.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProbeError(f"invalid value for {key!r} in response from {_PATH!r}")
    return float(value)


def _dicts(value: Any, what: str) -> list[Mapping[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ProbeError(f"unexpected {what} in response from {_PATH!r}")
    return value


def _metric(
    spec: tuple[str, str], value: float, labels: dict[str, str],
    kind: MetricType = MetricType.GAUGE,
) -> Metric:
    name, help_text = spec
    return Metric(name=name, help=help_text, type=kind, value=value, labels=labels)


def _real_server_metrics(vdom: str, virtual_server: str, real: Mapping[str, Any]) -> list[Metric]:
    server_id = str(_integer(real, "real_server_id"))
    base = {"vdom": vdom, "virtual_server": virtual_server, "id": server_id}

    mode = _text(real, "mode")
    status = _text(real, "status")
    if status not in ("up", "down"):
        status = "unknown"

    metrics = [
        _metric(
            _RS_INFO,
            1.0,
            {
                **base,
                "ip": _text(real, "real_server_ip"),
                "port": str(_integer(real, "real_server_port")),
            },
        )
    ]
    metrics.extend(
        _metric(_RS_MODE, 1.0 if mode == candidate else 0.0, {**base, "mode": candidate})
        for candidate in _MODES
    )
    metrics.extend(
        _metric(_RS_STATUS, 1.0 if status == candidate else 0.0, {**base, "state": candidate})
        for candidate in ("up", "down", "unknown")
    )
    metrics.append(_metric(_RS_SESSIONS, _number(real, "active_sessions"), dict(base)))
    metrics.append(_metric(_RS_RTT, parse_rtt(_text(real, "RTT")), dict(base)))
    metrics.append(
        _metric(_RS_BYTES, _number(real, "bytes_processed"), dict(base), MetricType.COUNTER)
    )
    return metrics


def probe_firewall_load_balance(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report virtual servers and the state of their real servers."""
    if meta.version_major < 6 or (meta.version_major == 6 and meta.version_minor < 4):
        # Before 6.4.0 there is no real_server_id.
        return []

    try:
        data = client.get(_PATH, _QUERY)
    except FortiHTTPError as exc:
        raise ProbeError(str(exc)) from exc

    metrics: list[Metric] = []
    for response in _dicts(data, "response shape"):
        vdom = _text(response, "vdom")
        for virtual in _dicts(response.get("results"), "results"):
            name = _text(virtual, "virtual_server_name")
            metrics.append(
                _metric(
                    _VS_INFO,
                    1.0,
                    {
                        "vdom": vdom,
                        "name": name,
                        "ip": _text(virtual, "virtual_server_ip"),
                        "port": str(_integer(virtual, "virtual_server_port")),
                        "type": _text(virtual, "virtual_server_type"),
                    },
                )
            )
            for real in _dicts(virtual.get("list"), "real server list"):
                metrics.extend(_real_server_metrics(vdom, name, real))
    return metrics