"""Probes for log disk usage and FortiAnalyzer logging."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from .client import FortiHTTPError
from .metrics import Metric, MetricType, ProbeError
from .version import TargetMetadata

_DISK_PATH = "api/v2/monitor/log/current-disk-usage"
_ANALYZER_PATH = "api/v2/monitor/log/fortianalyzer"
_QUEUE_PATH = "api/v2/monitor/log/fortianalyzer-queue"


def _entries(client: Any, path: str) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Yield (vdom, results) for every VDOM in the response from ``path``."""
    try:
        data = client.get(path, "vdom=*")
    except FortiHTTPError as exc:
        raise ProbeError(str(exc)) from exc
    if data is None:
        return
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ProbeError(f"unexpected response shape from {path!r}")
    for entry in data:
        vdom = entry.get("vdom")
        if vdom is not None and not isinstance(vdom, str):
            raise ProbeError(f"invalid value for 'vdom' in response from {path!r}")
        results = entry.get("results")
        if results is None:
            results = {}
        if not isinstance(results, dict):
            raise ProbeError(f"unexpected results in response from {path!r}")
        yield vdom or "", results


def _number(entry: Mapping[str, Any], key: str, path: str) -> float:
    value = entry.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProbeError(f"invalid value for {key!r} in response from {path!r}")
    return float(value)


def _text(entry: Mapping[str, Any], key: str, path: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ProbeError(f"invalid value for {key!r} in response from {path!r}")
    return value


def _gauge(name: str, help_text: str, value: float, labels: dict[str, str]) -> Metric:
    return Metric(name=name, help=help_text, type=MetricType.GAUGE, value=value, labels=labels)


def probe_log_current_disk_usage(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report used and total log disk bytes per VDOM."""
    metrics = []
    for vdom, results in _entries(client, _DISK_PATH):
        labels = {"vdom": vdom}
        metrics.append(
            _gauge(
                "fortigate_log_disk_used_bytes",
                "Disk used bytes for log",
                _number(results, "used_bytes", _DISK_PATH),
                labels,
            )
        )
        metrics.append(
            _gauge(
                "fortigate_log_disk_total_bytes",
                "Disk total bytes for log",
                _number(results, "total_bytes", _DISK_PATH),
                dict(labels),
            )
        )
    return metrics


def probe_log_analyzer(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report FortiAnalyzer registration state and received logs per VDOM."""
    metrics = []
    for vdom, results in _entries(client, _ANALYZER_PATH):
        metrics.append(
            _gauge(
                "fortigate_log_fortianalyzer_registration_info",
                "Fortianalyzer state info",
                1.0,
                {
                    "vdom": vdom,
                    "registration": _text(results, "registration", _ANALYZER_PATH),
                    "connection": _text(results, "connection", _ANALYZER_PATH),
                },
            )
        )
        metrics.append(
            _gauge(
                "fortigate_log_fortianalyzer_logs_received",
                "Received logs in fortianalyzer",
                _number(results, "received", _ANALYZER_PATH),
                {"vdom": vdom},
            )
        )
    return metrics


def probe_log_analyzer_queue(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report the FortiAnalyzer queue connection state and queued logs per VDOM."""
    metrics = []
    for vdom, results in _entries(client, _QUEUE_PATH):
        metrics.append(
            _gauge(
                "fortigate_log_fortianalyzer_queue_connections",
                "Fortianalyzer queue connected state",
                _number(results, "connected", _QUEUE_PATH),
                {"vdom": vdom},
            )
        )
        # Failed and cached logs are treated as gauges; it is not known whether
        # the device reports them as running totals.
        for state, key in (("failed", "failed_logs"), ("cached", "cached_logs")):
            metrics.append(
                _gauge(
                    "fortigate_log_fortianalyzer_queue_logs",
                    "State of logs in the queue",
                    _number(results, key, _QUEUE_PATH),
                    {"vdom": vdom, "state": state},
                )
            )
    return metrics