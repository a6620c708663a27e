"""Probe for the VDOM license status."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .client import FortiHTTPError
from .metrics import Metric, MetricType, ProbeError
from .version import TargetMetadata

_PATH = "api/v2/monitor/license/status/select"


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProbeError(f"unexpected {what} in response from {_PATH!r}")
    return value


def _number(entry: Mapping[str, Any], key: str) -> float:
    value = entry.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProbeError(f"invalid value for {key!r} in response from {_PATH!r}")
    return float(value)


def probe_license_status(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report how many VDOM licenses are used and how many are available."""
    try:
        data = client.get(_PATH, "")
    except FortiHTTPError as exc:
        raise ProbeError(str(exc)) from exc

    response = _mapping(data, "response shape")
    results = _mapping(response.get("results"), "results")
    vdom = _mapping(results.get("vdom"), "vdom license")

    return [
        Metric(
            name="fortigate_license_vdom_usage",
            help="The amount of VDOM licenses currently used",
            type=MetricType.GAUGE,
            value=_number(vdom, "used"),
        ),
        Metric(
            name="fortigate_license_vdom_max",
            help="The total amount of VDOM licenses available",
            type=MetricType.GAUGE,
            value=_number(vdom, "max"),
        ),
    ]