"""Probe for firewall policy statistics."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .client import FortiHTTPError
from .metrics import Metric, MetricType, ProbeError
from .version import TargetMetadata, parse_version

log = logging.getLogger(__name__)

_STATS_PATH = "api/v2/monitor/firewall/policy/select"
_STATS6_PATH = "api/v2/monitor/firewall/policy6/select"
_CONFIG_PATH = "api/v2/cmdb/firewall/policy"
_CONFIG6_PATH = "api/v2/cmdb/firewall/policy6"
_CONFIG_QUERY = "vdom=*&policyid|name|uuid|action|status"

_LABELS = ("vdom", "protocol", "name", "uuid", "id")

# (metric name, help, JSON field, type)
_FIELDS = (
    ("fortigate_policy_hit_count_total", "Number of times a policy has been hit",
     "hit_count", MetricType.COUNTER),
    ("fortigate_policy_bytes_total", "Number of bytes that has passed through a policy",
     "bytes", MetricType.COUNTER),
    ("fortigate_policy_packets_total", "Number of packets that has passed through a policy",
     "packets", MetricType.COUNTER),
    ("fortigate_policy_active_sessions", "Number of active sessions for a policy",
     "active_sessions", MetricType.GAUGE),
)


def _fetch(client: Any, path: str, query: str) -> list[Mapping[str, Any]]:
    try:
        data = client.get(path, query)
    except FortiHTTPError as exc:
        raise ProbeError(str(exc)) from exc
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ProbeError(f"unexpected response shape from {path!r}")
    return data


def _results(entry: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    results = entry.get("results")
    if results is None:
        return []
    if not isinstance(results, list) or not all(isinstance(item, dict) for item in results):
        raise ProbeError("unexpected results in policy response")
    return results


def _text(entry: Mapping[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ProbeError(f"invalid value for {key!r} in policy response")
    return value


def _integer(entry: Mapping[str, Any], key: str) -> int:
    value = entry.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProbeError(f"invalid value for {key!r} in policy response")
    return value


def _number(entry: Mapping[str, Any], key: str) -> float:
    value = entry.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProbeError(f"invalid value for {key!r} in policy response")
    return float(value)


def _names_by_uuid(configs: list[Mapping[str, Any]]) -> dict[str, str]:
    return {
        _text(policy, "uuid"): _text(policy, "name")
        for config in configs
        for policy in _results(config)
    }


def _policy_metrics(
    vdom: str, stats: Mapping[str, Any], names: Mapping[str, str], protocol: str
) -> list[Metric]:
    policy_id = _integer(stats, "policyid")
    uuid = _text(stats, "uuid")
    name = "Implicit Deny"
    if policy_id > 0:
        if uuid in names:
            name = names[uuid]
        else:
            log.warning("Failed to map %r to policy config - this should not happen", uuid)
            name = "<UNKNOWN>"
    labels = dict(zip(_LABELS, (vdom, protocol, name, uuid, str(policy_id))))
    return [
        Metric(name=metric, help=help_text, type=kind, value=_number(stats, key), labels=labels)
        for metric, help_text, key, kind in _FIELDS
    ]


def probe_firewall_policies(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report hit, byte, packet and session counts of every firewall policy."""
    stats4 = _fetch(client, _STATS_PATH, "vdom=*&ip_version=ipv4")
    if not stats4:
        raise ProbeError(f"empty response from {_STATS_PATH!r}")

    reported = _text(stats4[0], "version")
    try:
        major, minor = parse_version(reported)
    except ValueError as exc:
        raise ProbeError(f"Could not parse version number {reported!r}") from exc
    # From 6.4 on, IPv4 and IPv6 policies are combined.
    combined = major > 6 or (major == 6 and minor >= 4)

    if combined:
        stats6 = _fetch(client, _STATS_PATH, "vdom=*&ip_version=ipv6")
    else:
        stats6 = _fetch(client, _STATS6_PATH, "vdom=*")

    names4 = _names_by_uuid(_fetch(client, _CONFIG_PATH, _CONFIG_QUERY))
    if combined:
        names6 = names4
    else:
        names6 = _names_by_uuid(_fetch(client, _CONFIG6_PATH, _CONFIG_QUERY))

    metrics: list[Metric] = []
    for stats_list, names, protocol in ((stats4, names4, "ipv4"), (stats6, names6, "ipv6")):
        for entry in stats_list:
            vdom = _text(entry, "vdom")
            for stats in _results(entry):
                metrics.extend(_policy_metrics(vdom, stats, names, protocol))
    return metrics