"""Probes for BGP neighbors and the paths learned from them."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from typing import Any

from .client import FortiHTTPError
from .metrics import Metric, MetricType, ProbeError
from .version import TargetMetadata

DEFAULT_MAX_BGP_PATHS = 10000

_BGP_STATES = {
    "Idle": 1.0,
    "Connect": 2.0,
    "Active": 3.0,
    "Open sent": 4.0,
    "Open confirm": 5.0,
    "Established": 6.0,
}

_NEIGHBOR_HELP = (
    "Configured bgp neighbor over {family}, return state as value "
    "(1 - Idle, 2 - Connect, 3 - Active, 4 - Open sent, 5 - Open confirm, 6 - Established)"
)
_PATHS_HELP = "Count of paths received from an BGP neighbor"
_BEST_PATHS_HELP = "Count of best paths for an BGP neighbor"


def _fetch_list(client: Any, path: str, query: str) -> list[Mapping[str, Any]]:
    try:
        data = client.get(path, query)
    except FortiHTTPError as exc:
        raise ProbeError(str(exc)) from exc
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ProbeError(f"unexpected response shape from {path!r}")
    return data


def _results(entry: Mapping[str, Any], path: str) -> list[Mapping[str, Any]]:
    results = entry.get("results")
    if results is None:
        return []
    if not isinstance(results, list) or not all(isinstance(item, dict) for item in results):
        raise ProbeError(f"unexpected results in response from {path!r}")
    return results


def bgp_state_to_number(state: str) -> float:
    """Map a BGP session state name to its number; unknown states give 0."""
    return _BGP_STATES.get(state, 0.0)


def _probe_paths(
    client: Any, meta: TargetMetadata, max_paths: int, path: str, family: str
) -> list[Metric]:
    if max_paths == 0:
        return []
    if meta.version_major < 7:
        # The endpoint does not exist before FortiOS 7.0.0.
        return []

    responses = _fetch_list(client, path, f"vdom=*&count={max_paths}")

    paths: Counter[tuple[str, str]] = Counter()
    best_paths: Counter[tuple[str, str]] = Counter()
    for response in responses:
        vdom = str(response.get("vdom") or "")
        routes = _results(response, path)
        if len(routes) > max_paths:
            raise ProbeError(
                f"Received more BGP Paths than maximum ({len(routes)} > {max_paths}) "
                "allowed, ignoring metric ..."
            )
        for route in routes:
            key = (vdom, str(route.get("learned_from") or ""))
            paths[key] += 1
            if route.get("is_best"):
                best_paths[key] += 1

    def to_metrics(counts: Counter[tuple[str, str]], name: str, help_text: str) -> list[Metric]:
        return [
            Metric(
                name=name,
                help=help_text,
                type=MetricType.GAUGE,
                value=float(count),
                labels={"vdom": vdom, "neighbor_ip": source},
            )
            for (vdom, source), count in counts.items()
        ]

    return to_metrics(
        paths, f"fortigate_bgp_neighbor_{family}_paths", _PATHS_HELP
    ) + to_metrics(
        best_paths, f"fortigate_bgp_neighbor_{family}_best_paths", _BEST_PATHS_HELP
    )


def probe_bgp_neighbor_paths_ipv4(
    client: Any, meta: TargetMetadata, max_paths: int = DEFAULT_MAX_BGP_PATHS
) -> list[Metric]:
    """Count IPv4 BGP paths, and best paths, per neighbor and VDOM."""
    return _probe_paths(client, meta, max_paths, "api/v2/monitor/router/bgp/paths", "ipv4")


def probe_bgp_neighbor_paths_ipv6(
    client: Any, meta: TargetMetadata, max_paths: int = DEFAULT_MAX_BGP_PATHS
) -> list[Metric]:
    """Count IPv6 BGP paths, and best paths, per neighbor and VDOM."""
    return _probe_paths(client, meta, max_paths, "api/v2/monitor/router/bgp/paths6", "ipv6")


def _probe_neighbors(client: Any, meta: TargetMetadata, path: str, family: str) -> list[Metric]:
    if meta.version_major < 7:
        # The endpoint does not exist before FortiOS 7.0.0.
        return []

    responses = _fetch_list(client, path, "vdom=*")
    name = f"fortigate_bgp_neighbor_{family}_info"
    help_text = _NEIGHBOR_HELP.format(family=family)

    metrics = []
    for response in responses:
        vdom = str(response.get("vdom") or "")
        for peer in _results(response, path):
            state = str(peer.get("state") or "")
            try:
                remote_as = str(int(peer.get("remote_as") or 0))
            except (TypeError, ValueError) as exc:
                raise ProbeError(f"invalid remote_as in response from {path!r}") from exc
            metrics.append(
                Metric(
                    name=name,
                    help=help_text,
                    type=MetricType.GAUGE,
                    value=bgp_state_to_number(state),
                    labels={
                        "vdom": vdom,
                        "remote_as": remote_as,
                        "state": state,
                        "admin_status": "true" if peer.get("admin_status") else "false",
                        "local_ip": str(peer.get("local_ip") or ""),
                        "neighbor_ip": str(peer.get("neighbor_ip") or ""),
                    },
                )
            )
    return metrics


def probe_bgp_neighbors_ipv4(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report configured IPv4 BGP neighbors with their state as value."""
    return _probe_neighbors(client, meta, "api/v2/monitor/router/bgp/neighbors", "ipv4")


def probe_bgp_neighbors_ipv6(client: Any, meta: TargetMetadata) -> list[Metric]:
    """Report configured IPv6 BGP neighbors with their state as value."""
    return _probe_neighbors(client, meta, "api/v2/monitor/router/bgp/neighbors6", "ipv6")