"""Command-line options and the authentication map."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the exporter configuration cannot be loaded."""


@dataclass(frozen=True)
class Probes:
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetAuth:
    token: str = ""
    probes: Probes = field(default_factory=Probes)


@dataclass(frozen=True)
class LocalCert:
    path: str
    content: bytes


@dataclass(frozen=True)
class ExporterConfig:
    auth_keys: Mapping[str, TargetAuth] = field(default_factory=dict)
    listen: str = ":9710"
    scrape_timeout: int = 30
    tls_timeout: int = 10
    tls_insecure: bool = False
    tls_extra_cas: tuple[LocalCert, ...] = ()
    max_bgp_paths: int = 10000
    max_vpn_users: int = 0


def _scalar(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"expected a scalar for {where}")


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigError(f"expected a list for {where}")
    return tuple(_scalar(item, where) for item in value)


def _target_auth(target: str, entry: Any) -> TargetAuth:
    if entry is None:
        return TargetAuth()
    if not isinstance(entry, dict):
        raise ConfigError(f"expected a mapping for target {target!r}")
    probes = entry.get("probes")
    if probes is None:
        probes = {}
    if not isinstance(probes, dict):
        raise ConfigError(f"expected a mapping for probes of {target!r}")
    return TargetAuth(
        token=_scalar(entry.get("token"), f"token of {target!r}"),
        probes=Probes(
            include=_string_list(probes.get("include"), f"include of {target!r}"),
            exclude=_string_list(probes.get("exclude"), f"exclude of {target!r}"),
        ),
    )


def parse_auth_keys(text: str | bytes) -> dict[str, TargetAuth]:
    """Parse the YAML authentication map, keyed by target URL."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse API authentication map file: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("API authentication map must be a mapping")
    return {str(target): _target_auth(str(target), entry) for target, entry in data.items()}


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FortiGate metrics exporter")
    parser.add_argument(
        "-auth-file", "--auth-file", dest="auth_file", default="fortigate-key.yaml",
        help="file containing the authentication map to use when connecting to a Fortigate device",
    )
    parser.add_argument(
        "-listen", "--listen", dest="listen", default=":9710", help="address to listen on"
    )
    parser.add_argument(
        "-scrape-timeout", "--scrape-timeout", dest="scrape_timeout", type=int, default=30,
        help="max seconds to allow a scrape to take",
    )
    parser.add_argument(
        "-https-timeout", "--https-timeout", dest="tls_timeout", type=int, default=10,
        help="TLS Handshake timeout in seconds",
    )
    parser.add_argument(
        "-insecure", "--insecure", dest="insecure", action="store_true",
        help="Allow insecure certificates",
    )
    parser.add_argument(
        "-extra-ca-certs", "--extra-ca-certs", dest="extra_ca_certs", default="",
        help="comma-separated files containing extra PEMs to trust for TLS connections "
        "in addition to the system trust store",
    )
    parser.add_argument(
        "-max-bgp-paths", "--max-bgp-paths", dest="max_bgp_paths", type=int, default=10000,
        help="How many BGP Paths to receive when counting routes",
    )
    parser.add_argument(
        "-max-vpn-users", "--max-vpn-users", dest="max_vpn_users", type=int, default=0,
        help="How many VPN Users to receive when counting users (0 means none)",
    )
    return parser


def load_config(argv: Sequence[str] | None = None) -> ExporterConfig:
    """Parse command-line options and read the files they name."""
    args = _parser().parse_args(argv)

    try:
        auth_text = Path(args.auth_file).read_bytes()
    except OSError as exc:
        raise ConfigError(f"Failed to read API authentication map file: {exc}") from exc
    auth_keys = parse_auth_keys(auth_text)
    log.info("Loaded %d API keys", len(auth_keys))

    extra_cas = []
    for path in args.extra_ca_certs.split(","):
        if not path:
            continue
        try:
            content = Path(path).read_bytes()
        except OSError as exc:
            raise ConfigError(f"Failed to read extra CA file {path!r}: {exc}") from exc
        extra_cas.append(LocalCert(path=path, content=content))

    return ExporterConfig(
        auth_keys=auth_keys,
        listen=args.listen,
        scrape_timeout=args.scrape_timeout,
        tls_timeout=args.tls_timeout,
        tls_insecure=args.insecure,
        tls_extra_cas=tuple(extra_cas),
        max_bgp_paths=args.max_bgp_paths,
        max_vpn_users=args.max_vpn_users,
    )