"""Metric values and their Prometheus text exposition."""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

BUILD_INFO_NAME = "fortigate_exporter_build_info"
BUILD_INFO_HELP = "This info metric contains build information for about the exporter"


class MetricType(enum.Enum):
    GAUGE = "gauge"
    COUNTER = "counter"


class ProbeError(Exception):
    """Raised when a probe cannot collect its metrics."""


@dataclass(frozen=True)
class Metric:
    """One sample of a metric family."""

    name: str
    help: str
    type: MetricType
    value: float
    labels: Mapping[str, str] = field(default_factory=dict)


def _format_value(value: float) -> str:
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    count = len(digits)
    point = count + exponent
    exp = point - 1
    prefix = "-" if sign else ""
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        return f"{prefix}{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= count:
        return f"{prefix}{digits}{'0' * (point - count)}"
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _sort_key(metric: Metric) -> tuple[str, ...]:
    return tuple(value for _, value in sorted(metric.labels.items()))


def _sample_line(metric: Metric) -> str:
    if metric.labels:
        pairs = ",".join(
            f'{name}="{_escape_label(value)}"' for name, value in sorted(metric.labels.items())
        )
        return f"{metric.name}{{{pairs}}} {_format_value(metric.value)}"
    return f"{metric.name} {_format_value(metric.value)}"


def render(metrics: Iterable[Metric]) -> str:
    """Render metrics in the Prometheus text format, families sorted by name.

    Raises ValueError if two samples of one family disagree on help or type.
    """
    families: dict[str, tuple[str, MetricType, list[Metric]]] = {}
    for metric in metrics:
        help_text, kind, samples = families.setdefault(
            metric.name, (metric.help, metric.type, [])
        )
        if (help_text, kind) != (metric.help, metric.type):
            raise ValueError(f"inconsistent help or type for metric {metric.name!r}")
        samples.append(metric)

    lines: list[str] = []
    for name in sorted(families):
        help_text, kind, samples = families[name]
        lines.append(f"# HELP {name} {_escape_help(help_text)}")
        lines.append(f"# TYPE {name} {kind.value}")
        lines.extend(_sample_line(m) for m in sorted(samples, key=_sort_key))
    return "\n".join(lines) + "\n" if lines else ""


def build_info_metric(version: str, revision: str, runtime_version: str) -> Metric:
    """Return the build info metric; a leading ``v`` is removed from the version."""
    return Metric(
        name=BUILD_INFO_NAME,
        help=BUILD_INFO_HELP,
        type=MetricType.GAUGE,
        value=1.0,
        labels={
            "version": version.removeprefix("v"),
            "revision": revision,
            "pythonversion": runtime_version,
        },
    )