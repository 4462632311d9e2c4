"""CloudWatch data shapes and helpers for building metric queries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


@dataclass(frozen=True)
class Dimension:
    name: str | None
    value: str | None


@dataclass(frozen=True)
class MetricDataQuery:
    query_id: str
    namespace: str
    metric_name: str
    dimensions: tuple[Dimension, ...]
    period: int
    stat: str


@dataclass
class MetricDataResult:
    label: str
    values: list[float] = field(default_factory=list)


@dataclass
class Datapoint:
    average: float | None = None
    maximum: float | None = None


@dataclass
class MetricStatistics:
    label: str
    datapoints: list[Datapoint] = field(default_factory=list)


def _quote(text: str) -> str:
    parts = []
    for char in text:
        if char in _ESCAPES:
            parts.append(_ESCAPES[char])
        elif char.isprintable():
            parts.append(char)
        elif ord(char) < 0x80:
            parts.append(f"\\x{ord(char):02x}")
        elif ord(char) <= 0xFFFF:
            parts.append(f"\\u{ord(char):04x}")
        else:
            parts.append(f"\\U{ord(char):08x}")
    return '"' + "".join(parts) + '"'


def format_dimensions(dimensions: Iterable[Dimension]) -> str:
    """Render dimensions for log and error messages, skipping incomplete ones."""
    return "".join(
        f" dimension(name={_quote(d.name)}, val={_quote(d.value)}) "
        for d in dimensions
        if d.name is not None and d.value is not None
    )


def build_dimensions(instance_id: str, metric_dimensions: Iterable[Any]) -> list[Dimension]:
    """The instance dimension followed by the configured dimensions."""
    return [Dimension("InstanceId", instance_id)] + [
        Dimension(d.name, d.value) for d in metric_dimensions
    ]


def build_metric_query(
    metric_name: str,
    namespace: str,
    dimensions: Sequence[Dimension],
    period: int,
    stat: str,
) -> MetricDataQuery:
    """A single metric-stat query identified by the lower-cased metric name."""
    return MetricDataQuery(
        query_id=metric_name.lower(),
        namespace=namespace,
        metric_name=metric_name,
        dimensions=tuple(dimensions),
        period=int(period),
        stat=str(getattr(stat, "value", stat)),
    )