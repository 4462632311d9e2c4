"""Summary statistics over metric datapoints."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Keys: UniqueID, Service, UseCase, CommitDate, CommitHash, DataType,
# Results, CollectionPeriod, InstanceAMI, InstanceType.
PerformanceInformation = dict[str, Any]


@dataclass(frozen=True)
class Stats:
    average: float = 0.0
    p99: float = 0.0
    max: float = 0.0
    min: float = 0.0
    period: int = 0
    std: float = 0.0


def calculate_statistics(data: Iterable[float], data_period: float) -> Stats:
    """Average, extremes, p99, population deviation and sampling period of the data."""
    values = sorted(data)
    length = len(values)
    if length == 0:
        return Stats()
    if length < 99:
        logger.info("Note: less than 99 values given, p99 value will be equal the max value")
    p99_index = int(length * 0.99) - 1
    if p99_index < 0:
        raise ValueError(f"cannot compute p99 from {length} value(s)")
    average = sum(values) / length
    variance = sum((average - value) ** 2 for value in values) / length
    return Stats(
        average=average,
        p99=values[p99_index],
        max=values[-1],
        min=values[0],
        period=int(data_period / length),
        std=math.sqrt(variance),
    )