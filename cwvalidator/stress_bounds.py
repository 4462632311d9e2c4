"""Expected resource usage of the agent under stress, per data rate and receiver."""

from __future__ import annotations

from collections.abc import Mapping

from cwvalidator.models import ValidationError

STRESS_METRIC_ERROR_BOUND = 0.3

BoundTable = Mapping[str, Mapping[str, Mapping[str, float]]]


class MissingBoundError(ValidationError):
    """Raised when no bound is known for a data rate, receiver or metric."""


def _linux(
    cpu: float,
    rss: float,
    vms: float,
    data: float,
    fds: float,
    bytes_sent: float,
    packets_sent: float,
) -> dict[str, float]:
    return {
        "procstat_cpu_usage": float(cpu),
        "procstat_memory_rss": float(rss),
        "procstat_memory_swap": 0.0,
        "procstat_memory_vms": float(vms),
        "procstat_memory_data": float(data),
        "procstat_num_fds": float(fds),
        "net_bytes_sent": float(bytes_sent),
        "net_packets_sent": float(packets_sent),
    }


def _windows(
    cpu: float, rss: float, vms: float, bytes_sent: float, packets_sent: float
) -> dict[str, float]:
    return {
        "procstat cpu_usage": float(cpu),
        "procstat memory_rss": float(rss),
        "procstat memory_vms": float(vms),
        "Bytes_Sent_Per_Sec": float(bytes_sent),
        "Packets_Sent_Per_Sec": float(packets_sent),
    }


_LINUX_SYSTEM = (15, 80_000_000, 818_000_000, 75_000_000, 12, 90_000, 100)
_WINDOWS_SYSTEM = (15, 80_000_000, 818_000_000, 90_000, 100)

# Above 10000 values per minute most metrics are dropped, since the agent's
# default metric buffer holds 10000 entries.
LINUX_BOUNDS: BoundTable = {
    "1000": {
        "statsd": _linux(25, 82_000_000, 818_000_000, 83_000_000, 11, 105_000, 105),
        "collectd": _linux(20, 80_000_000, 818_000_000, 82_000_000, 11, 102_000, 105),
        "logs": _linux(250, 220_000_000, 888_000_000, 260_000_000, 110, 1_800_000, 5_000),
        "system": _linux(*_LINUX_SYSTEM),
        "emf": _linux(*_LINUX_SYSTEM),
    },
    "5000": {
        "statsd": _linux(100, 130_000_000, 888_000_000, 145_000_000, 15, 524_000, 520),
        "collectd": _linux(90, 120_000_000, 888_000_000, 135_000_000, 17, 490_000, 450),
        "logs": _linux(400, 540_000_000, 1_100_000_000, 540_000_000, 180, 6_500_000, 8_500),
        "system": _linux(*_LINUX_SYSTEM),
        "emf": _linux(25, 80_000_000, 818_000_000, 79_000_000, 12, 90_000, 120),
    },
    "10000": {
        "statsd": _linux(150, 160_000_000, 888_000_000, 177_000_000, 17, 980_000, 860),
        "collectd": _linux(120, 130_000_000, 888_000_000, 150_000_000, 17, 760_000, 700),
        "logs": _linux(400, 800_000_000, 1_500_000_000, 840_000_000, 180, 6_820_000, 8_300),
        "system": _linux(*_LINUX_SYSTEM),
        "emf": _linux(45, 88_000_000, 818_000_000, 88_000_000, 12, 90_000, 120),
    },
    "50000": {
        "statsd": _linux(250, 300_000_000, 1_000_000_000, 440_000_000, 18, 1_700_000, 1_400),
        "collectd": _linux(220, 218_000_000, 980_000_000, 240_000_000, 18, 1_250_000, 1_100),
        "logs": _linux(400, 800_000_000, 1_500_000_000, 650_000_000, 200, 6_900_000, 6_500),
        "system": _linux(*_LINUX_SYSTEM),
        "emf": _linux(165, 120_000_000, 818_000_000, 110_000_000, 12, 280_000, 220),
    },
}

WINDOWS_BOUNDS: BoundTable = {
    "1000": {
        "logs": _windows(250, 220_000_000, 888_000_000, 1_800_000, 5_000),
        "system": _windows(*_WINDOWS_SYSTEM),
    },
    "5000": {
        "logs": _windows(400, 540_000_000, 1_100_000_000, 6_500_000, 8_500),
        "system": _windows(*_WINDOWS_SYSTEM),
    },
    "10000": {
        "logs": _windows(400, 800_000_000, 1_500_000_000, 6_820_000, 8_300),
        "system": _windows(*_WINDOWS_SYSTEM),
    },
    "50000": {
        "logs": _windows(400, 800_000_000, 1_500_000_000, 6_900_000, 6_500),
        "system": _windows(*_WINDOWS_SYSTEM),
    },
}


def upper_bound(
    data_rate: int | str, receiver: str, metric_name: str, windows: bool = False
) -> float:
    """The largest acceptable value of a metric: its expected value plus 30%."""
    table = WINDOWS_BOUNDS if windows else LINUX_BOUNDS
    plugins = table.get(str(data_rate), {})
    metrics = plugins.get(receiver)
    if metrics is None:
        raise MissingBoundError(f"plugin {receiver} does not have data rate")
    bound = metrics.get(metric_name)
    if bound is None:
        # The Linux check names the receiver in its message, the Windows one the metric.
        subject = metric_name if windows else receiver
        raise MissingBoundError(f"metric {subject} does not have bound")
    return bound * (1 + STRESS_METRIC_ERROR_BOUND)