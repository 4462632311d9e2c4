"""Validator that records the agent's resource usage as performance statistics."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from cwvalidator.basic import BasicValidator
from cwvalidator.cloudwatch import (
    MetricDataResult,
    MetricStatistics,
    build_dimensions,
    build_metric_query,
)
from cwvalidator.models import (
    CloudBackend,
    Statistic,
    ValidationError,
    ValidatorConfig,
)
from cwvalidator.stats import PerformanceInformation, Stats, calculate_statistics

logger = logging.getLogger(__name__)

SERVICE_NAME = "AmazonCloudWatchAgent"
DYNAMODB_DATABASE = "CWAPerformanceMetrics"
USE_CASE_INDEX = "UseCaseHash"
PERFORMANCE_QUERY_PERIOD = 10
WINDOWS_STATISTICS_PERIOD = 1
BYTES_PER_MB = 1024 * 1024

# Byte-valued metrics reported in MB for easier reading.
METRICS_CONVERT_TO_MB: frozenset[str] = frozenset(
    {
        "mem_total",
        "procstat_memory_rss",
        "procstat_memory_swap",
        "procstat_memory_data",
        "procstat_memory_vms",
        "procstat_write_bytes",
        "procstat_bytes_sent",
        "memory_rss",
        "memory_vms",
        "write_bytes",
        "Bytes_Sent_Per_Sec",
        "Available_Bytes",
    }
)


def _format_number(value: float) -> str:
    """Render a number the way the stored packets expect (60.0 -> "60")."""
    if float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def _metric_name_from_label(label: str) -> str:
    return label.split(" ")[-1]


def all_non_negative(values: Iterable[float | None]) -> bool:
    """True when there is at least one value and none is negative or missing."""
    seen = False
    for value in values:
        if value is None or value < 0:
            return False
        seen = True
    return seen


def pack_performance_information(
    backend: CloudBackend,
    unique_id: str,
    receiver: str,
    data_type: str,
    collection_period: str,
    commit_hash: str,
    commit_date: int,
    result: Any,
) -> PerformanceInformation:
    """Assemble the record stored in the performance database."""
    return {
        "UniqueID": unique_id,
        "Service": SERVICE_NAME,
        "UseCase": receiver,
        "CommitDate": commit_date,
        "CommitHash": commit_hash,
        "DataType": data_type,
        "Results": result,
        "CollectionPeriod": collection_period,
        "InstanceAMI": backend.image_id(),
        "InstanceType": backend.instance_type(),
    }


class PerformanceValidator(BasicValidator):
    """Collects the agent's resource metrics and stores their statistics."""

    def __init__(
        self,
        config: ValidatorConfig,
        backend: CloudBackend,
        *,
        retry_attempts: int = 5,
        initial_retry_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(config, backend)
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self.retry_attempts = retry_attempts
        self.initial_retry_interval = initial_retry_interval
        self.sleep = sleep

    def check_data(self, start_time: datetime, end_time: datetime) -> None:
        if self.config.os_family == "windows":
            statistics = self.get_windows_performance_metrics(start_time, end_time)
            perf_info = self.calculate_windows_metric_stats_and_pack(statistics)
        else:
            metrics = self.get_performance_metrics(start_time, end_time)
            perf_info = self.calculate_metric_stats_and_pack(metrics)
        self.send_packet_to_database(perf_info)

    def _store(self, perf_info: Mapping[str, Any]) -> None:
        config = self.config
        receiver = self._first_receiver()
        commit_hash, commit_date = config.commit_information
        period = _format_number(config.agent_collection_period.total_seconds())

        existing = self.backend.get_item(
            DYNAMODB_DATABASE,
            USE_CASE_INDEX,
            ["CommitHash", "UseCase"],
            [str(commit_hash), receiver],
            perf_info,
        )
        existing_results = existing.get("Results")
        new_results = perf_info.get("Results")
        if not isinstance(existing_results, Mapping) or not isinstance(
            new_results, Mapping
        ):
            raise ValidationError("performance packet results must be mappings")
        unique_id = existing.get("UniqueID")
        if not isinstance(unique_id, str):
            raise ValidationError("performance packet has no unique id")

        merged = dict(existing_results)
        merged.update(new_results)
        final = pack_performance_information(
            self.backend,
            unique_id,
            receiver,
            config.data_type,
            period,
            commit_hash,
            commit_date,
            merged,
        )
        self.backend.replace_item(DYNAMODB_DATABASE, final)

    def send_packet_to_database(self, perf_info: Mapping[str, Any]) -> None:
        """Merge the packet with any stored one for the same commit and use case."""
        interval = self.initial_retry_interval
        for attempt in range(1, self.retry_attempts + 1):
            try:
                self._store(perf_info)
                return
            except Exception as err:
                if attempt == self.retry_attempts:
                    raise
                logger.info("Storing performance packet failed (%s), retrying", err)
                self.sleep(interval)
                interval *= 2

    def _pack_results(self, results: dict[str, Stats]) -> PerformanceInformation:
        config = self.config
        commit_hash, commit_date = config.commit_information
        return pack_performance_information(
            self.backend,
            config.unique_id(),
            self._first_receiver(),
            config.data_type,
            _format_number(config.agent_collection_period.total_seconds()),
            commit_hash,
            commit_date,
            {str(config.data_rate): results},
        )

    def calculate_metric_stats_and_pack(
        self, metrics: Sequence[MetricDataResult]
    ) -> PerformanceInformation:
        """Statistics for each metric data result, packed for the database."""
        self._first_receiver()
        period = self.config.agent_collection_period.total_seconds()
        results: dict[str, Stats] = {}
        for metric in metrics:
            name = _metric_name_from_label(metric.label)
            values = list(metric.values)
            if name in METRICS_CONVERT_TO_MB:
                values = [value / BYTES_PER_MB for value in values]
            logger.info("Start calculate metric statistics for metric %s %s", name, values)
            if not all_non_negative(values):
                raise ValidationError(
                    f"values are not all greater than or equal to zero for metric "
                    f"{name} with values: {values}"
                )
            stats = calculate_statistics(values, period)
            logger.info("Finished calculate metric statistics for metric %s: %s", name, stats)
            results[name] = stats
        return self._pack_results(results)

    def calculate_windows_metric_stats_and_pack(
        self, statistics: Sequence[MetricStatistics]
    ) -> PerformanceInformation:
        """Statistics over the averages of each metric's datapoints, packed."""
        self._first_receiver()
        period = self.config.agent_collection_period.total_seconds()
        results: dict[str, Stats] = {}
        for statistic in statistics:
            name = _metric_name_from_label(statistic.label)
            averages = [point.average for point in statistic.datapoints]
            logger.info("Start calculate metric statistics for metric %s", name)
            if not all_non_negative(averages):
                raise ValidationError(
                    f"values are not all greater than or equal to zero for metric "
                    f"{name} with values: {averages}"
                )
            data = [float(value) for value in averages if value is not None]
            if name in METRICS_CONVERT_TO_MB:
                data = [value / BYTES_PER_MB for value in data]
            stats = calculate_statistics(data, period)
            logger.info("Finished calculate metric statistics for metric %s: %s", name, stats)
            results[name] = stats
        return self._pack_results(results)

    def get_performance_metrics(
        self, start_time: datetime, end_time: datetime
    ) -> list[MetricDataResult]:
        """Fetch every configured metric in one metric data request."""
        instance_id = self.backend.instance_id()
        namespace = self.config.metric_namespace
        logger.info("Start getting performance metrics from CloudWatch")
        queries = [
            build_metric_query(
                metric.metric_name,
                namespace,
                build_dimensions(instance_id, metric.metric_dimension),
                PERFORMANCE_QUERY_PERIOD,
                Statistic.AVERAGE,
            )
            for metric in self.config.metric_validation
        ]
        return self.backend.get_metric_data(queries, start_time, end_time)

    def get_windows_performance_metrics(
        self, start_time: datetime, end_time: datetime
    ) -> list[MetricStatistics]:
        """Fetch per-second averages of each metric one request at a time."""
        instance_id = self.backend.instance_id()
        namespace = self.config.metric_namespace
        logger.info("Start getting performance metrics from CloudWatch")
        statistics: list[MetricStatistics] = []
        for metric in self.config.metric_validation:
            dimensions = build_dimensions(instance_id, metric.metric_dimension)
            logger.info("Trying to get Metric %s for GetMetricStatistic", metric.metric_name)
            # Windows procstat names contain a space, which metric data queries reject.
            statistic = self.backend.get_metric_statistics(
                metric.metric_name,
                namespace,
                dimensions,
                start_time,
                end_time,
                WINDOWS_STATISTICS_PERIOD,
                [Statistic.AVERAGE],
            )
            statistics.append(statistic)
            logger.info("Statistics for Metric: %s", metric.metric_name)
            for point in statistic.datapoints:
                logger.info("Average: %s", point.average)
        return statistics