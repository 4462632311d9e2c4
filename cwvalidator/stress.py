"""Validator that checks the agent's resource usage stays within stress bounds."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from cwvalidator.basic import BasicValidator, _raise_collected
from cwvalidator.cloudwatch import (
    Dimension,
    build_dimensions,
    build_metric_query,
    format_dimensions,
)
from cwvalidator.models import Statistic, ValidationError
from cwvalidator.stress_bounds import upper_bound

logger = logging.getLogger(__name__)

SAMPLE_COUNT_TOLERANCE = 5


class StressValidator(BasicValidator):
    """Checks the maximum of each metric against the expected bound plus 30%."""

    def check_data(self, start_time: datetime, end_time: datetime) -> None:
        errors: list[BaseException] = []
        instance_id = self.backend.instance_id()
        namespace = self.config.metric_namespace
        check = (
            self.validate_stress_metric_windows
            if self.config.os_family == "windows"
            else self.validate_stress_metric
        )
        for metric in self.config.metric_validation:
            dimensions = build_dimensions(instance_id, metric.metric_dimension)
            try:
                check(
                    metric.metric_name,
                    namespace,
                    dimensions,
                    metric.metric_sample_count,
                    start_time,
                    end_time,
                )
            except ValidationError as err:
                errors.append(err)
        _raise_collected(errors)

    def _period(self) -> int:
        return int(self.config.agent_collection_period.total_seconds())

    def _check_value_and_samples(
        self,
        metric_name: str,
        namespace: str,
        dimensions: Sequence[Dimension],
        metric_value: float,
        bound: float,
        metric_sample_count: int,
        start_time: datetime,
        end_time: datetime,
    ) -> None:
        logger.info(
            "Metric %s within the namespace %s has value of %f and the upper bound is %f",
            metric_name,
            namespace,
            metric_value,
            bound,
        )
        if metric_value < 0 or metric_value > bound:
            raise ValidationError(
                f"metric {metric_name} with value {metric_value:f} is larger than "
                f"{bound:f} limit"
            )
        lower = metric_sample_count - SAMPLE_COUNT_TOLERANCE
        if not self.backend.validate_sample_count(
            metric_name,
            namespace,
            dimensions,
            start_time,
            end_time,
            lower,
            metric_sample_count,
            self._period(),
        ):
            raise ValidationError(
                f"metric {metric_name} is not within sample count bound "
                f"[ {lower}, {metric_sample_count}]"
            )

    def validate_stress_metric(
        self,
        metric_name: str,
        namespace: str,
        dimensions: Sequence[Dimension],
        metric_sample_count: int,
        start_time: datetime,
        end_time: datetime,
    ) -> None:
        """Check the metric's maximum over the period via a metric data query."""
        receiver = self._first_receiver()
        query = build_metric_query(
            metric_name, namespace, dimensions, self._period(), Statistic.MAXIMUM
        )
        logger.info(
            "Start to collect and validate metric %s with the namespace %s, "
            "start time %s and end time %s",
            metric_name,
            namespace,
            start_time,
            end_time,
        )
        results = self.backend.get_metric_data([query], start_time, end_time)
        if not results or not results[0].values:
            raise ValidationError(
                f"getting metric {metric_name} failed with the namespace {namespace} "
                f"and dimension {format_dimensions(dimensions)}"
            )
        bound = upper_bound(self.config.data_rate, receiver, metric_name)
        self._check_value_and_samples(
            metric_name,
            namespace,
            dimensions,
            results[0].values[0],
            bound,
            metric_sample_count,
            start_time,
            end_time,
        )

    def validate_stress_metric_windows(
        self,
        metric_name: str,
        namespace: str,
        dimensions: Sequence[Dimension],
        metric_sample_count: int,
        start_time: datetime,
        end_time: datetime,
    ) -> None:
        """Check the metric's maximum via metric statistics (names may hold spaces)."""
        receiver = self._first_receiver()
        logger.info(
            "Start to collect and validate metric %s with the namespace %s, "
            "start time %s and end time %s",
            metric_name,
            namespace,
            start_time,
            end_time,
        )
        statistics = self.backend.get_metric_statistics(
            metric_name,
            namespace,
            dimensions,
            start_time,
            end_time,
            self._period(),
            [Statistic.MAXIMUM],
        )
        if not statistics.datapoints or statistics.datapoints[0].maximum is None:
            raise ValidationError(
                f"getting metric {metric_name} failed with the namespace {namespace} "
                f"and dimension {format_dimensions(dimensions)}"
            )
        bound = upper_bound(self.config.data_rate, receiver, metric_name, windows=True)
        self._check_value_and_samples(
            metric_name,
            namespace,
            dimensions,
            statistics.datapoints[0].maximum,
            bound,
            metric_sample_count,
            start_time,
            end_time,
        )