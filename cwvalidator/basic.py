"""Validator that sends load and checks metric values and log events."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from cwvalidator.cloudwatch import (
    Dimension,
    build_dimensions,
    build_metric_query,
    format_dimensions,
)
from cwvalidator.models import (
    CloudBackend,
    MultiValidationError,
    Statistic,
    ValidationError,
    Validator,
    ValidatorConfig,
)

logger = logging.getLogger(__name__)

METRIC_ERROR_BOUND = 0.1
METRIC_SENDING_INTERVAL = timedelta(minutes=1)
WINDOWS_EVENTS_SOURCE = "WindowsEvents"


def _raise_collected(errors: Sequence[BaseException]) -> None:
    """Raise nothing, the single error, or all errors together."""
    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise MultiValidationError(errors)


def count_matching_events(
    messages: Iterable[str], log_line: str, log_level: str, log_source: str
) -> int:
    """Count the messages holding the expected line (and level, for Windows events)."""
    if log_source == WINDOWS_EVENTS_SOURCE:
        return sum(
            1
            for message in messages
            if log_level != "" and log_line in message and log_level in message
        )
    return sum(1 for message in messages if log_line in message)


class BasicValidator(Validator):
    """Sends metrics or logs to the agent and checks what reached CloudWatch."""

    def __init__(self, config: ValidatorConfig, backend: CloudBackend):
        self.config = config
        self.backend = backend

    def _first_receiver(self) -> str:
        if not self.config.receivers:
            raise ValidationError("no receivers configured")
        return self.config.receivers[0]

    def generate_load(self) -> None:
        config = self.config
        receiver = self._first_receiver()
        if config.data_type == "logs":
            self.backend.start_log_write(
                config.config_path,
                config.agent_collection_period,
                METRIC_SENDING_INTERVAL,
                config.data_rate,
            )
            return
        self.backend.start_sending_metrics(
            receiver,
            config.agent_collection_period,
            METRIC_SENDING_INTERVAL,
            config.data_rate,
            self.backend.instance_id(),
            config.metric_namespace,
        )

    def check_data(self, start_time: datetime, end_time: datetime) -> None:
        errors: list[BaseException] = []
        instance_id = self.backend.instance_id()
        namespace = self.config.metric_namespace

        for metric in self.config.metric_validation:
            dimensions = build_dimensions(instance_id, metric.metric_dimension)
            try:
                self.validate_metric(
                    metric.metric_name,
                    namespace,
                    dimensions,
                    metric.metric_value,
                    metric.metric_sample_count,
                    start_time,
                    end_time,
                )
            except ValidationError as err:
                errors.append(err)

        for log_validation in self.config.log_validation:
            try:
                self.validate_logs(
                    log_validation.log_stream,
                    log_validation.log_value,
                    log_validation.log_level,
                    log_validation.log_source,
                    log_validation.log_lines,
                    start_time,
                    end_time,
                )
            except ValidationError as err:
                errors.append(err)

        _raise_collected(errors)

    def cleanup(self) -> None:
        if self.config.data_type == "logs":
            self.backend.delete_log_group(self.backend.instance_id())

    def validate_logs(
        self,
        log_stream: str,
        log_line: str,
        log_level: str,
        log_source: str,
        expected_minimum_event_count: int,
        start_time: datetime,
        end_time: datetime,
    ) -> None:
        """Check the stream holds enough distinct events containing the line."""
        log_group = self.backend.instance_id()
        logger.info(
            "Start to validate that substring '%s' has at least %d log event(s) within "
            "log group %s, log stream %s, between %s and %s",
            log_line,
            expected_minimum_event_count,
            log_group,
            log_stream,
            start_time,
            end_time,
        )
        messages = self.backend.fetch_log_messages(
            log_group, log_stream, start_time, end_time
        )
        if not messages:
            raise ValidationError(f"no log events in {log_group}/{log_stream}")

        seen: set[str] = set()
        for message in messages:
            if message in seen:
                raise ValidationError(
                    f"duplicate log event in {log_group}/{log_stream}: {message}"
                )
            seen.add(message)

        actual = count_matching_events(messages, log_line, log_level, log_source)
        if actual < expected_minimum_event_count:
            raise ValidationError(
                f'log event count for "{log_line}" in {log_group}/{log_stream} between '
                f"{start_time} and {end_time} is {actual} which is less than the "
                f"expected {expected_minimum_event_count}"
            )

    def validate_metric(
        self,
        metric_name: str,
        namespace: str,
        dimensions: Sequence[Dimension],
        metric_value: float,
        metric_sample_count: int,
        start_time: datetime,
        end_time: datetime,
    ) -> None:
        """Check the metric exists, has the sample count and lies within ±10%."""
        period = int(self.config.agent_collection_period.total_seconds())
        query = build_metric_query(
            metric_name, namespace, dimensions, period, Statistic.AVERAGE
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

        if not self.backend.validate_sample_count(
            metric_name,
            namespace,
            dimensions,
            start_time,
            end_time,
            metric_sample_count,
            metric_sample_count,
            period,
        ):
            raise ValidationError(
                f"metric {metric_name} is not within sample count bound "
                f"[ {metric_sample_count}, {metric_sample_count}]"
            )

        actual = results[0].values[0]
        upper = metric_value * (1 + METRIC_ERROR_BOUND)
        lower = metric_value * (1 - METRIC_ERROR_BOUND)
        if metric_value != 0.0 and (actual < lower or actual > upper):
            raise ValidationError(
                f"metric {metric_name} value {metric_value:f} is different from the "
                f"actual value {actual:f}"
            )