"""Validation configuration, validator interface and cloud backend interface."""

from __future__ import annotations

import logging
import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from cwvalidator.cloudwatch import (
        Dimension,
        MetricDataQuery,
        MetricDataResult,
        MetricStatistics,
    )

logger = logging.getLogger(__name__)

SUPPORTED_RECEIVERS: tuple[str, ...] = ("logs", "statsd", "collectd", "system", "emf")

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class Statistic(str, Enum):
    """CloudWatch statistics used by the validators."""

    MAXIMUM = "Maximum"
    AVERAGE = "Average"


class ValidationError(Exception):
    """Raised when a configuration or a validation check fails."""


class MultiValidationError(ValidationError):
    """Several validation failures collected together."""

    def __init__(self, errors: Iterable[BaseException]):
        self.errors = list(errors)
        super().__init__("; ".join(str(error) for error in self.errors))


@dataclass(frozen=True)
class MetricDimension:
    name: str = ""
    value: str = ""


@dataclass(frozen=True)
class MetricValidation:
    metric_name: str = ""
    metric_dimension: tuple[MetricDimension, ...] = ()
    metric_value: float = 0.0
    metric_sample_count: int = 0


@dataclass(frozen=True)
class LogValidation:
    log_value: str = ""
    log_lines: int = 0
    log_stream: str = ""
    log_level: str = ""
    log_source: str = ""


def _parse_int64(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def _as_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValidationError(f"field {key!r} must be a scalar, got {type(value).__name__}")


def _as_int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"field {key!r} must be an integer, got {value!r}")
    return value


def _as_float(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"field {key!r} must be a number, got {value!r}")
    return float(value)


def _as_list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"field {key!r} must be a list, got {value!r}")
    return value


def _as_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"{what} must be a mapping, got {value!r}")
    return value


def _metric_validation(item: Any) -> MetricValidation:
    data = _as_mapping(item, "metric_validation entry")
    dimensions = tuple(
        MetricDimension(name=_as_str(dim, "name"), value=_as_str(dim, "value"))
        for dim in (
            _as_mapping(raw, "metric_dimension entry")
            for raw in _as_list(data, "metric_dimension")
        )
    )
    return MetricValidation(
        metric_name=_as_str(data, "metric_name"),
        metric_dimension=dimensions,
        metric_value=_as_float(data, "metric_value"),
        metric_sample_count=_as_int(data, "metric_sample_count"),
    )


def _log_validation(item: Any) -> LogValidation:
    data = _as_mapping(item, "log_validation entry")
    return LogValidation(
        log_value=_as_str(data, "log_value"),
        log_lines=_as_int(data, "log_lines"),
        log_stream=_as_str(data, "log_stream"),
        log_level=_as_str(data, "log_level"),
        log_source=_as_str(data, "log_source"),
    )


@dataclass
class ValidatorConfig:
    """Test description read from a validator YAML file."""

    receivers: list[str] = field(default_factory=list)
    test_case: str = ""
    validate_type: str = ""
    data_type: str = ""
    number_monitored_logs: int = 0
    values_per_minute: str = ""
    collection_period_seconds: int = 0
    os_family: str = ""
    config_path: str = ""
    metric_namespace: str = ""
    metric_validation: list[MetricValidation] = field(default_factory=list)
    log_validation: list[LogValidation] = field(default_factory=list)
    commit_hash: str = ""
    commit_date: str = ""

    @classmethod
    def from_mapping(cls, data: Any) -> ValidatorConfig:
        """Build a configuration from a decoded YAML document."""
        data = _as_mapping(data, "validator configuration")
        return cls(
            receivers=[_as_str({"r": r}, "r") for r in _as_list(data, "receivers")],
            test_case=_as_str(data, "test_case"),
            validate_type=_as_str(data, "validate_type"),
            data_type=_as_str(data, "data_type"),
            number_monitored_logs=_as_int(data, "number_monitored_logs"),
            values_per_minute=_as_str(data, "values_per_minute"),
            collection_period_seconds=_as_int(data, "agent_collection_period"),
            os_family=_as_str(data, "os_family"),
            config_path=_as_str(data, "cloudwatch_agent_config"),
            metric_namespace=_as_str(data, "metric_namespace"),
            metric_validation=[
                _metric_validation(item) for item in _as_list(data, "metric_validation")
            ],
            log_validation=[
                _log_validation(item) for item in _as_list(data, "log_validation")
            ],
            commit_hash=_as_str(data, "commit_hash"),
            commit_date=_as_str(data, "commit_date"),
        )

    @property
    def data_rate(self) -> int:
        """Metrics or log lines per minute; 0 when not a valid integer."""
        parsed = _parse_int64(self.values_per_minute)
        return 0 if parsed is None else parsed

    @property
    def agent_collection_period(self) -> timedelta:
        """How long the agent runs and collects."""
        return timedelta(seconds=self.collection_period_seconds)

    @property
    def commit_information(self) -> tuple[str, int]:
        """Commit hash and commit date; the date is 0 when not an integer."""
        parsed = _parse_int64(self.commit_date)
        return self.commit_hash, 0 if parsed is None else parsed

    def unique_id(self) -> str:
        """A fresh random identifier."""
        return str(uuid.uuid4())


def validate_validator_config(config: ValidatorConfig) -> None:
    """Raise ValidationError if a receiver is not supported."""
    for receiver in config.receivers:
        if receiver not in SUPPORTED_RECEIVERS:
            supported = "[" + " ".join(SUPPORTED_RECEIVERS) + "]"
            raise ValidationError(
                f"only support {supported}, the validator does not support {receiver}"
            )


def load_validate_config(config_path: str | Path) -> ValidatorConfig:
    """Read, parse and check a validator YAML file."""
    try:
        text = Path(config_path).read_text(encoding="utf-8")
    except OSError as err:
        raise ValidationError(f"{err} with file {config_path}") from err
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ValidationError(str(err)) from err
    config = ValidatorConfig.from_mapping(document)
    logger.info("Parameters validation for %s", config)
    validate_validator_config(config)
    return config


class Validator(ABC):
    """A validation run: generate load, check the results, clean up."""

    @abstractmethod
    def generate_load(self) -> None:
        """Send the metrics, logs or traces load to the agent."""

    @abstractmethod
    def check_data(self, start_time: datetime, end_time: datetime) -> None:
        """Check the collected data; raise ValidationError on failure."""

    @abstractmethod
    def cleanup(self) -> None:
        """Remove the resources created by the validator."""


class CloudBackend(ABC):
    """The cloud services and load generators the validators rely on."""

    @abstractmethod
    def instance_id(self) -> str:
        """Identifier of the instance under test."""

    @abstractmethod
    def image_id(self) -> str:
        """Machine image of the instance under test."""

    @abstractmethod
    def instance_type(self) -> str:
        """Type of the instance under test."""

    @abstractmethod
    def get_metric_data(
        self,
        queries: Sequence[MetricDataQuery],
        start_time: datetime,
        end_time: datetime,
    ) -> list[MetricDataResult]:
        """Run metric data queries over a time range."""

    @abstractmethod
    def get_metric_statistics(
        self,
        metric_name: str,
        namespace: str,
        dimensions: Sequence[Dimension],
        start_time: datetime,
        end_time: datetime,
        period: int,
        statistics: Sequence[Statistic],
    ) -> MetricStatistics:
        """Fetch statistics for one metric."""

    @abstractmethod
    def validate_sample_count(
        self,
        metric_name: str,
        namespace: str,
        dimensions: Sequence[Dimension],
        start_time: datetime,
        end_time: datetime,
        lower_bound: int,
        upper_bound: int,
        period: int,
    ) -> bool:
        """Whether the metric's sample count lies within the bounds."""

    @abstractmethod
    def fetch_log_messages(
        self,
        log_group: str,
        log_stream: str,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> list[str]:
        """Messages of the log events in a stream within a time range."""

    @abstractmethod
    def delete_log_group(self, log_group: str) -> None:
        """Delete a log group."""

    @abstractmethod
    def get_item(
        self,
        table: str,
        index: str,
        key_names: Sequence[str],
        key_values: Sequence[str],
        packet: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Return the stored item matching the keys, or the packet if none."""

    @abstractmethod
    def replace_item(self, table: str, item: Mapping[str, Any]) -> None:
        """Store an item, replacing any existing one."""

    @abstractmethod
    def start_log_write(
        self, config_path: str, duration: timedelta, interval: timedelta, rate: int
    ) -> None:
        """Write log lines to the files the agent monitors."""

    @abstractmethod
    def start_sending_metrics(
        self,
        receiver: str,
        duration: timedelta,
        interval: timedelta,
        rate: int,
        log_group: str,
        namespace: str,
    ) -> None:
        """Send metrics to the agent through a receiver."""

    @abstractmethod
    def generate_logs(
        self,
        config_path: str,
        duration: timedelta,
        interval: timedelta,
        rate: int,
        log_validations: Sequence[LogValidation],
    ) -> None:
        """Write the log lines that the log validations expect."""

    @abstractmethod
    def generate_log_config(self, number_of_logs: int, config_path: str) -> None:
        """Write an agent configuration monitoring the given number of logs."""