"""Choosing a validator for a configuration and running it end to end."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from cwvalidator.feature import FeatureValidator
from cwvalidator.models import CloudBackend, ValidationError, Validator, ValidatorConfig
from cwvalidator.performance import PerformanceValidator
from cwvalidator.stress import StressValidator

logger = logging.getLogger(__name__)

PROCESSING_WAIT = timedelta(minutes=2)

_VALIDATORS: dict[str, type[Validator]] = {
    "performance": PerformanceValidator,
    "feature": FeatureValidator,
    "stress": StressValidator,
}


def new_validator(config: ValidatorConfig, backend: CloudBackend) -> Validator:
    """The validator matching the configuration's validate type."""
    cls = _VALIDATORS.get(config.validate_type)
    if cls is None:
        raise ValidationError(
            f"unknown validation type {config.validate_type} provided by test case "
            f"{config.test_case}"
        )
    return cls(config, backend)


def launch_validator(
    config: ValidatorConfig,
    backend: CloudBackend,
    sleep: Callable[[float], None] | None = None,
) -> None:
    """Wait for the next minute, generate load, wait, check the data and clean up."""
    sleep = time.sleep if sleep is None else sleep
    period = config.agent_collection_period
    now = datetime.now(timezone.utc)
    start_time = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    end_time = start_time + period
    wait = max(0.0, (start_time - datetime.now(timezone.utc)).total_seconds())

    validator = new_validator(config, backend)

    logger.info(
        "Start to sleep %f s for the metric to be available in the beginning of next minute",
        wait,
    )
    sleep(wait)

    logger.info(
        "Start to generate load in %f s for the agent to collect and send all the "
        "metrics to CloudWatch within the datapoint period",
        period.total_seconds(),
    )
    validator.generate_load()

    sleep(period.total_seconds())
    logger.info("Start to sleep 120s for CloudWatch to process all the metrics")
    sleep(PROCESSING_WAIT.total_seconds())

    validator.check_data(start_time, end_time)
    validator.cleanup()