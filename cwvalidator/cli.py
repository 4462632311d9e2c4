"""Command line entry point: prepare resources or run a validation with retries."""

from __future__ import annotations

import argparse
import logging
import time
from collections.abc import Callable, Sequence
from datetime import timedelta

from cwvalidator.launcher import launch_validator
from cwvalidator.models import (
    CloudBackend,
    ValidationError,
    ValidatorConfig,
    load_validate_config,
)

logger = logging.getLogger(__name__)

STANDARD_RETRIES = 5
RETRY_WAIT = timedelta(seconds=60)
# Tests that run directly by name rather than from a configuration file.
NAMED_TESTS = frozenset({"restart", "nvidia_gpu", "acceptance"})


def validate(
    config: ValidatorConfig,
    backend: CloudBackend,
    retries: int = STANDARD_RETRIES,
    sleep: Callable[[float], None] | None = None,
) -> None:
    """Run the validation, retrying after a minute; raise after the last failure."""
    sleep = time.sleep if sleep is None else sleep
    last_error: BaseException | None = None
    for _ in range(retries):
        try:
            launch_validator(config, backend, sleep)
        except Exception as err:
            last_error = err
            sleep(RETRY_WAIT.total_seconds())
            logger.info(
                "test case: %s, validate type: %s, error: %s",
                config.test_case,
                config.validate_type,
                err,
            )
            continue
        logger.info(
            "Test case: %s, validate type: %s has been successfully validated",
            config.test_case,
            config.validate_type,
        )
        return
    raise ValidationError(
        f"test case: {config.test_case}, validate type: {config.validate_type}, "
        f"error: {last_error}"
    )


def prepare(config: ValidatorConfig, backend: CloudBackend | None) -> None:
    """Set up what the validation needs, such as the agent's log configuration."""
    if config.data_type == "logs":
        if backend is None:
            raise ValidationError("no cloud backend configured")
        backend.generate_log_config(config.number_monitored_logs, config.config_path)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cwvalidator", allow_abbrev=False)
    parser.add_argument(
        "-validator-config", "--validator-config", dest="validator_config", default="",
        help="A yaml depicts test information",
    )
    parser.add_argument(
        "-preparation-mode", "--preparation-mode", dest="preparation_mode",
        action="store_true",
        help="Prepare all the resources for the validation (e.g set up config)",
    )
    parser.add_argument(
        "-test-name", "--test-name", dest="test_name", default="",
        help="Test name to execute",
    )
    parser.add_argument(
        "-role-arn", "--role-arn", dest="role_arn", default="",
        help="Arn for assume IAM role if any",
    )
    return parser


def main(argv: Sequence[str] | None = None, backend: CloudBackend | None = None) -> int:
    """Run the validator; return the process exit status."""
    args = _parser().parse_args(argv)
    started = time.monotonic()

    if not args.validator_config and args.test_name:
        name = args.test_name.split("/")[-1]
        if name in NAMED_TESTS:
            logger.error(
                "Validator failed with %s: test %s is not available", args.test_name, name
            )
            return 1
    else:
        try:
            config = load_validate_config(args.validator_config)
        except ValidationError as err:
            logger.error("Failed to create validation config : %s", err)
            return 1

        if args.preparation_mode:
            try:
                prepare(config, backend)
            except Exception as err:
                logger.error("Prepare for validation failed: %s", err)
                return 1
            return 0

        if backend is None:
            logger.error("Failed to validate: no cloud backend configured")
            return 1
        try:
            validate(config, backend)
        except Exception as err:
            logger.error("Failed to validate: %s", err)
            return 1

    minutes = (time.monotonic() - started) / 60
    logger.info("Finish validation in %s minutes", minutes)
    return 0