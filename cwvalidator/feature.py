"""Validator that writes the expected logs and sends metrics for every receiver."""

from __future__ import annotations

from cwvalidator.basic import METRIC_SENDING_INTERVAL, BasicValidator, _raise_collected


class FeatureValidator(BasicValidator):
    """Exercises every configured receiver together with the expected logs."""

    def generate_load(self) -> None:
        config = self.config
        errors: list[BaseException] = []
        log_group = self.backend.instance_id()

        try:
            self.backend.generate_logs(
                config.config_path,
                config.agent_collection_period,
                METRIC_SENDING_INTERVAL,
                config.data_rate,
                config.log_validation,
            )
        except Exception as err:  # collected and re-raised together below
            errors.append(err)

        for receiver in config.receivers:
            try:
                self.backend.start_sending_metrics(
                    receiver,
                    config.agent_collection_period,
                    METRIC_SENDING_INTERVAL,
                    config.data_rate,
                    log_group,
                    config.metric_namespace,
                )
            except Exception as err:  # collected and re-raised together below
                errors.append(err)

        _raise_collected(errors)