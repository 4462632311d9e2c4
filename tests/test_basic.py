from datetime import datetime, timedelta

import pytest

from cwvalidator.basic import BasicValidator, count_matching_events
from cwvalidator.cloudwatch import Dimension, MetricDataResult, MetricStatistics
from cwvalidator.models import (
    CloudBackend,
    LogValidation,
    MetricDimension,
    MetricValidation,
    MultiValidationError,
    ValidationError,
    ValidatorConfig,
)

START = datetime(2023, 1, 1, 12, 0)
END = datetime(2023, 1, 1, 12, 1)
INSTANCE = "i-example"


class FakeBackend(CloudBackend):
    def __init__(self, values=None, sample_ok=True, messages=None):
        self.values = values if values is not None else [100.0]
        self.sample_ok = sample_ok
        self.messages = messages if messages is not None else []
        self.calls = []

    def instance_id(self):
        return INSTANCE

    def image_id(self):
        return "ami-example"

    def instance_type(self):
        return "t3.micro"

    def get_metric_data(self, queries, start_time, end_time):
        self.calls.append(("get_metric_data", list(queries), start_time, end_time))
        if self.values is None:
            return []
        return [MetricDataResult(label=q.metric_name, values=list(self.values)) for q in queries]

    def get_metric_statistics(self, metric_name, namespace, dimensions, start_time,
                              end_time, period, statistics):
        return MetricStatistics(label=metric_name)

    def validate_sample_count(self, metric_name, namespace, dimensions, start_time,
                              end_time, lower_bound, upper_bound, period):
        self.calls.append(("validate_sample_count", metric_name, list(dimensions),
                           lower_bound, upper_bound, period))
        return self.sample_ok

    def fetch_log_messages(self, log_group, log_stream, start_time, end_time):
        self.calls.append(("fetch_log_messages", log_group, log_stream))
        return list(self.messages)

    def delete_log_group(self, log_group):
        self.calls.append(("delete_log_group", log_group))

    def get_item(self, table, index, key_names, key_values, packet):
        return dict(packet)

    def replace_item(self, table, item):
        self.calls.append(("replace_item", table))

    def start_log_write(self, config_path, duration, interval, rate):
        self.calls.append(("start_log_write", config_path, duration, interval, rate))

    def start_sending_metrics(self, receiver, duration, interval, rate, log_group, namespace):
        self.calls.append(("start_sending_metrics", receiver, duration, interval, rate,
                           log_group, namespace))

    def generate_logs(self, config_path, duration, interval, rate, log_validations):
        self.calls.append(("generate_logs", config_path))

    def generate_log_config(self, number_of_logs, config_path):
        self.calls.append(("generate_log_config", number_of_logs, config_path))


def make_config(**overrides):
    values = dict(
        receivers=["statsd"],
        data_type="metrics",
        values_per_minute="1000",
        collection_period_seconds=60,
        config_path="/tmp/agent.json",
        metric_namespace="TestNamespace",
    )
    values.update(overrides)
    return ValidatorConfig(**values)


def test_count_matching_events_default_source():
    messages = ["hello world", "other", "say hello"]
    assert count_matching_events(messages, "hello", "", "") == 2


def test_count_matching_events_windows_requires_level():
    messages = ["hello ERROR", "hello INFO", "bye ERROR"]
    assert count_matching_events(messages, "hello", "ERROR", "WindowsEvents") == 1
    assert count_matching_events(messages, "hello", "", "WindowsEvents") == 0


def test_generate_load_logs_writes_logs():
    backend = FakeBackend()
    BasicValidator(make_config(data_type="logs", values_per_minute="50"), backend).generate_load()
    assert backend.calls == [
        ("start_log_write", "/tmp/agent.json", timedelta(seconds=60), timedelta(minutes=1), 50)
    ]


def test_generate_load_metrics_sends_to_first_receiver():
    backend = FakeBackend()
    BasicValidator(make_config(receivers=["collectd", "statsd"]), backend).generate_load()
    assert backend.calls == [
        ("start_sending_metrics", "collectd", timedelta(seconds=60), timedelta(minutes=1),
         1000, INSTANCE, "TestNamespace")
    ]


def test_generate_load_without_receivers_fails():
    with pytest.raises(ValidationError):
        BasicValidator(make_config(receivers=[]), FakeBackend()).generate_load()


def test_cleanup_deletes_log_group_for_logs():
    backend = FakeBackend()
    BasicValidator(make_config(data_type="logs"), backend).cleanup()
    assert backend.calls == [("delete_log_group", INSTANCE)]


def test_cleanup_keeps_everything_for_metrics():
    backend = FakeBackend()
    BasicValidator(make_config(), backend).cleanup()
    assert backend.calls == []


def test_validate_metric_within_bound_builds_average_query():
    backend = FakeBackend(values=[105.0])
    dims = [Dimension("InstanceId", INSTANCE)]
    BasicValidator(make_config(), backend).validate_metric(
        "CPU_Usage", "TestNamespace", dims, 100.0, 60, START, END
    )
    query = backend.calls[0][1][0]
    assert query.query_id == "cpu_usage"
    assert query.stat == "Average"
    assert query.period == 60
    assert query.dimensions == tuple(dims)
    assert backend.calls[1] == ("validate_sample_count", "CPU_Usage", dims, 60, 60, 60)


def test_validate_metric_out_of_bound_raises():
    backend = FakeBackend(values=[120.0])
    with pytest.raises(ValidationError, match="is different from the actual value"):
        BasicValidator(make_config(), backend).validate_metric(
            "cpu", "TestNamespace", [], 100.0, 60, START, END
        )


def test_validate_metric_zero_expected_accepts_any_value():
    backend = FakeBackend(values=[12345.0])
    BasicValidator(make_config(), backend).validate_metric(
        "cpu", "TestNamespace", [], 0.0, 60, START, END
    )
    assert backend.calls[-1][0] == "validate_sample_count"


def test_validate_metric_no_values_raises_with_dimensions():
    backend = FakeBackend(values=[])
    dims = [Dimension("InstanceId", INSTANCE)]
    with pytest.raises(ValidationError, match="getting metric cpu failed") as info:
        BasicValidator(make_config(), backend).validate_metric(
            "cpu", "TestNamespace", dims, 1.0, 60, START, END
        )
    assert INSTANCE in str(info.value)


def test_validate_metric_bad_sample_count_raises():
    backend = FakeBackend(values=[100.0], sample_ok=False)
    with pytest.raises(ValidationError, match="sample count bound"):
        BasicValidator(make_config(), backend).validate_metric(
            "cpu", "TestNamespace", [], 100.0, 60, START, END
        )


def test_validate_logs_enough_events():
    backend = FakeBackend(messages=["line a", "line b", "other"])
    BasicValidator(make_config(), backend).validate_logs(
        "stream", "line", "", "", 2, START, END
    )
    assert backend.calls == [("fetch_log_messages", INSTANCE, "stream")]


def test_validate_logs_too_few_events():
    backend = FakeBackend(messages=["line a", "other"])
    with pytest.raises(ValidationError, match="less than the expected 2"):
        BasicValidator(make_config(), backend).validate_logs(
            "stream", "line", "", "", 2, START, END
        )


def test_validate_logs_empty_stream():
    with pytest.raises(ValidationError):
        BasicValidator(make_config(), FakeBackend(messages=[])).validate_logs(
            "stream", "line", "", "", 0, START, END
        )


def test_validate_logs_duplicates():
    backend = FakeBackend(messages=["line a", "line a"])
    with pytest.raises(ValidationError, match="duplicate"):
        BasicValidator(make_config(), backend).validate_logs(
            "stream", "line", "", "", 1, START, END
        )


def test_check_data_adds_instance_dimension_first():
    backend = FakeBackend(values=[10.0])
    config = make_config(metric_validation=[
        MetricValidation("cpu", (MetricDimension("cpu", "cpu-total"),), 10.0, 60)
    ])
    BasicValidator(config, backend).check_data(START, END)
    dims = backend.calls[1][2]
    assert dims == [Dimension("InstanceId", INSTANCE), Dimension("cpu", "cpu-total")]


def test_check_data_collects_all_failures():
    backend = FakeBackend(values=[500.0], messages=["nothing"])
    config = make_config(
        metric_validation=[MetricValidation("cpu", (), 10.0, 60)],
        log_validation=[LogValidation("line", 1, "stream", "", "")],
    )
    with pytest.raises(MultiValidationError) as info:
        BasicValidator(config, backend).check_data(START, END)
    assert len(info.value.errors) == 2


def test_check_data_single_failure_raised_directly():
    backend = FakeBackend(values=[500.0])
    config = make_config(metric_validation=[MetricValidation("cpu", (), 10.0, 60)])
    with pytest.raises(ValidationError) as info:
        BasicValidator(config, backend).check_data(START, END)
    assert not isinstance(info.value, MultiValidationError)