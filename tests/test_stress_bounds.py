import pytest

from cwvalidator.models import ValidationError
from cwvalidator.stress_bounds import (
    LINUX_BOUNDS,
    STRESS_METRIC_ERROR_BOUND,
    WINDOWS_BOUNDS,
    MissingBoundError,
    upper_bound,
)


def _expected(bound):
    return bound * (1 + STRESS_METRIC_ERROR_BOUND)


def test_error_bound_is_thirty_percent():
    assert upper_bound("1000", "statsd", "procstat_cpu_usage") == pytest.approx(32.5)


def test_linux_statsd_memory_bound():
    result = upper_bound("1000", "statsd", "procstat_memory_rss", False)
    assert result / (1 + STRESS_METRIC_ERROR_BOUND) == pytest.approx(82000000)


def test_linux_logs_vms_bound_at_high_rate():
    result = upper_bound("50000", "logs", "procstat_memory_vms")
    assert result / (1 + STRESS_METRIC_ERROR_BOUND) == pytest.approx(1500000000)


def test_windows_bytes_sent_bound():
    result = upper_bound("10000", "logs", "Bytes_Sent_Per_Sec", True)
    assert result / (1 + STRESS_METRIC_ERROR_BOUND) == pytest.approx(6820000)


def test_swap_bound_is_zero():
    assert upper_bound("5000", "collectd", "procstat_memory_swap") == 0.0


def test_integer_and_string_rates_agree():
    assert upper_bound(10000, "emf", "net_bytes_sent") == upper_bound(
        "10000", "emf", "net_bytes_sent"
    )


def test_every_linux_bound_is_scaled():
    for rate, plugins in LINUX_BOUNDS.items():
        for receiver, metrics in plugins.items():
            for name, bound in metrics.items():
                assert upper_bound(rate, receiver, name) == pytest.approx(_expected(bound))
                assert upper_bound(rate, receiver, name) >= bound


def test_every_windows_bound_is_scaled():
    for rate, plugins in WINDOWS_BOUNDS.items():
        for receiver, metrics in plugins.items():
            for name, bound in metrics.items():
                assert upper_bound(rate, receiver, name, True) == pytest.approx(
                    _expected(bound)
                )


@pytest.mark.parametrize("rate", ["1000", "5000", "10000", "50000"])
def test_tables_cover_same_rates(rate):
    assert upper_bound(rate, "system", "procstat_cpu_usage") == pytest.approx(19.5)
    assert upper_bound(rate, "system", "procstat cpu_usage", True) == pytest.approx(19.5)


def test_unknown_data_rate_reports_plugin():
    with pytest.raises(MissingBoundError, match="plugin statsd does not have data rate"):
        upper_bound("7", "statsd", "procstat_cpu_usage")


def test_unknown_receiver_reports_plugin():
    with pytest.raises(MissingBoundError, match="plugin prometheus does not have data rate"):
        upper_bound("1000", "prometheus", "procstat_cpu_usage")


def test_windows_has_no_statsd_bounds():
    with pytest.raises(MissingBoundError, match="plugin statsd does not have data rate"):
        upper_bound("1000", "statsd", "procstat cpu_usage", True)


def test_unknown_linux_metric_names_receiver():
    with pytest.raises(MissingBoundError, match="metric logs does not have bound"):
        upper_bound("1000", "logs", "no_such_metric")


def test_unknown_windows_metric_names_metric():
    with pytest.raises(MissingBoundError, match="metric no_such_metric does not have bound"):
        upper_bound("1000", "logs", "no_such_metric", True)


def test_linux_names_are_not_windows_names():
    with pytest.raises(MissingBoundError):
        upper_bound("1000", "system", "procstat_cpu_usage", True)


def test_missing_bound_is_a_validation_error():
    with pytest.raises(ValidationError):
        upper_bound("1000", "unknown", "procstat_cpu_usage")