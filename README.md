# cwvalidator

`cwvalidator` runs validation scenarios against a metrics and logs agent. A
scenario is described by a YAML file. A validator generates load (metrics or
log lines), waits for the collection period to pass, then checks the data the
monitoring service recorded and cleans up.

There are three validation types, chosen by `validate_type`:

- **feature** (`cwvalidator.feature.FeatureValidator`) writes the log lines the
  log validations expect and sends metrics through every configured receiver.
  It then checks that each metric exists, has exactly the configured sample
  count and, when `metric_value` is not zero, lies within ±10% of it; and that
  each log stream is non-empty, holds no duplicate events and has at least
  `log_lines` events containing `log_value` (for `log_source: WindowsEvents`,
  events must also contain `log_level`).
- **stress** (`cwvalidator.stress.StressValidator`) checks that the maximum of
  each metric is non-negative and no more than the known bound for the data
  rate and first receiver plus 30% (`cwvalidator.stress_bounds.upper_bound`),
  and that the sample count lies within `[metric_sample_count - 5,
  metric_sample_count]`. With `os_family: windows` it uses the Windows bound
  table and metric statistics instead of metric data queries.
- **performance** (`cwvalidator.performance.PerformanceValidator`) computes
  average, min, max, p99, population standard deviation and sampling period
  for each metric (`cwvalidator.stats.calculate_statistics`), converting
  byte-valued metrics to MB, and stores them in a results table, merged with
  any record already stored for the same commit hash and use case. Storing is
  retried with exponential back-off.

`cwvalidator.basic.BasicValidator` holds the shared metric and log checks.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Validation configuration

```yaml
receivers: ["statsd"]
test_case: statsd_stress
validate_type: stress
data_type: metrics
values_per_minute: "1000"
agent_collection_period: 300
os_family: linux
cloudwatch_agent_config: /tmp/agent_config.json
number_monitored_logs: 0
metric_namespace: CWAgent/Stress
metric_validation:
  - metric_name: procstat_cpu_usage
    metric_value: 0
    metric_sample_count: 300
    metric_dimension:
      - name: exe
        value: cloudwatch-agent
log_validation:
  - log_value: "hello"
    log_lines: 10
    log_stream: test.log
commit_hash: abc123
commit_date: "1690000000"
```

The supported receivers are `logs`, `statsd`, `collectd`, `system` and `emf`;
any other raises `cwvalidator.models.ValidationError`. A `values_per_minute`
or `commit_date` that is not an integer is read as 0.

```python
from cwvalidator.models import load_validate_config

config = load_validate_config("parameters.yml")
print(config.test_case, config.data_rate, config.agent_collection_period)
```

## Cloud access

Every call to the monitoring service and every load generator goes through an
object implementing `cwvalidator.models.CloudBackend`: instance details,
metric data queries, metric statistics, sample-count checks, log retrieval and
deletion, the results table (`get_item`, `replace_item`) and the load
generators (`start_log_write`, `start_sending_metrics`, `generate_logs`,
`generate_log_config`). Supply your own implementation:

```python
from cwvalidator.launcher import launch_validator, new_validator

launch_validator(config, backend)
```

`launch_validator` waits for the start of the next minute, generates load,
waits for the collection period and a further two minutes, then checks the
data and cleans up. `cwvalidator.cli.validate(config, backend)` retries it up
to five times, a minute apart. `cwvalidator.cli.prepare(config, backend)`
asks the backend to write an agent configuration monitoring
`number_monitored_logs` logs when `data_type` is `logs`.

## Command line

```
cwvalidator --validator-config parameters.yml
cwvalidator --validator-config parameters.yml --preparation-mode
```

Options may also be written with a single dash (`-validator-config`). `--role-arn`
is accepted but not used. The exit status is 0 on success and 1 on failure;
messages go through the standard `logging` module.

## What this package does not do

- It ships no `CloudBackend` implementation, so it does not talk to any cloud
  service or generate any load by itself. The `cwvalidator` command has no
  backend: it can load and check a configuration, and `--preparation-mode`
  succeeds for data types other than `logs`, but running a validation fails
  with "no cloud backend configured". Call `cwvalidator.cli.main(argv, backend)`
  from your own code to run with a backend.
- The named tests selected with `--test-name` (`restart`, `nvidia_gpu`,
  `acceptance`) are not available and make the command exit with status 1.