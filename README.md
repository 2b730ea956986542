# loadrunner

A library for running batches of load tests in concurrent queues and
reporting the results as xUnit (JUnit) XML, plus two commands for preparing
and cleaning up the container images those tests use.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## What is in the package

- `loadrunner.configs` – `LoadTest` and `LoadTestStatus`, and
  `decode_documents`, `decode_from_file` and `decode_from_files`, which read
  LoadTest configurations from YAML documents separated by `---` lines.
  Decoding stops at the first empty document; bad input raises `ConfigError`.
- `loadrunner.flags` – `FileNames` and `ConcurrencyLevels`, accumulators for
  option values, each with an `add()` method that raises `ValueError` on bad
  input.
- `loadrunner.queues` – `queue_selector_from_annotation`, `create_queue_map`,
  `validate_concurrency_levels`, `count_configs` and `log_prefix_fmt`.
- `loadrunner.properties` – `Pod`, `LogInfo` and the helpers that turn pods
  and saved logs into test case properties (`pod_name_properties`,
  `pod_log_properties`, and their key builders).
- `loadrunner.logsaver` – `save_log`, `save_all_logs` and `log_file_name`;
  empty logs are skipped, failures raise `LogSaveError`, which carries the
  logs saved so far.
- `loadrunner.reporter` – `Reporter`, `TestSuiteReporter`,
  `TestCaseReporter` and `test_case_name_from_annotations`.
- `loadrunner.runner` – `Runner`, the `LoadTestGetter` and `PodsGetter`
  protocols, `after_interval_function` and `status_string`.
- `loadrunner.xunit` – the report model (`Report`, `TestSuite`, `TestCase`,
  `Error`, `Property`, `ReportWritingOptions`), `dashify` and `output_path`.

## Reading configurations and forming queues

```python
from loadrunner.configs import decode_from_files
from loadrunner.flags import ConcurrencyLevels, FileNames
from loadrunner.queues import (
    create_queue_map,
    log_prefix_fmt,
    queue_selector_from_annotation,
    validate_concurrency_levels,
)

files = FileNames()
files.add("tests.yaml")

levels = ConcurrencyLevels()
levels.add("pool-a:2")
levels.add("pool-b:1")

configs = decode_from_files(files)
queues = create_queue_map(configs, queue_selector_from_annotation("pool"))
validate_concurrency_levels(queues, levels)  # raises ValueError if a level is missing
prefix_fmt = log_prefix_fmt(queues)
```

A concurrency level is written as `[<queue name>:]<level>` and must be a
positive integer. A level without a queue name applies to the single global
queue and cannot be combined with named queues.

## Running tests

`Runner` needs two objects you provide:

- a `LoadTestGetter` with `create(config)`, `get(name)` and `delete(name)`,
  where `create` and `get` return a `LoadTest` whose `status` reflects the
  cluster;
- a `PodsGetter` with `test_pods(load_test)`, returning a list of `Pod`, and
  `get_logs(namespace, pod_name, container_name)`, returning the log as
  bytes or text.

```python
from datetime import datetime

from loadrunner.reporter import Reporter, test_case_name_from_annotations
from loadrunner.runner import Runner, after_interval_function
from loadrunner.xunit import Report, ReportWritingOptions, output_path

runner = Runner(
    load_test_getter,
    pods_getter,
    after_interval_function(20),
    retries=2,
    delete_successful_tests=False,
    log_url_prefix="",
)

report = Report()
reporter = Reporter(report)
reporter.set_start_time(datetime.now())

path_for = output_path("results/report.xml")
for queue_name, queue_configs in queues.items():
    suite = reporter.new_test_suite_reporter(
        queue_name, prefix_fmt, test_case_name_from_annotations("scenario")
    )
    suite.set_start_time(datetime.now())
    runner.run(queue_configs, suite, levels[queue_name], "results/logs")
    suite.set_end_time(datetime.now())

reporter.set_end_time(datetime.now())
report.finalize()

for suite_name, suite_report in report.split().items():
    with open(path_for(suite_name), "wb") as stream:
        suite_report.write_to_stream(
            stream, ReportWritingOptions(indent_size=2, max_retries=3)
        )
```

`Runner.run` blocks until every test of the queue is done, running at most
the given number of tests at once, each in its own thread. For each test,
creation and polling are retried up to `retries` times, waiting one interval
between attempts. Running tests are polled every interval, tests that have
not started every two intervals. When a test reaches `Succeeded` or
`Errored`, the logs of its pods are saved to the output directory and the
test name, pod names and log URLs are recorded as properties; any state
other than `Succeeded` is recorded as an error. With
`delete_successful_tests`, successful tests are deleted afterwards.

`output_path(template)` returns a function that places each queue's report
in a directory named after the queue, with the queue name prefixed to the
file name. The directories must exist before the files are opened.

## Preparing worker images

```
prepare-prebuilt-workers -p registry.example.com/project -t my-tag \
    -r containers/pre_built_workers -l cxx:master -l java:grpc/grpc-java:v1.53.0
```

Options:

- `-p` image registry (or name prefix) for the built images;
- `-t` tag for the images, at most 128 characters;
- `-r` root directory holding one Dockerfile directory per language;
- `-l` `language:gitref` or `language:repository:gitref`, repeatable;
- `--build-only` build the images without pushing them.

Language names `c++`, `node_purejs`, `php7_protobuf_c` and `python_asyncio`
are mapped to the image names `cxx`, `node`, `php7` and `python`. Images are
built in parallel with `docker build`, each under a 30-minute `timeout`, and
pushed with `docker push`. The command exits with status 1 if an option is
missing or invalid, or if any build or push fails.

## Deleting worker images

```
delete-prebuilt-workers -p registry.example.com/project -t my-tag
```

Every repository listed by `gcloud container images list` under the prefix
is checked for an image with the tag. An image that carries other tags as
well is only untagged; otherwise it is deleted. Failures of individual
`gcloud` calls are logged and processing continues.

## What the package does not do

The package has no Kubernetes client and no command that runs load tests.
To run tests, supply your own `LoadTestGetter` and `PodsGetter` that talk
to your cluster, and drive `Runner` from Python as shown above.