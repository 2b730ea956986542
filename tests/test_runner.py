import threading
import time
from unittest import mock

import pytest

from loadrunner.configs import LoadTest, LoadTestStatus
from loadrunner.properties import Pod
from loadrunner.reporter import Reporter
from loadrunner.runner import Runner, after_interval_function, status_string
from loadrunner.xunit import Report


class FakeLoadTests:
    def __init__(self, states=None, create_failures=0, get_failures=0):
        self.states = list(states or [LoadTestStatus(state="Succeeded")])
        self.create_failures = create_failures
        self.get_failures = get_failures
        self.create_calls = 0
        self.deleted = []
        self.polls = {}
        self.lock = threading.Lock()

    def create(self, config):
        self.create_calls += 1
        if self.create_failures:
            self.create_failures -= 1
            raise RuntimeError("unavailable")
        return LoadTest(name=config.name, status=LoadTestStatus(state="Initializing"))

    def get(self, name):
        if self.get_failures:
            self.get_failures -= 1
            raise RuntimeError("timeout")
        with self.lock:
            index = self.polls.get(name, 0)
            self.polls[name] = index + 1
        status = self.states[min(index, len(self.states) - 1)]
        return LoadTest(name=name, status=status)

    def delete(self, name):
        self.deleted.append(name)


def _fake_pods(logs=None):
    """Build a pods getter whose pods each hold a 'main' and an 'idle' container."""
    logs = logs or {}
    pods = mock.Mock()
    pods.test_pods.side_effect = lambda load_test: [
        Pod(name=f"{load_test.name}-client-0", containers=["main", "idle"])
    ]
    pods.get_logs.side_effect = lambda namespace, pod_name, container_name: logs.get(
        container_name, b""
    )
    return pods


class Counter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def _case_reporter(report):
    suite = Reporter(report).new_test_suite_reporter("q", "[%s %d] ", lambda c: c.name)
    return suite.new_test_case_reporter(LoadTest(name="t1"))


def test_status_string_omits_empty_parts():
    config = LoadTest(status=LoadTestStatus(state="Errored", reason=" Timeout "))
    assert status_string(config) == "Errored; Timeout"
    full = LoadTest(status=LoadTestStatus(state="Errored", reason="r", message="m"))
    assert status_string(full) == "Errored; r; m"


def test_after_interval_function_sleeps():
    wait = after_interval_function(0.05)
    start = time.monotonic()
    result = wait()
    elapsed = time.monotonic() - start
    assert result is None
    assert elapsed >= 0.04


def test_successful_test_records_properties_and_deletes(tmp_path):
    report = Report()
    tests = FakeLoadTests()
    runner = Runner(tests, _fake_pods({"main": b"log data"}), Counter(), 2, True, "gs://x/")
    reporter = _case_reporter(report)
    runner.run_test(LoadTest(name="t1"), reporter, str(tmp_path))
    case = report.suites[0].cases[0]
    props = {p.key: p.value for p in case.properties}
    log_path = str(tmp_path / "t1-client-0-main.log")
    assert case.errors == []
    assert props["name"] == "t1"
    assert props["pod.client-0.name"] == "t1-client-0"
    assert props["pod.client-0.log.main"] == "gs://x/" + log_path
    assert "pod.client-0.log.idle" not in props
    assert tests.deleted == ["t1"]


def test_successful_test_kept_when_not_deleting(tmp_path):
    tests = FakeLoadTests()
    runner = Runner(tests, _fake_pods(), Counter(), 0)
    runner.run_test(LoadTest(name="t1"), _case_reporter(Report()), str(tmp_path))
    assert tests.deleted == []


def test_create_failure_retries_then_aborts(tmp_path):
    report = Report()
    tests = FakeLoadTests(create_failures=10)
    wait = Counter()
    runner = Runner(tests, _fake_pods(), wait, 2)
    runner.run_test(LoadTest(name="t1"), _case_reporter(report), str(tmp_path))
    assert tests.create_calls == 3
    assert wait.calls == 2
    errors = report.suites[0].cases[0].errors
    assert len(errors) == 1
    assert "unavailable" in errors[0].message


def test_transient_poll_failure_recovers(tmp_path):
    report = Report()
    tests = FakeLoadTests(get_failures=1)
    wait = Counter()
    runner = Runner(tests, _fake_pods(), wait, 1)
    runner.run_test(LoadTest(name="t1"), _case_reporter(report), str(tmp_path))
    assert wait.calls == 1
    assert report.suites[0].cases[0].errors == []


def test_poll_failure_aborts(tmp_path):
    report = Report()
    tests = FakeLoadTests(get_failures=5)
    runner = Runner(tests, _fake_pods(), Counter(), 1)
    runner.run_test(LoadTest(name="t1"), _case_reporter(report), str(tmp_path))
    errors = report.suites[0].cases[0].errors
    assert len(errors) == 1
    assert "timeout" in errors[0].message


def test_failed_test_reports_reason(tmp_path):
    report = Report()
    failed = LoadTestStatus(state="Errored", reason="PodsFailed", message="crash")
    runner = Runner(FakeLoadTests([failed]), _fake_pods(), Counter(), 0, True)
    config = LoadTest(name="t1")
    runner.run_test(config, _case_reporter(report), str(tmp_path))
    errors = report.suites[0].cases[0].errors
    assert len(errors) == 1
    assert "PodsFailed" in errors[0].message
    assert "crash" in errors[0].message
    assert config.status == failed


def test_polling_intervals_depend_on_state(tmp_path):
    states = [
        LoadTestStatus(state="Initializing"),
        LoadTestStatus(state="Running"),
        LoadTestStatus(state="Succeeded"),
    ]
    wait = Counter()
    runner = Runner(FakeLoadTests(states), _fake_pods(), wait, 0)
    runner.run_test(LoadTest(name="t1"), _case_reporter(Report()), str(tmp_path))
    assert wait.calls == 3


class TrackingLoadTests(FakeLoadTests):
    def __init__(self):
        super().__init__()
        self.active = 0
        self.max_active = 0

    def create(self, config):
        with self.lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        return super().create(config)

    def get(self, name):
        time.sleep(0.01)
        result = super().get(name)
        with self.lock:
            self.active -= 1
        return result


def test_run_respects_concurrency_level(tmp_path):
    report = Report()
    tests = TrackingLoadTests()
    runner = Runner(tests, _fake_pods(), Counter(), 0)
    suite = Reporter(report).new_test_suite_reporter("q", "[%s %d] ", lambda c: c.name)
    configs = [LoadTest(name=f"t{i}") for i in range(5)]
    returned = runner.run(configs, suite, 2, str(tmp_path))
    assert returned is suite
    assert tests.max_active <= 2
    cases = report.suites[0].cases
    assert sorted(c.name for c in cases) == sorted(c.name for c in configs)
    assert all(c.errors == [] for c in cases)
    assert all(c.time_in_seconds >= 0 for c in cases)


def test_run_rejects_non_positive_concurrency(tmp_path):
    suite = Reporter().new_test_suite_reporter("q", "[%s %d] ", str)
    runner = Runner(FakeLoadTests(), _fake_pods(), Counter(), 0)
    with pytest.raises(ValueError):
        runner.run([LoadTest(name="t")], suite, 0, str(tmp_path))