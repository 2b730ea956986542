"""A runner that executes load tests in queues, waits for them and reports results."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Protocol

from loadrunner.configs import RUNNING, SUCCEEDED, LoadTest
from loadrunner.logsaver import LogSaveError, save_all_logs
from loadrunner.properties import Pod, pod_log_properties, pod_name_properties
from loadrunner.reporter import TestCaseReporter, TestSuiteReporter

logger = logging.getLogger(__name__)


class LoadTestGetter(Protocol):
    """Creates, queries and deletes LoadTests in a cluster."""

    def create(self, config: LoadTest) -> LoadTest: ...

    def get(self, name: str) -> LoadTest: ...

    def delete(self, name: str) -> None: ...


class PodsGetter(Protocol):
    """Lists the pods of a LoadTest and fetches their container logs."""

    def test_pods(self, load_test: LoadTest) -> list[Pod]: ...

    def get_logs(
        self, namespace: str, pod_name: str, container_name: str
    ) -> bytes | str: ...


def after_interval_function(seconds: float) -> Callable[[], None]:
    """Return a function that waits for the given number of seconds."""

    def wait() -> None:
        time.sleep(seconds)

    return wait


def status_string(config: LoadTest) -> str:
    """Return state, reason and message of a test, omitting empty parts."""
    parts = [config.status.state]
    for extra in (config.status.reason.strip(), config.status.message.strip()):
        if extra:
            parts.append(extra)
    return "; ".join(parts)


class Runner:
    """Runs sets of LoadTests and monitors them to completion."""

    def __init__(
        self,
        load_test_getter: LoadTestGetter,
        pods_getter: PodsGetter,
        after_interval: Callable[[], None],
        retries: int,
        delete_successful_tests: bool = False,
        log_url_prefix: str = "",
    ):
        self.load_test_getter = load_test_getter
        self.pods_getter = pods_getter
        self.after_interval = after_interval
        self.retries = retries
        self.delete_successful_tests = delete_successful_tests
        self.log_url_prefix = log_url_prefix

    def run(
        self,
        configs: Iterable[LoadTest],
        suite_reporter: TestSuiteReporter,
        concurrency_level: int,
        output_dir: str,
    ) -> TestSuiteReporter:
        """Run the tests with at most concurrency_level running at once."""
        if concurrency_level <= 0:
            raise ValueError(
                f"concurrency level must be positive, got {concurrency_level}"
            )
        queue_name = suite_reporter.queue
        done: queue.Queue[TestCaseReporter] = queue.Queue()
        running = 0
        finished = 0

        def collect() -> None:
            nonlocal running, finished
            reporter = done.get()
            reporter.set_end_time(datetime.now())
            logger.info(
                "Finished test in queue %s after %s", queue_name, reporter.duration()
            )
            running -= 1
            finished += 1
            logger.info("Finished %d tests in queue %s", finished, queue_name)

        threads = []
        for config in configs:
            while running >= concurrency_level:
                collect()
            running += 1
            reporter = suite_reporter.new_test_case_reporter(config)
            logger.info("Starting test %d in queue %s", reporter.index, queue_name)
            reporter.set_start_time(datetime.now())
            thread = threading.Thread(
                target=self._work,
                args=(config, reporter, output_dir, done),
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        while running > 0:
            collect()
        for thread in threads:
            thread.join()
        return suite_reporter

    def _work(
        self,
        config: LoadTest,
        reporter: TestCaseReporter,
        output_dir: str,
        done: queue.Queue,
    ) -> None:
        try:
            self.run_test(config, reporter, output_dir)
        except Exception as exc:
            reporter.error("Unexpected failure of test %s: %s", config.name, exc)
        finally:
            done.put(reporter)

    def run_test(
        self, config: LoadTest, reporter: TestCaseReporter, output_dir: str
    ) -> TestCaseReporter:
        """Create one LoadTest and poll it until it terminates."""
        retries = 0
        while True:
            try:
                load_test = self.load_test_getter.create(config)
            except Exception as exc:
                reporter.warning("Failed to create test %s: %s", config.name, exc)
                if retries < self.retries:
                    retries += 1
                    reporter.info(
                        "Scheduling retry %d/%d to create test", retries, self.retries
                    )
                    self.after_interval()
                    continue
                reporter.error(
                    "Aborting after %d retries to create test %s: %s",
                    self.retries,
                    config.name,
                    exc,
                )
                return reporter
            retries = 0
            config.status = load_test.status
            reporter.info("Created test %s", config.name)
            break

        status = ""
        while True:
            try:
                load_test = self.load_test_getter.get(config.name)
            except Exception as exc:
                reporter.warning("Failed to poll test %s: %s", config.name, exc)
                if retries < self.retries:
                    retries += 1
                    reporter.info(
                        "Scheduling retry %d/%d to poll test", retries, self.retries
                    )
                    self.after_interval()
                    continue
                reporter.error(
                    "Aborting test after %d retries to poll test %s: %s",
                    self.retries,
                    config.name,
                    exc,
                )
                return reporter
            retries = 0
            config.status = load_test.status
            previous, status = status, status_string(config)

            if load_test.status.is_terminated():
                self._finish(config, load_test, status, reporter, output_dir)
                return reporter
            if load_test.status.state == RUNNING:
                reporter.info("%s", status)
                self.after_interval()
            else:
                if previous != status:
                    reporter.info("%s", status)
                # Tests that have not started are polled less often.
                self.after_interval()
                self.after_interval()

    def _finish(
        self,
        config: LoadTest,
        load_test: LoadTest,
        status: str,
        reporter: TestCaseReporter,
        output_dir: str,
    ) -> None:
        try:
            pods = list(self.pods_getter.test_pods(load_test))
        except Exception as exc:
            reporter.error(
                "Could not list all pods: failed to fetch list of pods: %s", exc
            )
            pods = []
        try:
            log_infos = save_all_logs(load_test, self.pods_getter, pods, output_dir)
        except LogSaveError as exc:
            reporter.error("Could not save pod logs: %s", exc)
            log_infos = exc.log_infos

        reporter.add_property("name", load_test.name)
        for key, value in pod_name_properties(pods, load_test.name, "pod").items():
            reporter.add_property(key, value)
        for key, value in pod_log_properties(
            log_infos, self.log_url_prefix, "pod"
        ).items():
            reporter.add_property(key, value)

        if status != SUCCEEDED:
            reporter.error(
                'Test failed with reason "%s": %s',
                load_test.status.reason,
                load_test.status.message,
            )
            return
        reporter.info('Test terminated with a status of "%s"', status)
        if self.delete_successful_tests:
            try:
                self.load_test_getter.delete(config.name)
            except Exception as exc:
                reporter.info("Failed to delete test %s: %s", config.name, exc)
            else:
                reporter.info("Deleted test %s", config.name)