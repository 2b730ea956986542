"""Progress logging and xUnit reporting for suites and cases of load tests."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from loadrunner.configs import LoadTest
from loadrunner.xunit import Error, Property, Report, TestCase, TestSuite, dashify

logger = logging.getLogger(__name__)

TestCaseNamer = Callable[[LoadTest], str]


def _elapsed(start: datetime | None, end: datetime | None) -> timedelta:
    if start is None or end is None:
        return timedelta(0)
    return end - start


def _format(fmt: str, args: tuple) -> str:
    return fmt % args if args else fmt


class Reporter:
    """Logs the progress of test suites, filling an xUnit report if one is given."""

    def __init__(self, report: Report | None = None):
        self.report = report
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None

    def set_start_time(self, t: datetime) -> None:
        """Record the start time of the whole run."""
        self.start_time = t

    def set_end_time(self, t: datetime) -> None:
        """Record the end time of the whole run and store it in the report."""
        self.end_time = t
        if self.report is not None:
            self.report.time_in_seconds = self.duration().total_seconds()

    def duration(self) -> timedelta:
        """Return the time between start and end, or zero if either is unset."""
        return _elapsed(self.start_time, self.end_time)

    def new_test_suite_reporter(
        self, queue_name: str, log_prefix_fmt: str, test_case_name: TestCaseNamer
    ) -> TestSuiteReporter:
        """Create a reporter for the tests of one queue."""
        suite: TestSuite | None = None
        if self.report is not None:
            suite = TestSuite(name=queue_name)
            self.report.suites.append(suite)
        return TestSuiteReporter(queue_name, log_prefix_fmt, test_case_name, suite)


class TestSuiteReporter:
    """Manages reports for the tests that share a queue."""

    __test__ = False

    def __init__(
        self,
        queue_name: str,
        log_prefix_fmt: str,
        test_case_name: TestCaseNamer,
        test_suite: TestSuite | None = None,
    ):
        self.queue = queue_name
        self.log_prefix_fmt = log_prefix_fmt
        self.test_case_name = test_case_name
        self.test_suite = test_suite
        self.test_count = 0
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None

    def set_start_time(self, t: datetime) -> None:
        """Record the start time of the suite."""
        self.start_time = t

    def set_end_time(self, t: datetime) -> None:
        """Record the end time of the suite and store it in the report."""
        self.end_time = t
        if self.test_suite is not None:
            self.test_suite.time_in_seconds = self.duration().total_seconds()

    def duration(self) -> timedelta:
        """Return the time between start and end, or zero if either is unset."""
        return _elapsed(self.start_time, self.end_time)

    def new_test_case_reporter(self, config: LoadTest) -> TestCaseReporter:
        """Create a reporter for the next test in this suite."""
        index = self.test_count
        self.test_count += 1
        prefix = self.log_prefix_fmt % (self.queue, index)
        case: TestCase | None = None
        if self.test_suite is not None:
            case = TestCase(name=self.test_case_name(config))
            self.test_suite.cases.append(case)
        return TestCaseReporter(index, prefix, case)


class TestCaseReporter:
    """Collects log messages, errors and properties of one test."""

    __test__ = False

    def __init__(self, index: int, log_prefix: str, test_case: TestCase | None = None):
        self.index = index
        self.log_prefix = log_prefix
        self.test_case = test_case
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None

    def _log(self, level: int, fmt: str, args: tuple) -> str:
        message = _format(fmt, args)
        logger.log(level, "%s%s", self.log_prefix, message)
        return message

    def info(self, fmt: str, *args) -> None:
        """Log an informational message."""
        self._log(logging.INFO, fmt, args)

    def warning(self, fmt: str, *args) -> None:
        """Log a warning."""
        self._log(logging.WARNING, fmt, args)

    def error(self, fmt: str, *args) -> None:
        """Log an error and record it in the test case."""
        message = self._log(logging.ERROR, fmt, args)
        if self.test_case is not None:
            self.test_case.errors.append(Error(message=message))

    def set_start_time(self, t: datetime) -> None:
        """Record the start time of the test."""
        self.start_time = t

    def set_end_time(self, t: datetime) -> None:
        """Record the end time of the test and store it in the report."""
        self.end_time = t
        if self.test_case is not None:
            self.test_case.time_in_seconds = self.duration().total_seconds()

    def duration(self) -> timedelta:
        """Return the time between start and end, or zero if either is unset."""
        return _elapsed(self.start_time, self.end_time)

    def add_property(self, key: str, value: str) -> None:
        """Attach a key-value property to the test case."""
        if self.test_case is not None:
            self.test_case.properties.append(Property(key=key, value=value))


def test_case_name_from_annotations(*args: str) -> TestCaseNamer:
    """Return a function naming test cases from the given annotations' values."""

    def name(config: LoadTest) -> str:
        values = [
            dashify(value).lower()
            for key in args
            if (value := config.annotations.get(key, ""))
        ]
        return "-".join(values)

    return name


test_case_name_from_annotations.__test__ = False