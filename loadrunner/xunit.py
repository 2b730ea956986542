"""xUnit XML reports that follow the JUnit XML schema."""

from __future__ import annotations

import io
import math
import posixpath
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import IO, Callable, Union


@dataclass
class Property:
    """A key-value property attached to a test case."""

    key: str
    value: str


@dataclass
class Error:
    """An error recorded for a test case."""

    message: str = ""
    text: str = ""


@dataclass
class TestCase:
    """Metadata for a single test."""

    __test__ = False

    name: str = ""
    time_in_seconds: float = 0.0
    errors: list[Error] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)

    def sort_properties(self) -> None:
        """Sort properties alphabetically by key."""
        self.properties.sort(key=lambda prop: prop.key)


@dataclass
class TestSuite:
    """Metadata for a collection of test cases."""

    __test__ = False

    id: str = ""
    name: str = ""
    test_count: int = 0
    error_count: int = 0
    time_in_seconds: float = 0.0
    cases: list[TestCase] = field(default_factory=list)


@dataclass
class ReportWritingOptions:
    """Optional settings for writing a report."""

    indent_size: int = 0
    max_retries: int = 0


@dataclass
class _Node:
    tag: str
    attrs: list[tuple[str, str]]
    children: list[_Node] = field(default_factory=list)
    text: str = ""


@dataclass
class Report:
    """The data for an xUnit XML report."""

    name: str = ""
    test_count: int = 0
    error_count: int = 0
    time_in_seconds: float = 0.0
    suites: list[TestSuite] = field(default_factory=list)

    def finalize(self) -> None:
        """Recompute counters and ids from the child objects."""
        self.test_count = 0
        self.error_count = 0
        for index, suite in enumerate(self.suites):
            suite.id = str(index)
            suite.test_count = len(suite.cases)
            suite.error_count = 0
            for case in suite.cases:
                case.sort_properties()
                suite.error_count += len(case.errors)
            self.error_count += suite.error_count
            self.test_count += suite.test_count

    def split(self) -> dict[str, Report]:
        """Return one finalized report per test suite, keyed by suite name."""
        reports: dict[str, Report] = {}
        for suite in self.suites:
            report = Report(
                name=suite.name,
                time_in_seconds=suite.time_in_seconds,
                suites=[suite],
            )
            report.finalize()
            reports[suite.name] = report
        return reports

    def to_xml(self, indent_size: int = 0) -> str:
        """Render the report as XML, indented by the given number of spaces."""
        return _render(self._node(), " " * indent_size, 0)

    def write_to_stream(
        self, stream: IO, options: ReportWritingOptions | None = None
    ) -> None:
        """Write the report, followed by a newline, to a stream."""
        options = options or ReportWritingOptions()
        text = self.to_xml(options.indent_size) + "\n"
        if isinstance(stream, io.TextIOBase):
            stream.write(text)
            return

        data = text.encode("utf-8")
        view = memoryview(data)
        written = 0
        retries = 0
        while written < len(data):
            remaining = len(data) - written
            try:
                count = stream.write(view[written:])
            except OSError as exc:
                if retries >= options.max_retries:
                    raise OSError(
                        f"failed to write {remaining} bytes of xUnit report to stream"
                    ) from exc
                retries += 1
                continue
            if count is None:
                count = remaining
            if count == 0:
                if retries >= options.max_retries:
                    raise OSError(
                        f"failed to write {remaining} bytes of xUnit report to stream"
                    )
                retries += 1
            written += count

    def _node(self) -> _Node:
        return _Node(
            "testsuites",
            [
                ("name", self.name),
                ("tests", str(self.test_count)),
                ("errors", str(self.error_count)),
                ("time", _format_float(self.time_in_seconds)),
            ],
            [_suite_node(suite) for suite in self.suites],
        )


def _suite_node(suite: TestSuite) -> _Node:
    return _Node(
        "testsuite",
        [
            ("id", suite.id),
            ("name", suite.name),
            ("tests", str(suite.test_count)),
            ("errors", str(suite.error_count)),
            ("time", _format_float(suite.time_in_seconds)),
        ],
        [_case_node(case) for case in suite.cases],
    )


def _case_node(case: TestCase) -> _Node:
    children = [
        _Node("error", [("message", err.message)] if err.message else [], text=err.text)
        for err in case.errors
    ]
    if case.properties:
        children.append(
            _Node(
                "properties",
                [],
                [
                    _Node("property", [("name", prop.key), ("value", prop.value)])
                    for prop in case.properties
                ],
            )
        )
    return _Node(
        "testcase",
        [("name", case.name), ("time", _format_float(case.time_in_seconds))],
        children,
    )


def _render(node: _Node, indent: str, depth: int) -> str:
    pad = indent * depth
    attrs = "".join(f' {key}="{_escape(value)}"' for key, value in node.attrs)
    start = f"{pad}<{node.tag}{attrs}>{_escape(node.text)}"
    end = f"</{node.tag}>"
    if not node.children:
        return start + end
    separator = "\n" if indent else ""
    parts = [start]
    parts.extend(_render(child, indent, depth + 1) for child in node.children)
    parts.append(pad + end)
    return separator.join(parts)


_ESCAPES = {
    '"': "&#34;",
    "'": "&#39;",
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


def _is_xml_char(char: str) -> bool:
    code = ord(char)
    return (
        code in (0x9, 0xA, 0xD)
        or 0x20 <= code <= 0xD7FF
        or 0xE000 <= code <= 0xFFFD
        or 0x10000 <= code <= 0x10FFFF
    )


def _escape(text: str) -> str:
    return "".join(
        _ESCAPES.get(char, char if _is_xml_char(char) else "\ufffd") for char in text
    )


def _format_float(value: float) -> str:
    """Format a float using the shortest representation, %g style."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(map(str, digit_tuple)).lstrip("0")
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped
    count = len(digits)
    point = count + exponent
    exp = point - 1

    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        body = f"{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    elif point <= 0:
        body = "0." + "0" * (-point) + digits
    elif point >= count:
        body = digits + "0" * (point - count)
    else:
        body = digits[:point] + "." + digits[point:]
    return ("-" if sign else "") + body


_GO_SPACES = frozenset("\t\n\v\f\r \x85\xa0")


def _is_space(char: str) -> bool:
    if ord(char) <= 0xFF:
        return char in _GO_SPACES
    return char.isspace()


def dashify(s: str) -> str:
    """Replace whitespace and underscores with dashes, dropping other symbols."""
    out = []
    for char in s:
        if char == "_" or _is_space(char):
            out.append("-")
        elif (
            char == "-"
            or char.isalpha()
            or unicodedata.category(char).startswith("N")
        ):
            out.append(char)
    return "".join(out)


def _join(*parts: str) -> str:
    present = [part for part in parts if part]
    if not present:
        return ""
    return posixpath.normpath("/".join(present))


def output_path(template: str) -> Callable[[str], str]:
    """Return a function that places a prefixed report file in a prefix directory."""
    slash = template.rfind("/")
    directory, file_name = template[: slash + 1], template[slash + 1 :]
    if not file_name:
        return lambda prefix: _join(directory, prefix, prefix)

    def select(prefix: str) -> str:
        if prefix:
            return _join(directory, prefix, f"{prefix}_{file_name}")
        return _join(directory, file_name)

    return select


ReportStream = Union[IO[bytes], IO[str]]