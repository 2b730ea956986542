"""LoadTest configurations and their decoding from multi-document YAML files."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

RUNNING = "Running"
SUCCEEDED = "Succeeded"
ERRORED = "Errored"

_TERMINAL_STATES = frozenset({SUCCEEDED, ERRORED})
_SEPARATOR = "---"


class ConfigError(ValueError):
    """Raised when a LoadTest configuration cannot be decoded."""


def _string(data: Mapping, key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{where}.{key} must be a string, got {value!r}")
    return value


def _mapping(data: Mapping, key: str, where: str) -> Mapping:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where}.{key} must be a mapping, got {value!r}")
    return value


def _string_map(data: Mapping, key: str, where: str) -> dict[str, str]:
    values = _mapping(data, key, where)
    return {str(name): _string(values, name, f"{where}.{key}") for name in values}


@dataclass
class LoadTestStatus:
    """The observed state of a LoadTest."""

    state: str = ""
    reason: str = ""
    message: str = ""

    def is_terminated(self) -> bool:
        """Return True once the test has reached a final state."""
        return self.state in _TERMINAL_STATES

    @classmethod
    def _from_mapping(cls, data: Mapping) -> LoadTestStatus:
        return cls(
            state=_string(data, "state", "status"),
            reason=_string(data, "reason", "status"),
            message=_string(data, "message", "status"),
        )


@dataclass
class LoadTest:
    """A LoadTest resource: metadata, specification and status."""

    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    api_version: str = ""
    kind: str = ""
    spec: dict[str, Any] = field(default_factory=dict)
    status: LoadTestStatus = field(default_factory=LoadTestStatus)

    @classmethod
    def from_mapping(cls, data: Mapping | None) -> LoadTest:
        """Build a LoadTest from a decoded YAML document."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"configuration must be a mapping, got {data!r}")
        metadata = _mapping(data, "metadata", "")
        return cls(
            name=_string(metadata, "name", "metadata"),
            namespace=_string(metadata, "namespace", "metadata"),
            annotations=_string_map(metadata, "annotations", "metadata"),
            labels=_string_map(metadata, "labels", "metadata"),
            api_version=_string(data, "apiVersion", ""),
            kind=_string(data, "kind", ""),
            spec=dict(_mapping(data, "spec", "")),
            status=LoadTestStatus._from_mapping(_mapping(data, "status", "")),
        )


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def _documents(lines: Iterable[str]) -> Iterator[list[str]]:
    chunk: list[str] = []
    for line in lines:
        if line == _SEPARATOR:
            if not chunk:
                return
            yield chunk
            chunk = []
        else:
            chunk.append(line)
    if chunk:
        yield chunk


def decode_documents(text: str) -> list[LoadTest]:
    """Decode LoadTest configurations from a multi-document YAML string.

    Decoding stops at the first empty document.
    """
    configs = []
    for chunk in _documents(_lines(text)):
        try:
            data = yaml.safe_load("\n".join(chunk))
        except yaml.YAMLError as exc:
            raise ConfigError(str(exc)) from exc
        configs.append(LoadTest.from_mapping(data))
    return configs


def decode_from_file(file_name: str | Path) -> list[LoadTest]:
    """Read LoadTest configurations from a single multi-document YAML file."""
    text = Path(file_name).read_text(encoding="utf-8")
    try:
        return decode_documents(text)
    except ConfigError as exc:
        raise ConfigError(f'error decoding config from "{file_name}": {exc}') from exc


def decode_from_files(file_names: Iterable[str | Path]) -> list[LoadTest]:
    """Read LoadTest configurations from several files, in order."""
    configs: list[LoadTest] = []
    for file_name in file_names:
        configs.extend(decode_from_file(file_name))
    return configs