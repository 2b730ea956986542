"""Accumulating command-line option values."""

from __future__ import annotations

import re

_INTEGER = re.compile(r"[+-]?[0-9]+")


class FileNames(list):
    """Accumulates non-empty file names."""

    def add(self, value: str) -> None:
        """Append a file name, rejecting empty values."""
        if value == "":
            raise ValueError("value must not be empty")
        self.append(value)

    def __str__(self) -> str:
        return "[" + " ".join(self) + "]"


class ConcurrencyLevels(dict):
    """Concurrency levels of the form [<queue name>:]<concurrency level>."""

    def add(self, value: str) -> None:
        """Parse a concurrency level and record it for its queue."""
        key, sep, level_text = value.partition(":")
        if not sep:
            key, level_text = "", value

        if not _INTEGER.fullmatch(level_text):
            if key == "":
                raise ValueError(
                    "value must be of the form [<queue name>:]<concurrency level>"
                )
            raise ValueError(f"concurrency level must be an integer, got {level_text}")

        level = int(level_text)
        if level <= 0:
            raise ValueError(f"concurrency level must be positive, got {level}")

        self[key] = level
        if self.get("", 0) > 0 and len(self) > 1:
            raise ValueError("global capacity and queue names are mutually exclusive")

    def __str__(self) -> str:
        entries = " ".join(f"{key}:{level}" for key, level in sorted(self.items()))
        return f"map[{entries}]"