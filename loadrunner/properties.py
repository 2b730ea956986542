"""Test case properties derived from pods and saved logs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass
class Pod:
    """A pod belonging to a LoadTest, with the names of its containers."""

    name: str
    namespace: str = ""
    containers: list[str] = field(default_factory=list)


@dataclass
class LogInfo:
    """Information about one saved log file."""

    pod_name_elem: str
    container_name: str
    log_path: str


def pod_log_properties(
    log_infos: Iterable[LogInfo], log_url_prefix: str, *args: str
) -> dict[str, str]:
    """Map log property keys, prefixed by args, to log URLs."""
    return {
        pod_log_property_key(info, *args): log_url_prefix + info.log_path
        for info in log_infos
    }


def pod_log_property_key(log_info: LogInfo, *args: str) -> str:
    """Return the key of a pod log property, prefixed by args."""
    return ".".join([*args, log_info.pod_name_elem, "log", log_info.container_name])


def pod_name_properties(
    pods: Iterable[Pod], load_test_name: str, *args: str
) -> dict[str, str]:
    """Map pod name property keys, prefixed by args, to pod names."""
    return {
        pod_name_property_key(pod_name_elem(pod.name, load_test_name), *args): pod.name
        for pod in pods
    }


def pod_name_elem(pod_name: str, load_test_name: str) -> str:
    """Return the part of a pod name that follows the LoadTest name, e.g. client-0."""
    return pod_name.removeprefix(f"{load_test_name}-")


def pod_name_property_key(pod_name_elem: str, *args: str) -> str:
    """Return the key of a pod name property, prefixed by args."""
    return ".".join([*args, pod_name_elem, "name"])