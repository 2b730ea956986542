"""Saving container logs of LoadTest pods to files."""

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import Protocol

from loadrunner.configs import LoadTest
from loadrunner.properties import LogInfo, Pod, pod_name_elem


class LogSource(Protocol):
    """Anything that can fetch the log of a container in a pod."""

    def get_logs(
        self, namespace: str, pod_name: str, container_name: str
    ) -> bytes | str: ...


class LogSaveError(Exception):
    """Raised when logs cannot be saved; holds the logs saved before the failure."""

    def __init__(self, message: str, log_infos: list[LogInfo]):
        super().__init__(message)
        self.log_infos = log_infos


def log_file_name(pod_name: str, container_name: str) -> str:
    """Return the log file name for a pod's container."""
    return f"{pod_name}-{container_name}.log"


def save_log(
    load_test: LoadTest,
    pods_getter: LogSource,
    pod: Pod,
    container_name: str,
    pod_log_dir: str | os.PathLike,
) -> LogInfo | None:
    """Save one container's log to a file; return None if the log is empty."""
    data = pods_getter.get_logs(pod.namespace, pod.name, container_name)
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data:
        return None

    file_path = os.path.join(pod_log_dir, log_file_name(pod.name, container_name))
    try:
        handle = open(file_path, "wb")
    except OSError as exc:
        raise OSError(f"could not open {file_path} for writing") from exc
    with handle:
        try:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        except OSError as exc:
            raise OSError(f"error writing to {file_path}: {exc}") from exc

    return LogInfo(
        pod_name_elem=pod_name_elem(pod.name, load_test.name),
        container_name=container_name,
        log_path=file_path,
    )


def save_all_logs(
    load_test: LoadTest,
    pods_getter: LogSource,
    pods: Iterable[Pod],
    pod_log_dir: str | os.PathLike,
) -> list[LogInfo]:
    """Save the non-empty logs of every container of every pod under a directory."""
    log_infos: list[LogInfo] = []
    try:
        os.makedirs(pod_log_dir, exist_ok=True)
    except OSError as exc:
        raise LogSaveError(
            f"failed to create pod log output directory {pod_log_dir}: {exc}",
            log_infos,
        ) from exc

    for pod in pods:
        for container_name in pod.containers:
            try:
                info = save_log(load_test, pods_getter, pod, container_name, pod_log_dir)
            except Exception as exc:
                raise LogSaveError(
                    f"could not get log from container: {exc}", log_infos
                ) from exc
            if info is not None:
                log_infos.append(info)
    return log_infos