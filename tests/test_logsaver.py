import os

import pytest

from loadrunner.configs import LoadTest
from loadrunner.logsaver import (
    LogSaveError,
    log_file_name,
    save_all_logs,
    save_log,
)
from loadrunner.properties import Pod, pod_name_elem


class FakeLogs:
    def __init__(self, logs, failing=()):
        self.logs = logs
        self.failing = set(failing)
        self.calls = []

    def get_logs(self, namespace, pod_name, container_name):
        self.calls.append((namespace, pod_name, container_name))
        if (pod_name, container_name) in self.failing:
            raise ConnectionError("stream broken")
        return self.logs.get((pod_name, container_name), b"")


LOAD_TEST = LoadTest(name="t")


def test_log_file_name():
    assert log_file_name("t-client-0", "main") == "t-client-0-main.log"


def test_save_log_writes_file(tmp_path):
    pod = Pod("t-client-0", namespace="default", containers=["main"])
    getter = FakeLogs({("t-client-0", "main"): b"hello\nworld\n"})
    info = save_log(LOAD_TEST, getter, pod, "main", tmp_path)
    expected_path = os.path.join(tmp_path, log_file_name(pod.name, "main"))
    assert info.log_path == expected_path
    assert info.container_name == "main"
    assert info.pod_name_elem == pod_name_elem(pod.name, LOAD_TEST.name)
    with open(expected_path, "rb") as handle:
        assert handle.read() == b"hello\nworld\n"
    assert getter.calls == [("default", "t-client-0", "main")]


def test_save_log_accepts_text(tmp_path):
    pod = Pod("t-server-0", containers=["main"])
    info = save_log(LOAD_TEST, FakeLogs({("t-server-0", "main"): "text log"}), pod, "main", tmp_path)
    with open(info.log_path, encoding="utf-8") as handle:
        assert handle.read() == "text log"


def test_save_log_skips_empty(tmp_path):
    pod = Pod("t-driver-0", containers=["main"])
    assert save_log(LOAD_TEST, FakeLogs({}), pod, "main", tmp_path) is None
    assert list(tmp_path.iterdir()) == []


def test_save_all_logs_creates_directory_and_skips_empty(tmp_path):
    log_dir = tmp_path / "nested" / "logs"
    pods = [
        Pod("t-client-0", containers=["main", "sidecar"]),
        Pod("t-server-0", containers=["main"]),
    ]
    getter = FakeLogs({("t-client-0", "main"): b"a", ("t-server-0", "main"): b"b"})
    infos = save_all_logs(LOAD_TEST, getter, pods, log_dir)
    assert [(i.pod_name_elem, i.container_name) for i in infos] == [
        (pod_name_elem("t-client-0", "t"), "main"),
        (pod_name_elem("t-server-0", "t"), "main"),
    ]
    assert sorted(p.name for p in log_dir.iterdir()) == sorted(
        os.path.basename(i.log_path) for i in infos
    )
    assert len(getter.calls) == sum(len(p.containers) for p in pods)


def test_save_all_logs_failure_keeps_partial_results(tmp_path):
    pods = [
        Pod("t-client-0", containers=["main"]),
        Pod("t-server-0", containers=["main"]),
    ]
    getter = FakeLogs(
        {("t-client-0", "main"): b"a"}, failing=[("t-server-0", "main")]
    )
    with pytest.raises(LogSaveError) as info:
        save_all_logs(LOAD_TEST, getter, pods, tmp_path)
    assert [i.container_name for i in info.value.log_infos] == ["main"]
    assert isinstance(info.value.__cause__, ConnectionError)


def test_save_all_logs_directory_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(LogSaveError) as info:
        save_all_logs(LOAD_TEST, FakeLogs({}), [], blocker)
    assert info.value.log_infos == []