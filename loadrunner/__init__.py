"""Run load tests in concurrent queues, save their logs and report results as xUnit XML."""

__version__ = "0.1.0"
__all__ = [
    "configs",
    "delete_workers",
    "flags",
    "logsaver",
    "prepare_workers",
    "properties",
    "queues",
    "reporter",
    "runner",
    "xunit",
]