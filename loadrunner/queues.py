"""Assignment of LoadTest configurations to execution queues."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence

from loadrunner.configs import LoadTest

QueueSelector = Callable[[LoadTest], str]


def queue_selector_from_annotation(key: str) -> QueueSelector:
    """Return a selector that uses the value of the given annotation as queue name."""

    def select(config: LoadTest) -> str:
        return config.annotations.get(key, "")

    return select


def create_queue_map(
    configs: Iterable[LoadTest], selector: QueueSelector
) -> dict[str, list[LoadTest]]:
    """Group configurations into queues chosen by the selector."""
    queues: dict[str, list[LoadTest]] = {}
    for config in configs:
        queues.setdefault(selector(config), []).append(config)
    return queues


def validate_concurrency_levels(
    config_map: Mapping[str, Sequence[LoadTest]],
    concurrency_levels: Mapping[str, int],
) -> None:
    """Raise ValueError unless every queue has a concurrency level."""
    for queue_name in config_map:
        if queue_name not in concurrency_levels:
            if queue_name:
                raise ValueError(
                    f'no concurrency level specified for queue "{queue_name}"'
                )
            raise ValueError("no concurrency level specified for global queue")


def count_configs(config_map: Mapping[str, Sequence[LoadTest]]) -> dict[str, int]:
    """Return the number of configurations in each queue."""
    return {queue_name: len(configs) for queue_name, configs in config_map.items()}


def log_prefix_fmt(config_map: Mapping[str, Sequence[LoadTest]]) -> str:
    """Return a %-format string for log prefixes of queue name and test index."""
    queue_width = max((len(name) for name in config_map), default=0)
    index_width = max(
        (len(str(len(configs) - 1)) for configs in config_map.values()), default=0
    )
    return f"[%-{queue_width}s %{index_width}d] "