import logging
import threading
from collections import defaultdict
from typing import Any

logger = logging.getLogger("api.metrics")

_LOCK = threading.Lock()
_COUNTERS: dict[tuple, float] = defaultdict(float)
_TIMINGS: dict[tuple, list[float]] = defaultdict(list)
_MAX_SAMPLES = 1000


def _key(name: str, labels: dict[str, Any]) -> tuple:
    return (name, tuple(sorted((k, str(v)) for k, v in labels.items())))


def incr(name: str, amount: float = 1, **labels: Any) -> None:
    key = _key(name, labels)
    with _LOCK:
        _COUNTERS[key] += amount
    logger.debug("metric_incr name=%s amount=%s labels=%s", name, amount, labels)


def observe_ms(name: str, value_ms: float, **labels: Any) -> None:
    key = _key(name, labels)
    with _LOCK:
        samples = _TIMINGS[key]
        samples.append(float(value_ms))
        if len(samples) > _MAX_SAMPLES:
            del samples[: len(samples) - _MAX_SAMPLES]


def counter_value(name: str, **labels: Any) -> float:
    with _LOCK:
        return _COUNTERS.get(_key(name, labels), 0.0)


def reset() -> None:
    with _LOCK:
        _COUNTERS.clear()
        _TIMINGS.clear()
