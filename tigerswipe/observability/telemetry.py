"""
Counters, latencies and structured events for the card pipeline.

Everything stays in process: events are log lines, counters and latency
samples live in module dicts that /health and the tests read back.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("tigerswipe.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}


def _metric_key(metric_name: str) -> str:
    # "cards.deck_build.latency" is stored as "cards.deck_build.latency_ms"
    if metric_name.endswith(".latency"):
        return f"{metric_name}_ms"
    return metric_name


def log_event(event_name: str, **fields: Any) -> None:
    """Emit one structured event. Callers redact anything user-identifying first."""
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def reset_counters() -> None:
    """Forget all counters and latency samples."""
    _COUNTERS.clear()
    _LATENCIES.clear()


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """Record the wall time of the enclosed block, even when it raises."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        key = _metric_key(metric_name)
        _LATENCIES.setdefault(key, []).append(elapsed)
        logger.debug("timing=%s seconds=%.6f", key, elapsed)


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """count, min, max, avg and p95 (seconds) for one timed block."""
    samples = sorted(_LATENCIES.get(_metric_key(metric_name), []))
    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p95": 0.0}

    count = len(samples)
    return {
        "count": count,
        "min": samples[0],
        "max": samples[-1],
        "avg": sum(samples) / count,
        "p95": samples[min(int(count * 0.95), count - 1)],
    }
