"""
core_metrics – tiny helpers so packages can record counters / histograms /
gauges without touching prometheus_client directly. Metrics are registered
lazily on first use and reused afterwards, so importing a module twice (test
reloads, multiple app instances) never raises a duplicate-collector error.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, cast

from prometheus_client import (
    REGISTRY as _PROM_REGISTRY,
    Counter as _pCounter,
    Histogram as _pHistogram,
    Gauge as _pGauge,
)

_P_COUNTERS: Dict[str, _pCounter] = {}
_P_HISTOS: Dict[str, _pHistogram] = {}
_P_GAUGES: Dict[str, _pGauge] = {}
_LOCK = threading.Lock()


def _existing(name: str) -> Any:
    # prometheus_client registers counters under both `name` and `name_total`
    return _PROM_REGISTRY._names_to_collectors.get(name)  # type: ignore[attr-defined]

# --------------------------------------------------------------------------- #
# Public helpers                                                              #
# --------------------------------------------------------------------------- #
def counter(name: str, inc: int | float = 1, **attrs: Any) -> None:
    """
    Increment *name* by *inc* (default 1). Attributes are accepted for call-site
    symmetry but not turned into labels (unbounded node ids would explode
    cardinality).
    """
    with _LOCK:
        pc = _P_COUNTERS.get(name)
        if pc is None:
            existing = _existing(name)
            pc = cast(_pCounter, existing) if existing is not None else _pCounter(name, f"Counter for {name}")
            _P_COUNTERS[name] = pc
    pc.inc(inc)


def histogram(name: str, value: float, **attrs: Any) -> None:
    """
    Record *value* in histogram *name*.
    """
    with _LOCK:
        ph = _P_HISTOS.get(name)
        if ph is None:
            existing = _existing(name)
            ph = cast(_pHistogram, existing) if existing is not None else _pHistogram(name, f"Histogram for {name}")
            _P_HISTOS[name] = ph
    ph.observe(value)


# Convenience alias for latency values
def histogram_ms(name: str, elapsed_ms: float, **attrs: Any) -> None:
    """Shortcut: record *elapsed_ms* (milliseconds) in histogram *name*."""
    histogram(name, elapsed_ms, **attrs)


def gauge(name: str, value: float, **attrs: Any) -> None:
    """
    Record *value* in Prometheus **Gauge** *name*.
    """
    with _LOCK:
        g = _P_GAUGES.get(name)
        if g is None:
            existing = _existing(name)
            g = cast(_pGauge, existing) if existing is not None else _pGauge(name, f"Gauge for {name}")
            _P_GAUGES[name] = g
    g.set(value)


__all__ = ["counter", "histogram", "histogram_ms", "gauge"]
