# src/rulebook_engine/infrastructure/observability/metrics.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Prometheus metrics utilities (registry-aware, hot-reload safe).

Rulebook generation metrics are provided through accessor functions that
return collectors bound to the **current** ``prometheus_client.REGISTRY``:

- Safe under hot reload and tests that swap the default registry.
- No duplicate-registration errors.
- Cache automatically resets when the active registry changes.

Collectors:
    * ``rulebook_generation_runs_total{outcome}``
    * ``rulebook_generation_candidates_total{result}``
    * ``rulebook_generation_run_duration_seconds``

:class:`PrometheusGenerationObserver` adapts these collectors to the
observer hook accepted by ``RunRulebookTaskGenerationUseCase``.

Example:
    observer = PrometheusGenerationObserver()
    use_case = RunRulebookTaskGenerationUseCase(uow=uow, observer=observer)
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Final

import prometheus_client as prom
from prometheus_client import Counter, Histogram

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Run durations are dominated by database round-trips (seconds).
_RUN_BUCKETS: Final[tuple[float, ...]] = (
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
    300.0,
)

# Cache keyed by metric name within the currently-active registry.
_registry_id: int | None = None
_hist_cache: dict[str, Histogram] = {}
_counter_cache: dict[str, Counter] = {}
_lock = threading.RLock()


# ---------------------------------------------------------------------------
# Registry-handling primitives


def _active_registry_id() -> int:
    """Return an identifier for the current default registry."""
    return id(prom.REGISTRY)


def _ensure_registry() -> None:
    """Reset caches if the active registry changed.

    This must be called before any metric lookup/creation to avoid mixing
    collectors across registries (common in tests).
    """
    global _registry_id
    with _lock:
        rid = _active_registry_id()
        if _registry_id is None or _registry_id != rid:
            _hist_cache.clear()
            _counter_cache.clear()
            _registry_id = rid


def _lookup_existing(name: str, kind: type[Counter] | type[Histogram]) -> Counter | Histogram | None:
    """Return a previously-registered collector of ``kind`` from the active registry."""
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            col = mapping.get(name)
            if isinstance(col, kind):
                return col
    return None


# ---------------------------------------------------------------------------
# Get-or-create helpers


def _get_or_create_hist(
    name: str,
    help_text: str,
    *,
    buckets: tuple[float, ...] = _RUN_BUCKETS,
    labelnames: tuple[str, ...] = (),
) -> Histogram:
    """Get or create a registry-bound ``Histogram`` with stable identity.

    Strategy:
    1. Return from module cache if present for the active registry.
    2. If registry already has a collector by this name, reuse it.
    3. Otherwise, register a new collector on the active registry.
    4. If concurrent registration triggers a duplication error, retry step 2.
    """
    _ensure_registry()
    with _lock:
        cached = _hist_cache.get(name)
        if cached is not None:
            return cached

        existing = _lookup_existing(name, Histogram)
        if isinstance(existing, Histogram):
            _hist_cache[name] = existing
            return existing

        try:
            h = Histogram(name, help_text, labelnames, buckets=buckets, registry=prom.REGISTRY)
            _hist_cache[name] = h
            return h
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, Histogram)
                if isinstance(again, Histogram):
                    _hist_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus histogram %s", name)
            raise


def _get_or_create_counter(
    name: str,
    help_text: str,
    *,
    labelnames: tuple[str, ...] = (),
) -> Counter:
    """Get or create a registry-bound ``Counter`` with stable identity."""
    _ensure_registry()
    with _lock:
        cached = _counter_cache.get(name)
        if cached is not None:
            return cached

        existing = _lookup_existing(name, Counter)
        if isinstance(existing, Counter):
            _counter_cache[name] = existing
            return existing

        try:
            c = Counter(name, help_text, labelnames, registry=prom.REGISTRY)
            _counter_cache[name] = c
            return c
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, Counter)
                if isinstance(again, Counter):
                    _counter_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus counter %s", name)
            raise


# ---------------------------------------------------------------------------
# Rulebook generation metrics


def get_generation_runs_total() -> Counter:
    """Return counter of generation runs.

    Labels:
        outcome: ``completed|failed|dry_run|no_active_version``.
    """
    return _get_or_create_counter(
        name="rulebook_generation_runs_total",
        help_text="Rulebook generation runs by outcome",
        labelnames=("outcome",),
    )


def get_generation_candidates_total() -> Counter:
    """Return counter of evaluated rule instances and candidates.

    Labels:
        result: ``created|linked|already_generated|skipped_by_condition|
            skipped_no_assignee|error``.
    """
    return _get_or_create_counter(
        name="rulebook_generation_candidates_total",
        help_text="Rulebook generation candidates by result",
        labelnames=("result",),
    )


def get_generation_run_duration_seconds() -> Histogram:
    """Return histogram of generation run wall time."""
    return _get_or_create_hist(
        name="rulebook_generation_run_duration_seconds",
        help_text="Wall time of a rulebook generation run (seconds)",
    )


class PrometheusGenerationObserver:
    """Generation observer recording to the Prometheus collectors above."""

    def candidate(self, result: str) -> None:
        """Count one candidate outcome."""
        get_generation_candidates_total().labels(result=result).inc()

    def run_finished(self, outcome: str, duration_seconds: float) -> None:
        """Count a finished run and record its duration."""
        get_generation_runs_total().labels(outcome=outcome).inc()
        get_generation_run_duration_seconds().observe(duration_seconds)


__all__ = [
    "PrometheusGenerationObserver",
    "get_generation_candidates_total",
    "get_generation_run_duration_seconds",
    "get_generation_runs_total",
]
