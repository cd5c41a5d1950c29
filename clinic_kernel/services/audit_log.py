"""
CalculationAuditLog -- bounded in-memory record of aggregation runs.

Responsibility:
    Keeps the most recent calculation invocations (inputs, outputs and
    record counts) for diagnostic replay.  Purely in-memory; nothing is
    persisted.

Architecture position:
    Kernel > Services -- diagnostic infrastructure.  Injected into the
    engines that report to it; engines never reach for a global.

Invariants enforced:
    - Never holds more than ``capacity`` entries; the oldest entry is
      evicted first (FIFO).
    - Appends are serialised by a lock so concurrent report requests
      cannot break the size bound.
    - ``record()`` never raises and never changes what the caller returns.

Failure modes:
    - A snapshot that cannot be copied is dropped and a warning logged.

Usage::

    audit_log = CalculationAuditLog(capacity=1000, clock=DeterministicClock())
    aggregator = FinancialAggregator(audit_log=audit_log)
    aggregator.aggregate(...)
    audit_log.latest().calculation_type  # "financial_summary"
"""

from __future__ import annotations

import copy
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.logging_config import get_logger

logger = get_logger("services.audit_log")

DEFAULT_CAPACITY = 1000


@dataclass(frozen=True)
class AuditEntry:
    """One recorded calculation."""

    timestamp: datetime
    calculation_type: str
    parameters: Mapping[str, Any]
    results: Mapping[str, Any]
    data_counts: Mapping[str, int]


class CalculationAuditLog:
    """
    Append-only ring buffer of ``AuditEntry`` values.

    Contract:
        ``record`` is best-effort and side-effect free for the caller.
        ``entries`` returns a copy (oldest first); mutating it does not
        touch the log.

    Non-goals:
        - Does NOT persist entries or survive a process restart.
        - Does NOT deduplicate identical calculations.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Clock | None = None,
        enabled: bool = True,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._clock = clock or SystemClock()
        self._enabled = enabled
        self._entries: deque[AuditEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record(
        self,
        calculation_type: str,
        parameters: Mapping[str, Any],
        results: Mapping[str, Any],
        data_counts: Mapping[str, int] | None = None,
    ) -> None:
        """Append one entry; drops the oldest when full."""
        if not self._enabled:
            return
        try:
            entry = AuditEntry(
                timestamp=self._clock.now(),
                calculation_type=calculation_type,
                parameters=copy.deepcopy(dict(parameters)),
                results=copy.deepcopy(dict(results)),
                data_counts=dict(data_counts or {}),
            )
        except Exception:
            logger.warning(
                "audit_entry_dropped",
                extra={"calculation_type": calculation_type},
                exc_info=True,
            )
            return

        with self._lock:
            self._entries.append(entry)
            size = len(self._entries)

        logger.debug("audit_entry_recorded", extra={
            "calculation_type": calculation_type,
            "results": entry.results,
            "data_counts": entry.data_counts,
            "log_size": size,
        })

    def entries(self) -> list[AuditEntry]:
        """All retained entries, oldest first (read-only copy)."""
        with self._lock:
            return list(self._entries)

    def latest(self) -> AuditEntry | None:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def entries_of_type(self, calculation_type: str) -> list[AuditEntry]:
        return [e for e in self.entries() if e.calculation_type == calculation_type]

    def clear(self) -> None:
        """Discard all entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# Process-wide instance for callers that do not inject one
# ---------------------------------------------------------------------------

_default_log: CalculationAuditLog | None = None
_default_lock = threading.Lock()


def default_audit_log() -> CalculationAuditLog:
    """Return the lazily created process-wide audit log."""
    global _default_log
    with _default_lock:
        if _default_log is None:
            _default_log = CalculationAuditLog()
        return _default_log


def reset_default_audit_log() -> None:
    """Drop the process-wide audit log. FOR TESTING ONLY."""
    global _default_log
    with _default_lock:
        _default_log = None
