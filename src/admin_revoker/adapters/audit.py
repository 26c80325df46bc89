"""
Audit adapter — implements AuditReporter on top of structlog.

Audit records are ordinary structlog events bound with `audit=True`, so a
log shipper can route them separately. Counters stand in for the statsd
counters of long-running services: the tool runs once per invocation, so
each increment is emitted as an event carrying the running total.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

import structlog


class StructlogAuditReporter:
    """Emit audit records and counters through a bound structlog logger."""

    def __init__(self, admin_identity: str, logger: Any | None = None) -> None:
        self._log = (logger or structlog.get_logger()).bind(
            audit=True, admin=admin_identity
        )
        self._counters: Counter[str] = Counter()

    def record(self, message: str, **fields: Any) -> None:
        self._log.info(message, **fields)

    def increment(self, counter: str, value: int = 1) -> None:
        self._counters[counter] += value
        self._log.info("audit.counter", counter=counter, value=value, total=self._counters[counter])

    @property
    def counters(self) -> dict[str, int]:
        return dict(self._counters)
