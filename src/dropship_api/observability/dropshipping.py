"""In-memory dropshipping observability store for runtime metrics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProviderEventLog:
    """Most recent noteworthy events for one provider."""

    last_failure_at: datetime | None = None
    last_failure_message: str | None = None
    last_circuit_open_at: datetime | None = None
    last_success_at: datetime | None = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "last_failure_at": self.last_failure_at.isoformat() if self.last_failure_at else None,
            "last_failure_message": self.last_failure_message,
            "last_circuit_open_at": self.last_circuit_open_at.isoformat()
            if self.last_circuit_open_at
            else None,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
        }


@dataclass
class DropshipMetricsSnapshot:
    """Serializable snapshot returned to API consumers."""

    totals: Dict[str, int]
    per_provider: Dict[str, Dict[str, int]]
    events: Dict[str, ProviderEventLog]

    def as_dict(self) -> Dict[str, object]:
        return {
            "totals": self.totals,
            "per_provider": self.per_provider,
            "events": {provider: log.as_dict() for provider, log in self.events.items()},
        }


_COUNTERS = ("calls", "failures", "retries", "rejected", "circuit_opened")


@dataclass
class DropshipObservabilityStore:
    """Tracks vendor call counters and recent events per provider."""

    _lock: Lock = field(default_factory=Lock)
    _totals: Counter = field(default_factory=Counter)
    _per_counter: Dict[str, Counter] = field(
        default_factory=lambda: {name: Counter() for name in _COUNTERS}
    )
    _events: Dict[str, ProviderEventLog] = field(default_factory=dict)

    def _bump(self, counter: str, provider: str) -> None:
        self._totals[counter] += 1
        self._per_counter[counter][provider] += 1

    def _log_for(self, provider: str) -> ProviderEventLog:
        return self._events.setdefault(provider, ProviderEventLog())

    def record_call(self, provider: str) -> None:
        with self._lock:
            self._bump("calls", provider)

    def record_success(self, provider: str) -> None:
        with self._lock:
            self._log_for(provider).last_success_at = _utcnow()

    def record_failure(self, provider: str, error_message: str) -> None:
        with self._lock:
            self._bump("failures", provider)
            log = self._log_for(provider)
            log.last_failure_at = _utcnow()
            log.last_failure_message = error_message

    def record_retry(self, provider: str) -> None:
        with self._lock:
            self._bump("retries", provider)

    def record_rejected(self, provider: str) -> None:
        """Call short-circuited by an open breaker."""

        with self._lock:
            self._bump("rejected", provider)

    def record_circuit_open(self, provider: str) -> None:
        with self._lock:
            self._bump("circuit_opened", provider)
            self._log_for(provider).last_circuit_open_at = _utcnow()

    def snapshot(self) -> DropshipMetricsSnapshot:
        with self._lock:
            totals = {name: self._totals.get(name, 0) for name in _COUNTERS}
            providers = set()
            for counter in self._per_counter.values():
                providers.update(counter.keys())
            per_provider = {
                provider: {name: self._per_counter[name].get(provider, 0) for name in _COUNTERS}
                for provider in sorted(providers)
            }
            events = {
                provider: ProviderEventLog(
                    last_failure_at=log.last_failure_at,
                    last_failure_message=log.last_failure_message,
                    last_circuit_open_at=log.last_circuit_open_at,
                    last_success_at=log.last_success_at,
                )
                for provider, log in self._events.items()
            }
        return DropshipMetricsSnapshot(totals=totals, per_provider=per_provider, events=events)

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()
            for counter in self._per_counter.values():
                counter.clear()
            self._events = {}


_DROPSHIP_STORE = DropshipObservabilityStore()


def get_dropship_store() -> DropshipObservabilityStore:
    return _DROPSHIP_STORE
