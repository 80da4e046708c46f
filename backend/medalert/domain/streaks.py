"""Module: streaks."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Protocol

TAKEN = "taken"
SKIPPED = "skipped"
MISSED = "missed"
DELAYED = "delayed"

DOSE_ACTIONS = (TAKEN, SKIPPED, MISSED, DELAYED)
TERMINAL_ACTIONS = (TAKEN, SKIPPED, MISSED)


class DoseEventLike(Protocol):
    action: str
    taken_at: datetime | None
    recorded_at: datetime


# Consecutive-adherence counters for one medication, plus the raw counts adherence is derived from.
@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_taken_at: datetime | None = None
    taken_count: int = 0
    skipped_count: int = 0
    missed_count: int = 0

    def on_taken(self, at: datetime) -> "StreakState":
        current = self.current + 1
        return replace(
            self,
            current=current,
            longest=max(self.longest, current),
            last_taken_at=at,
            taken_count=self.taken_count + 1,
        )

    def on_skipped_or_missed(self, action: str) -> "StreakState":
        if action == SKIPPED:
            return replace(self, current=0, skipped_count=self.skipped_count + 1)
        if action == MISSED:
            return replace(self, current=0, missed_count=self.missed_count + 1)
        raise ValueError(f"Not a streak-breaking action: {action!r}")

    def apply(self, action: str, at: datetime) -> "StreakState":
        if action == TAKEN:
            return self.on_taken(at)
        if action in (SKIPPED, MISSED):
            return self.on_skipped_or_missed(action)
        # Delays are not a dose outcome.
        return self

    def adherence_rate(self) -> float | None:
        return adherence_rate(self.taken_count, self.skipped_count, self.missed_count)


def adherence_rate(taken: int, skipped: int, missed: int) -> float | None:
    total = taken + skipped + missed
    if total == 0:
        return None
    return taken / total


def replay(events: Iterable[DoseEventLike], initial: StreakState | None = None) -> StreakState:
    """Rebuild streak counters from a medication's event log, oldest first."""
    state = initial or StreakState()
    for event in events:
        state = state.apply(event.action, event.taken_at or event.recorded_at)
    return state


def adherence_summary(events: Iterable[DoseEventLike], start: datetime, end: datetime) -> dict:
    counts = {TAKEN: 0, SKIPPED: 0, MISSED: 0, DELAYED: 0}
    for event in events:
        if start <= event.recorded_at < end and event.action in counts:
            counts[event.action] += 1

    rate = adherence_rate(counts[TAKEN], counts[SKIPPED], counts[MISSED])
    return {
        "taken": counts[TAKEN],
        "skipped": counts[SKIPPED],
        "missed": counts[MISSED],
        "delayed": counts[DELAYED],
        "adherence_rate": round(rate, 4) if rate is not None else None,
    }
