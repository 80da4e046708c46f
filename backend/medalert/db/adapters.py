"""Module: adapters.

Single mapping point between ORM rows and the domain value objects.
"""

from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.streak import Streak
from medalert.domain.inventory import InventoryState
from medalert.domain.streaks import StreakState


def streak_state(row: Streak | None) -> StreakState:
    if row is None:
        return StreakState()
    return StreakState(
        current=row.current_streak or 0,
        longest=row.longest_streak or 0,
        last_taken_at=row.last_taken_at,
        taken_count=row.taken_count or 0,
        skipped_count=row.skipped_count or 0,
        missed_count=row.missed_count or 0,
    )


def store_streak(row: Streak, state: StreakState) -> Streak:
    row.current_streak = state.current
    row.longest_streak = state.longest
    row.last_taken_at = state.last_taken_at
    row.taken_count = state.taken_count
    row.skipped_count = state.skipped_count
    row.missed_count = state.missed_count
    return row


def inventory_state(row: MedicationInventory) -> InventoryState:
    return InventoryState(
        current_quantity=row.current_quantity or 0,
        dose_amount=row.dose_amount or 1,
        refill_threshold=row.refill_threshold,
    )


def store_inventory(row: MedicationInventory, state: InventoryState) -> MedicationInventory:
    row.current_quantity = state.current_quantity
    row.dose_amount = state.dose_amount
    row.refill_threshold = state.refill_threshold
    return row


def streak_payload(medication_id, state: StreakState) -> dict:
    rate = state.adherence_rate()
    return {
        "medication_id": str(medication_id),
        "current_streak": state.current,
        "longest_streak": state.longest,
        "last_taken_at": state.last_taken_at,
        "taken_count": state.taken_count,
        "skipped_count": state.skipped_count,
        "missed_count": state.missed_count,
        "adherence_rate": round(rate, 4) if rate is not None else None,
    }
