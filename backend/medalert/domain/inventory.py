"""Module: inventory."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from medalert.core.errors import InvalidQuantity

BELOW_THRESHOLD = "below_threshold"
DEPLETED = "depleted"

# Refill threshold applied when none is configured, as a share of the refill quantity.
DEFAULT_THRESHOLD_RATIO = 0.2


@dataclass(frozen=True)
class InventoryState:
    current_quantity: float
    dose_amount: float = 1
    refill_threshold: float | None = None

    def status(self) -> str | None:
        if self.current_quantity <= 0:
            return DEPLETED
        if self.refill_threshold is not None and self.current_quantity <= self.refill_threshold:
            return BELOW_THRESHOLD
        return None

    def consume(self, quantity: float | None = None) -> tuple["InventoryState", str | None]:
        """
        Take ``quantity`` units (default: one dose amount) out of stock.

        Stock is clamped at zero rather than rejecting the dose; a dose that
        empties or overdraws the supply reports ``depleted``.
        """
        amount = self.dose_amount if quantity is None else quantity
        if amount <= 0:
            raise InvalidQuantity(f"Dose quantity must be positive (got {amount})")

        updated = replace(self, current_quantity=max(0, self.current_quantity - amount))
        return updated, updated.status()

    def refill(self, quantity: float) -> tuple["InventoryState", bool]:
        """Add stock; returns the new state and whether it climbed back over the threshold."""
        if quantity <= 0:
            raise InvalidQuantity(f"Refill quantity must be positive (got {quantity})")

        threshold = self.refill_threshold
        if threshold is None:
            threshold = math.floor(quantity * DEFAULT_THRESHOLD_RATIO)

        was_low = self.current_quantity <= threshold
        updated = replace(self, current_quantity=self.current_quantity + quantity, refill_threshold=threshold)
        restored = was_low and updated.current_quantity > threshold
        return updated, restored
