import pytest

from medalert.core.errors import InvalidQuantity
from medalert.domain.inventory import BELOW_THRESHOLD, DEPLETED, InventoryState


def test_consume_defaults_to_dose_amount():
    state, status = InventoryState(current_quantity=30, dose_amount=2, refill_threshold=5).consume()
    assert state.current_quantity == 28
    assert status is None


def test_consume_flags_below_threshold_at_or_under_threshold():
    state, status = InventoryState(current_quantity=6, dose_amount=1, refill_threshold=5).consume()
    assert state.current_quantity == 5
    assert status == BELOW_THRESHOLD


def test_consume_to_exactly_zero_is_depleted():
    state, status = InventoryState(current_quantity=1, dose_amount=1).consume()
    assert state.current_quantity == 0
    assert status == DEPLETED


def test_overdraw_clamps_to_zero_and_flags_depleted():
    state, status = InventoryState(current_quantity=1, dose_amount=1).consume(3)
    assert state.current_quantity == 0
    assert status == DEPLETED


def test_quantity_never_negative_over_many_takes():
    state = InventoryState(current_quantity=5, dose_amount=2, refill_threshold=1)
    for _ in range(10):
        state, _ = state.consume()
        assert state.current_quantity >= 0
    assert state.status() == DEPLETED


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_consume_is_rejected(quantity):
    with pytest.raises(InvalidQuantity):
        InventoryState(current_quantity=5).consume(quantity)


def test_no_threshold_means_only_depletion_is_flagged():
    _, status = InventoryState(current_quantity=2, dose_amount=1).consume()
    assert status is None


def test_refill_sets_default_threshold_from_refill_quantity():
    state, restored = InventoryState(current_quantity=0).refill(30)
    assert state.current_quantity == 30
    assert state.refill_threshold == 6
    assert restored is True


def test_refill_keeps_configured_threshold():
    state, restored = InventoryState(current_quantity=20, refill_threshold=5).refill(10)
    assert state.refill_threshold == 5
    assert state.current_quantity == 30
    # It was never low, so nothing was restored.
    assert restored is False


def test_refill_that_stays_low_does_not_restore():
    state, restored = InventoryState(current_quantity=1, refill_threshold=10).refill(3)
    assert state.current_quantity == 4
    assert restored is False
    assert state.status() == BELOW_THRESHOLD


@pytest.mark.parametrize("quantity", [0, -5])
def test_non_positive_refill_is_rejected(quantity):
    with pytest.raises(InvalidQuantity):
        InventoryState(current_quantity=1).refill(quantity)
