"""
Tests for Movement domain rules: direction, effect target, grouping
"""
import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from ledger.domain.errors import IntegrityViolationError
from ledger.domain.movement import (
    Movement, MovementEffect, EFFECT_TARGET_POCKET, EFFECT_TARGET_SUB_POCKET,
    MOVEMENT_INCOME_NORMAL, MOVEMENT_EXPENSE_NORMAL, MOVEMENT_INCOME_FIXED,
    MOVEMENT_EXPENSE_FIXED, MOVEMENT_INVESTMENT_DEPOSIT, MOVEMENT_INVESTMENT_SHARES,
    signed_amount, validate_movement_type, group_by_month, month_key,
)


@pytest.mark.parametrize("movement_type,expected", [
    (MOVEMENT_INCOME_NORMAL, Decimal("100")),
    (MOVEMENT_EXPENSE_NORMAL, Decimal("-100")),
    (MOVEMENT_INCOME_FIXED, Decimal("100")),
    (MOVEMENT_EXPENSE_FIXED, Decimal("-100")),
    (MOVEMENT_INVESTMENT_DEPOSIT, Decimal("100")),
    (MOVEMENT_INVESTMENT_SHARES, Decimal("100")),
])
def test_signed_amount_direction(movement_type, expected):
    """Направление задаётся типом, сумма всегда положительна"""
    assert signed_amount(movement_type, Decimal("100")) == expected


def test_validate_movement_type_rejects_unknown():
    with pytest.raises(IntegrityViolationError, match="Неверный тип движения"):
        validate_movement_type("Refund")


def test_effect_goes_to_pocket():
    movement = Movement(MOVEMENT_EXPENSE_NORMAL, account_id=1, pocket_id=2, amount=Decimal("40"))

    effect = movement.effect()

    assert effect == MovementEffect(EFFECT_TARGET_POCKET, 2, Decimal("-40"))


def test_effect_goes_to_sub_pocket_when_linked():
    movement = Movement(
        MOVEMENT_INCOME_FIXED, account_id=1, pocket_id=2, amount=Decimal("100"), sub_pocket_id=7
    )

    effect = movement.effect()

    assert effect.target == EFFECT_TARGET_SUB_POCKET
    assert effect.target_id == 7
    assert effect.delta == Decimal("100")
    assert not effect.is_investment


def test_investment_effect_always_increments_recording_pocket():
    movement = Movement(MOVEMENT_INVESTMENT_SHARES, account_id=1, pocket_id=3, amount=Decimal("2.5"))

    effect = movement.effect()

    assert effect.target == EFFECT_TARGET_POCKET
    assert effect.target_id == 3
    assert effect.delta == Decimal("2.5")
    assert effect.is_investment


@pytest.mark.parametrize("flags", [
    {"is_pending": True},
    {"is_orphaned": True},
    {"is_pending": True, "is_orphaned": True},
])
def test_pending_or_orphaned_movement_has_no_effect(flags):
    movement = Movement(MOVEMENT_INCOME_NORMAL, account_id=1, pocket_id=2, amount=Decimal("10"), **flags)

    assert movement.has_effect is False
    assert movement.effect() is None


def test_reversed_effect_negates_delta():
    effect = MovementEffect(EFFECT_TARGET_POCKET, 2, Decimal("15"))

    assert effect.reversed().delta == Decimal("-15")
    assert effect.reversed().target_id == 2


def test_of_builds_snapshot_from_record():
    record = SimpleNamespace(
        id=99, movement_type=MOVEMENT_INCOME_NORMAL, account_id=1, pocket_id=2,
        amount=Decimal("5"), sub_pocket_id=None, is_pending=True, is_orphaned=False,
        notes="ignored",
    )

    movement = Movement.of(record)

    assert movement == Movement(MOVEMENT_INCOME_NORMAL, 1, 2, Decimal("5"), None, True, False)


def test_merged_ignores_non_balance_fields():
    movement = Movement(MOVEMENT_INCOME_NORMAL, account_id=1, pocket_id=2, amount=Decimal("5"))

    merged = movement.merged(amount=Decimal("8"), notes="lunch", displayed_date=date(2025, 1, 1))

    assert merged.amount == Decimal("8")
    assert merged.pocket_id == 2
    assert movement.amount == Decimal("5")


def test_group_by_month_keeps_order_within_group():
    rows = [
        SimpleNamespace(id=1, displayed_date=date(2025, 1, 31)),
        SimpleNamespace(id=2, displayed_date=date(2025, 2, 1)),
        SimpleNamespace(id=3, displayed_date=date(2025, 1, 2)),
    ]

    grouped = group_by_month(rows)

    assert list(grouped) == ["2025-01", "2025-02"]
    assert [r.id for r in grouped["2025-01"]] == [1, 3]
    assert month_key(date(2024, 12, 5)) == "2024-12"
