"""
Tests for fixed expense groups: CRUD, ordering, bulk toggle, membership
"""
import pytest
from decimal import Decimal

from ledger.domain.errors import NotFoundError, IntegrityViolationError
from ledger.infrastructure.db.models import FixedExpenseGroupModel, SubPocketModel, PocketModel
from ledger.application.sub_pockets import CreateSubPocketUseCase, GetFixedExpensesSummaryUseCase
from ledger.application.movements import CreateMovementUseCase
from ledger.application.expense_groups import (
    CreateFixedExpenseGroupUseCase, UpdateFixedExpenseGroupUseCase, DeleteFixedExpenseGroupUseCase,
    ReorderFixedExpenseGroupsUseCase, ToggleGroupUseCase, MoveSubPocketToGroupUseCase,
    FixedExpenseGroupQueries,
)


@pytest.fixture
def group_id(db_session):
    return CreateFixedExpenseGroupUseCase(db_session).execute(name="Home", color="#3b82f6")


@pytest.fixture
def grouped_sub_pockets(db_session, fixed_pocket_id, sub_pocket_id, group_id):
    """Insurance и Rent в группе Home, Gym без группы"""
    create = CreateSubPocketUseCase(db_session)
    rent_id = create.execute(
        pocket_id=fixed_pocket_id, name="Rent", target_value="100", periodicity_months=1, group_id=group_id
    )
    gym_id = create.execute(pocket_id=fixed_pocket_id, name="Gym", target_value="60", periodicity_months=1)
    MoveSubPocketToGroupUseCase(db_session).execute(sub_pocket_id, group_id)
    return sub_pocket_id, rent_id, gym_id


def test_create_group(db_session, group_id):
    group = db_session.get(FixedExpenseGroupModel, group_id)

    assert group.name == "Home"
    assert group.color == "#3b82f6"
    assert group.sort_order == 0


@pytest.mark.parametrize("name,color,message", [
    ("  ", "#3b82f6", "пустым"),
    ("Car", "blue", "цвет"),
    ("Car", "#3b82f", "цвет"),
    ("Car", "", "цвет"),
])
def test_create_group_validation(db_session, name, color, message):
    with pytest.raises(IntegrityViolationError, match=message):
        CreateFixedExpenseGroupUseCase(db_session).execute(name=name, color=color)


def test_duplicate_group_name_rejected(db_session, group_id):
    with pytest.raises(IntegrityViolationError, match="уже существует"):
        CreateFixedExpenseGroupUseCase(db_session).execute(name=" home ", color="#000000")


def test_update_group(db_session, group_id):
    UpdateFixedExpenseGroupUseCase(db_session).execute(group_id, name="Household", color="#ABCDEF")

    group = db_session.get(FixedExpenseGroupModel, group_id)
    assert group.name == "Household"
    assert group.color == "#ABCDEF"

    with pytest.raises(IntegrityViolationError):
        UpdateFixedExpenseGroupUseCase(db_session).execute(group_id, color="#GGGGGG")
    with pytest.raises(NotFoundError):
        UpdateFixedExpenseGroupUseCase(db_session).execute(404, name="X")


def test_reorder_groups(db_session, group_id):
    car_id = CreateFixedExpenseGroupUseCase(db_session).execute(name="Car", color="#111111")
    assert db_session.get(FixedExpenseGroupModel, car_id).sort_order == 1

    ReorderFixedExpenseGroupsUseCase(db_session).execute([car_id, group_id])

    assert [g.name for g in FixedExpenseGroupQueries(db_session).groups()] == ["Car", "Home"]
    with pytest.raises(IntegrityViolationError):
        ReorderFixedExpenseGroupsUseCase(db_session).execute([car_id, car_id])
    with pytest.raises(NotFoundError):
        ReorderFixedExpenseGroupsUseCase(db_session).execute([car_id, 404])


def test_move_sub_pocket_between_groups(db_session, grouped_sub_pockets, group_id):
    insurance_id, rent_id, gym_id = grouped_sub_pockets
    queries = FixedExpenseGroupQueries(db_session)

    assert [sp.id for sp in queries.members(group_id)] == [insurance_id, rent_id]
    assert [sp.id for sp in queries.members(None)] == [gym_id]

    MoveSubPocketToGroupUseCase(db_session).execute(rent_id, None)

    assert db_session.get(SubPocketModel, rent_id).group_id is None
    assert [sp.id for sp in queries.members(None)] == [rent_id, gym_id]


def test_move_sub_pocket_validation(db_session, sub_pocket_id):
    with pytest.raises(NotFoundError, match="Группа"):
        MoveSubPocketToGroupUseCase(db_session).execute(sub_pocket_id, 404)
    with pytest.raises(NotFoundError, match="Sub-pocket"):
        MoveSubPocketToGroupUseCase(db_session).execute(404, None)


def test_toggle_group_enables_all_if_any_disabled(db_session, grouped_sub_pockets, group_id):
    insurance_id, rent_id, gym_id = grouped_sub_pockets
    toggle = ToggleGroupUseCase(db_session)

    # Все включены - выключаем всех
    assert toggle.execute(group_id) is False
    assert db_session.get(SubPocketModel, insurance_id).enabled is False
    assert db_session.get(SubPocketModel, rent_id).enabled is False
    assert db_session.get(SubPocketModel, gym_id).enabled is True

    db_session.get(SubPocketModel, rent_id).enabled = True
    db_session.commit()

    assert toggle.execute(group_id) is True
    assert db_session.get(SubPocketModel, insurance_id).enabled is True


def test_toggle_group_changes_plan_not_balances(
    db_session, account_id, fixed_pocket_id, grouped_sub_pockets, group_id
):
    insurance_id, _, _ = grouped_sub_pockets
    CreateMovementUseCase(db_session).execute(
        "IncomeFixed", account_id, fixed_pocket_id, "300", sub_pocket_id=insurance_id
    )

    ToggleGroupUseCase(db_session).execute(group_id)

    summary = GetFixedExpensesSummaryUseCase(db_session).execute(fixed_pocket_id)
    assert summary.total_monthly == Decimal("60")
    assert db_session.get(PocketModel, fixed_pocket_id).balance == Decimal("300")
    assert {i.group_id for i in summary.items} == {group_id, None}


def test_delete_group_ungroups_members(db_session, grouped_sub_pockets, group_id):
    insurance_id, rent_id, _ = grouped_sub_pockets

    ungrouped = DeleteFixedExpenseGroupUseCase(db_session).execute(group_id)

    assert ungrouped == 2
    assert db_session.get(FixedExpenseGroupModel, group_id) is None
    assert db_session.get(SubPocketModel, insurance_id).group_id is None
    assert db_session.get(SubPocketModel, rent_id) is not None
    with pytest.raises(NotFoundError):
        ToggleGroupUseCase(db_session).execute(group_id)
