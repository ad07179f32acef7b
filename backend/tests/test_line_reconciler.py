from decimal import Decimal
from types import SimpleNamespace

import pytest

from exceptions import ValidationError
from services.line_reconciler import LineSpec, plan_line_changes, validate_line_specs


def _line(line_id, item_id, ordered, received=0, unit_price=None, notes=None):
    return SimpleNamespace(
        id=line_id,
        inventory_item_id=item_id,
        quantity_ordered=ordered,
        quantity_received=received,
        unit_price=unit_price,
        notes=notes,
    )


def test_new_order_creates_every_line_with_nothing_received():
    plan = plan_line_changes([], [LineSpec(item_id=1, quantity_ordered=10), LineSpec(item_id=2, quantity_ordered=5)])

    assert [(c.item_id, c.quantity_ordered, c.quantity_received) for c in plan.creates] == [(1, 10, 0), (2, 5, 0)]
    assert plan.updates == []
    assert plan.deletes == []


def test_matching_item_updates_line_and_keeps_received_quantity():
    existing = [_line(11, item_id=1, ordered=10, received=4)]

    plan = plan_line_changes(existing, [LineSpec(item_id=1, quantity_ordered=12, unit_price="2.50", notes="rush")])

    assert plan.creates == [] and plan.deletes == []
    update = plan.updates[0]
    assert update.line is existing[0]
    assert update.quantity_ordered == 12
    assert update.unit_price == Decimal("2.50")
    assert update.notes == "rush"
    assert update.quantity_received == 4


def test_line_id_takes_precedence_and_unknown_line_id_falls_back_to_item():
    existing = [_line(11, item_id=1, ordered=10, received=3), _line(12, item_id=2, ordered=5)]

    plan = plan_line_changes(existing, [
        LineSpec(item_id=1, quantity_ordered=10, line_id=11),
        LineSpec(item_id=2, quantity_ordered=6, line_id=999),
    ])

    assert [u.line.id for u in plan.updates] == [11, 12]
    assert plan.creates == [] and plan.deletes == []


def test_line_id_for_a_different_item_is_rejected():
    existing = [_line(11, item_id=1, ordered=10), _line(12, item_id=2, ordered=5)]

    with pytest.raises(ValidationError) as excinfo:
        plan_line_changes(existing, [LineSpec(item_id=2, quantity_ordered=5, line_id=11)])

    assert excinfo.value.details[0]["line_id"] == 11
    assert excinfo.value.details[0]["field"] == "item_id"


def test_omitted_lines_are_deleted_and_empty_list_clears_order():
    existing = [_line(11, item_id=1, ordered=10, received=4), _line(12, item_id=2, ordered=5)]

    plan = plan_line_changes(existing, [LineSpec(item_id=1, quantity_ordered=10)])
    assert [line.id for line in plan.deletes] == [12]
    assert plan.updates[0].quantity_received == 4

    cleared = plan_line_changes(existing, [])
    assert [line.id for line in cleared.deletes] == [11, 12]
    assert cleared.summary() == "0 created, 0 updated, 2 deleted"


@pytest.mark.parametrize("quantity", [-1, 0, 2.5, "abc", None, True, "NaN"])
def test_bad_quantity_rejects_whole_batch(quantity):
    specs = [LineSpec(item_id=1, quantity_ordered=10), LineSpec(item_id=2, quantity_ordered=quantity)]

    with pytest.raises(ValidationError) as excinfo:
        validate_line_specs(specs)

    assert excinfo.value.details == [
        {
            "index": 1,
            "item_id": 2,
            "field": "quantity_ordered",
            "message": f"must be a whole number greater than 0, got {quantity!r}",
        }
    ]


def test_whole_number_strings_and_decimals_are_accepted():
    normalized = validate_line_specs([
        LineSpec(item_id=1, quantity_ordered="7"),
        LineSpec(item_id=2, quantity_ordered=Decimal("3.0")),
    ])

    assert [n["quantity_ordered"] for n in normalized] == [7, 3]


def test_every_offending_spec_is_reported():
    specs = [
        LineSpec(item_id=1, quantity_ordered=0),
        LineSpec(item_id=2, quantity_ordered=5, unit_price="-1"),
        LineSpec(item_id=1, quantity_ordered=3),
        LineSpec(item_id=3, quantity_ordered=1, unit_price="cheap"),
    ]

    with pytest.raises(ValidationError) as excinfo:
        validate_line_specs(specs)

    reported = [(d["index"], d["field"]) for d in excinfo.value.details]
    assert reported == [(0, "quantity_ordered"), (1, "unit_price"), (2, "item_id"), (3, "unit_price")]
    assert "no lines were changed" in str(excinfo.value)


def test_duplicate_line_ids_are_rejected():
    with pytest.raises(ValidationError) as excinfo:
        validate_line_specs([
            LineSpec(item_id=1, quantity_ordered=1, line_id=5),
            LineSpec(item_id=2, quantity_ordered=1, line_id=5),
        ])

    assert excinfo.value.details[0]["field"] == "line_id"


def test_replanning_applied_state_changes_nothing():
    specs = [LineSpec(item_id=1, quantity_ordered=10, unit_price="1.5"), LineSpec(item_id=2, quantity_ordered=5)]
    existing = [
        _line(11, item_id=1, ordered=10, received=4, unit_price=Decimal("1.5")),
        _line(12, item_id=2, ordered=5, received=0),
    ]

    plan = plan_line_changes(existing, specs)

    assert plan.creates == [] and plan.deletes == []
    for update in plan.updates:
        line = update.line
        assert (update.quantity_ordered, update.unit_price, update.notes, update.quantity_received) == (
            line.quantity_ordered, line.unit_price, line.notes, line.quantity_received
        )
