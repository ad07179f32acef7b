"""
Line reconciliation.

Turns the desired line set of a create / replace-lines request into a plan of
creates, updates and deletes against the lines already persisted for the
order. Planning is pure: nothing here touches the session, the store applies
the plan inside the caller's unit of work.

quantity_received is never taken from the request. Updated lines re-assert
the persisted value and new lines start at 0.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from exceptions import ValidationError


@dataclass
class LineSpec:
    item_id: int
    quantity_ordered: Any
    unit_price: Any = None
    notes: Optional[str] = None
    line_id: Optional[int] = None


@dataclass
class LineCreate:
    item_id: int
    quantity_ordered: int
    unit_price: Optional[Decimal]
    notes: Optional[str]
    quantity_received: int = 0


@dataclass
class LineUpdate:
    line: Any
    quantity_ordered: int
    unit_price: Optional[Decimal]
    notes: Optional[str]
    quantity_received: int


@dataclass
class LinePlan:
    creates: List[LineCreate] = field(default_factory=list)
    updates: List[LineUpdate] = field(default_factory=list)
    deletes: List[Any] = field(default_factory=list)

    def summary(self) -> str:
        return f"{len(self.creates)} created, {len(self.updates)} updated, {len(self.deletes)} deleted"


def _coerce_quantity(value: Any) -> Optional[int]:
    """Whole, positive quantity or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number != number.to_integral_value() or number <= 0:
        return None
    return int(number)


def _coerce_price(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("not a number")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError("not a number")
    if not price.is_finite() or price < 0:
        raise ValueError("must be a non-negative number")
    return price


def validate_line_specs(specs: Iterable[LineSpec]) -> List[Dict[str, Any]]:
    """
    Normalize every spec or reject the whole batch.

    Returns the normalized specs as dicts. Raises ValidationError listing every
    offending spec (by index) when any of them is invalid.
    """
    normalized = []
    details = []
    seen_items = {}
    seen_line_ids = {}

    for index, spec in enumerate(specs):
        quantity = _coerce_quantity(spec.quantity_ordered)
        if quantity is None:
            details.append({
                "index": index,
                "item_id": spec.item_id,
                "field": "quantity_ordered",
                "message": f"must be a whole number greater than 0, got {spec.quantity_ordered!r}",
            })

        try:
            price = _coerce_price(spec.unit_price)
        except ValueError as e:
            price = None
            details.append({"index": index, "item_id": spec.item_id, "field": "unit_price", "message": str(e)})

        if spec.item_id in seen_items:
            details.append({
                "index": index,
                "item_id": spec.item_id,
                "field": "item_id",
                "message": f"item appears more than once (also at index {seen_items[spec.item_id]})",
            })
        else:
            seen_items[spec.item_id] = index

        if spec.line_id is not None:
            if spec.line_id in seen_line_ids:
                details.append({
                    "index": index,
                    "line_id": spec.line_id,
                    "field": "line_id",
                    "message": f"line appears more than once (also at index {seen_line_ids[spec.line_id]})",
                })
            else:
                seen_line_ids[spec.line_id] = index

        normalized.append({
            "item_id": spec.item_id,
            "quantity_ordered": quantity,
            "unit_price": price,
            "notes": spec.notes or None,
            "line_id": spec.line_id,
        })

    if details:
        raise ValidationError("Line batch rejected; no lines were changed", details)
    return normalized


def plan_line_changes(existing_lines: Iterable, specs: Iterable[LineSpec]) -> LinePlan:
    """
    Diff the desired specs against the persisted lines of one order.

    A spec matches an existing line by line_id when that id is on the order,
    otherwise by item id. Matched lines are updated and keep their
    quantity_received; unmatched specs become new lines; persisted lines no
    spec matched are deleted. An empty spec list therefore deletes every line.
    """
    normalized = validate_line_specs(specs)
    existing_lines = list(existing_lines)
    by_id = {line.id: line for line in existing_lines}
    by_item = {line.inventory_item_id: line for line in existing_lines}

    plan = LinePlan()
    kept = set()
    details = []

    for index, spec in enumerate(normalized):
        line = None
        if spec["line_id"] is not None and spec["line_id"] in by_id:
            line = by_id[spec["line_id"]]
            if line.inventory_item_id != spec["item_id"]:
                details.append({
                    "index": index,
                    "line_id": line.id,
                    "field": "item_id",
                    "message": f"line {line.id} is for item {line.inventory_item_id}; replace the line instead of re-pointing it",
                })
                continue
        else:
            line = by_item.get(spec["item_id"])

        if line is None:
            plan.creates.append(LineCreate(
                item_id=spec["item_id"],
                quantity_ordered=spec["quantity_ordered"],
                unit_price=spec["unit_price"],
                notes=spec["notes"],
            ))
            continue

        kept.add(line.id)
        plan.updates.append(LineUpdate(
            line=line,
            quantity_ordered=spec["quantity_ordered"],
            unit_price=spec["unit_price"],
            notes=spec["notes"],
            quantity_received=line.quantity_received or 0,
        ))

    if details:
        raise ValidationError("Line batch rejected; no lines were changed", details)

    plan.deletes = [line for line in existing_lines if line.id not in kept]
    return plan
