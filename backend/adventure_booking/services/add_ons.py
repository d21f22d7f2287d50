"""
Add-on catalog and selection rules.

Combos are bundles sold at a single price. A combo supersedes the items it
includes: selecting one removes those items from the selection, and
normalization drops any that slip back in, so a guest is never charged twice
for the same extra.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from fastapi import HTTPException, status

from adventure_booking.schemas.pricing import AddOnRequest, SelectedAddOn


@dataclass(frozen=True)
class AddOn:
    id: str
    name: str
    price: Decimal
    category: str
    max_quantity: Optional[int] = None
    includes: tuple[str, ...] = field(default_factory=tuple)


CATALOG: dict[str, AddOn] = {
    addon.id: addon
    for addon in (
        AddOn("photos", "Professional Photos", Decimal("45.00"), "Photography", max_quantity=1),
        AddOn("lunch", "Gourmet Lunch", Decimal("25.00"), "Food & Drink"),
        AddOn("transport", "Hotel Pickup", Decimal("15.00"), "Transportation"),
        AddOn("gear", "Premium Gear Upgrade", Decimal("35.00"), "Equipment"),
        AddOn("souvenir", "Adventure Souvenir Pack", Decimal("20.00"), "Souvenirs"),
        AddOn(
            "memories",
            "Memories Combo (Photos + Souvenir Pack)",
            Decimal("55.00"),
            "Combos",
            max_quantity=1,
            includes=("photos", "souvenir"),
        ),
        AddOn(
            "full_day",
            "Full Day Combo (Lunch + Hotel Pickup)",
            Decimal("35.00"),
            "Combos",
            includes=("lunch", "transport"),
        ),
    )
}


def to_selected(addon: AddOn, quantity: int) -> SelectedAddOn:
    return SelectedAddOn(
        id=addon.id,
        name=addon.name,
        price=addon.price,
        quantity=quantity,
        includes=list(addon.includes),
    )


def superseded_ids(selection: Iterable[SelectedAddOn]) -> set[str]:
    """Ids covered by any combo in the selection."""
    covered: set[str] = set()
    for item in selection:
        covered.update(item.includes)
    return covered


def normalize_add_ons(selection: list[SelectedAddOn]) -> list[SelectedAddOn]:
    covered = superseded_ids(selection)
    return [item for item in selection if item.id not in covered]


def select_add_on(
    selection: list[SelectedAddOn],
    addon: AddOn,
    quantity: int,
) -> list[SelectedAddOn]:
    """
    Return a new selection with `addon` set to `quantity`.

    Quantity 0 removes the item. Selecting a combo also removes every item
    it includes. An item already in the selection keeps its position.
    """
    dropped = set(addon.includes) if quantity > 0 else set()
    updated = to_selected(addon, quantity) if quantity > 0 else None

    result: list[SelectedAddOn] = []
    replaced = False
    for item in selection:
        if item.id == addon.id:
            replaced = True
            if updated is not None:
                result.append(updated)
        elif item.id not in dropped:
            result.append(item)

    if updated is not None and not replaced:
        result.append(updated)
    return result


def resolve_add_ons(requests: list[AddOnRequest]) -> list[SelectedAddOn]:
    """
    Price a client-supplied selection from the catalog.

    Requests are applied in order through `select_add_on`, so a combo
    listed after its constituents replaces them. Unknown ids and quantities
    above an item's limit are rejected.
    """
    selection: list[SelectedAddOn] = []
    for request in requests:
        addon = CATALOG.get(request.id)
        if addon is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown add-on: {request.id}",
            )
        if addon.max_quantity is not None and request.quantity > addon.max_quantity:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Add-on {addon.id} is limited to {addon.max_quantity} per booking",
            )
        selection = select_add_on(selection, addon, request.quantity)
    return normalize_add_ons(selection)
