# printorder/client/cart.py
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..pricing import DeclaredType, PrintSize, line_total, unit_price

# Derived fields; callers can never set these through update_item.
_DERIVED = {"id", "unitPrice", "lineTotal"}


class ItemMetadata(BaseModel):
    """What the customer picks on the create-order screen."""
    fileName: str = Field(..., min_length=1)
    fileSizeBytes: int = Field(..., ge=0)
    declaredType: DeclaredType = DeclaredType.IMAGE
    printSize: PrintSize = PrintSize.SMALL
    quantity: int = Field(1, ge=1)


class LineItem(ItemMetadata):
    id: str
    unitPrice: int
    lineTotal: int

    def wire_metadata(self) -> Dict[str, Any]:
        """The entry sent in the submission's `items` array (no id, no bytes)."""
        return self.model_dump(mode="json", exclude={"id"})


def _new_id() -> str:
    return uuid.uuid4().hex


def parse_metadata(fields: Dict[str, Any]) -> ItemMetadata:
    try:
        return ItemMetadata(**{k: v for k, v in fields.items() if k not in _DERIVED})
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e))


def _priced(fields: Dict[str, Any]) -> LineItem:
    meta = parse_metadata(fields)
    return LineItem(
        id=fields["id"],
        unitPrice=unit_price(meta.printSize),
        lineTotal=line_total(meta.printSize, meta.quantity),
        **meta.model_dump(),
    )


def _first_error(e: PydanticValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


class Cart:
    """
    Ordered line items plus their total.

    The total is always computed from the items; nothing stores it.
    """

    def __init__(self) -> None:
        self._items: List[LineItem] = []

    # ---------- reads ----------
    @property
    def items(self) -> List[LineItem]:
        return list(self._items)

    @property
    def total_amount(self) -> int:
        return sum(i.lineTotal for i in self._items)

    def get(self, item_id: str) -> Optional[LineItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def ids(self) -> List[str]:
        return [i.id for i in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [i.model_dump(mode="json") for i in self._items],
            "totalAmount": self.total_amount,
        }

    # ---------- writes ----------
    def add_item(self, metadata: ItemMetadata | Dict[str, Any]) -> LineItem:
        if isinstance(metadata, ItemMetadata):
            metadata = metadata.model_dump()
        item = _priced({**metadata, "id": _new_id()})
        self._items.append(item)
        return item

    def update_item(self, item_id: str, **changes: Any) -> Optional[LineItem]:
        """
        Merge changes into an item and re-price it from the resulting
        size/quantity. Unknown ids are ignored (the UI may race a removal).
        """
        for idx, current in enumerate(self._items):
            if current.id == item_id:
                merged = current.model_dump()
                merged.update({k: v for k, v in changes.items() if k not in _DERIVED})
                updated = _priced(merged)
                self._items[idx] = updated
                return updated
        return None

    def remove_item(self, item_id: str) -> bool:
        """Drop the item. The caller still owns evicting its payload."""
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        return len(self._items) != before

    def clear(self) -> None:
        self._items = []
