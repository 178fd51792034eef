# printorder/client/draft.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from ..pricing import content_type_matches
from .cart import Cart, LineItem, parse_metadata
from .files import BinaryPayload, BinaryStore


class OrderDraft:
    """
    The in-progress order: cart metadata and file payloads kept in step.

    Both halves stay reachable (`cart`, `files`) for reads, but writes should
    go through here so an item never exists without its payload.
    """

    def __init__(self, cart: Optional[Cart] = None, files: Optional[BinaryStore] = None) -> None:
        self.cart = cart if cart is not None else Cart()
        self.files = files if files is not None else BinaryStore()

    def add_item(self, payload: BinaryPayload, **metadata: Any) -> LineItem:
        """
        Add a file to the order. fileName/fileSizeBytes default to the
        payload's own; declaredType/printSize/quantity come from the caller.
        """
        fields: Dict[str, Any] = {
            "fileName": payload.file_name,
            "fileSizeBytes": payload.size,
            **metadata,
        }
        meta = parse_metadata(fields)
        if not content_type_matches(meta.declaredType, payload.content_type):
            raise ValidationError(
                f"{payload.file_name}: content type {payload.content_type!r} "
                f"is not a valid {meta.declaredType.value}"
            )
        item = self.cart.add_item(meta)
        self.files.put(item.id, payload)
        return item

    def update_item(self, item_id: str, **changes: Any) -> Optional[LineItem]:
        return self.cart.update_item(item_id, **changes)

    def replace_payload(self, item_id: str, payload: BinaryPayload) -> bool:
        """Swap the file behind an existing item; False if the id is unknown."""
        if self.cart.get(item_id) is None:
            return False
        self.files.put(item_id, payload)
        self.cart.update_item(item_id, fileName=payload.file_name, fileSizeBytes=payload.size)
        return True

    def remove_item_and_payload(self, item_id: str) -> bool:
        self.files.delete(item_id)
        return self.cart.remove_item(item_id)

    def missing_payloads(self) -> List[str]:
        return self.files.missing(self.cart.ids())

    def clear(self) -> None:
        self.cart.clear()
        self.files.clear()

    @property
    def total_amount(self) -> int:
        return self.cart.total_amount

    def __len__(self) -> int:
        return len(self.cart)
