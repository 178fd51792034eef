"""
Customer-side order assembly.

- BinaryStore: file payloads keyed by line-item id
- Cart: line-item metadata and the running total
- OrderDraft: the two above kept in step
- CheckoutFlow: delivery -> payment -> confirmation
- assemble_submission / OrderClient: the multipart submission
"""

from .files import BinaryPayload, BinaryStore
from .cart import Cart, ItemMetadata, LineItem
from .draft import OrderDraft
from .checkout import CheckoutFlow, CheckoutStage, DeliveryInfo, Receipt
from .submission import OrderClient, SubmissionRequest, SubmissionResult, assemble_submission

__all__ = [
    "BinaryPayload",
    "BinaryStore",
    "Cart",
    "ItemMetadata",
    "LineItem",
    "OrderDraft",
    "CheckoutFlow",
    "CheckoutStage",
    "DeliveryInfo",
    "Receipt",
    "OrderClient",
    "SubmissionRequest",
    "SubmissionResult",
    "assemble_submission",
]
