# printorder/client/checkout.py
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .files import BinaryPayload


class CheckoutStage(str, Enum):
    DELIVERY = "delivery"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


@dataclass(frozen=True)
class DeliveryInfo:
    fullName: str = ""
    address: str = ""
    contact1: str = ""
    contact2: str = ""

    @property
    def is_complete(self) -> bool:
        return all(s.strip() for s in (self.fullName, self.address, self.contact1))


@dataclass(frozen=True)
class Receipt:
    payload: BinaryPayload
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def generate_order_id() -> str:
    """ORD-<epoch ms>-<4 hex>; the suffix keeps same-millisecond ids apart."""
    ms = int(time.time() * 1000)
    return f"ORD-{ms}-{secrets.token_hex(2)}"


class CheckoutFlow:
    """
    delivery -> payment -> confirmation.

    Stages only move through advance()/back(), and advance() is gated on the
    completeness flags alone, so no screen can skip capture.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.stage = CheckoutStage.DELIVERY
        self.delivery_info = DeliveryInfo()
        self.receipt: Optional[Receipt] = None
        self.is_delivery_info_complete = False
        self.is_payment_info_complete = False
        self.order_id: Optional[str] = None
        self.order_date: Optional[datetime] = None

    def set_delivery_info(self, info: DeliveryInfo) -> None:
        self.delivery_info = info
        self.is_delivery_info_complete = info.is_complete

    def set_payment_info(self, receipt: Optional[Receipt]) -> None:
        self.receipt = receipt
        self.is_payment_info_complete = bool(receipt is not None and receipt.payload.data)

    def advance(self) -> bool:
        if self.stage is CheckoutStage.DELIVERY and self.is_delivery_info_complete:
            self.stage = CheckoutStage.PAYMENT
            return True
        if self.stage is CheckoutStage.PAYMENT and self.is_payment_info_complete:
            self.stage = CheckoutStage.CONFIRMATION
            return True
        return False

    def back(self) -> bool:
        if self.stage is CheckoutStage.PAYMENT:
            self.stage = CheckoutStage.DELIVERY
            return True
        if self.stage is CheckoutStage.CONFIRMATION:
            self.stage = CheckoutStage.PAYMENT
            return True
        return False

    def confirm(self, order_id: Optional[str] = None) -> str:
        """Assign the order id once; later calls return the same id."""
        if self.order_id is None:
            self.order_id = order_id or generate_order_id()
            self.order_date = datetime.now(timezone.utc)
        return self.order_id
