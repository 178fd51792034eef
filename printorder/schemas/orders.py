from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from ..pricing import DeclaredType, PrintSize


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAYMENT_VERIFIED = "payment_verified"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryInfoOut(BaseModel):
    fullName: str
    address: str
    contact1: str
    contact2: str = ""


class PaymentInfoOut(BaseModel):
    receiptUrl: str
    receiptFileName: str
    receiptFileSize: int
    paymentDate: datetime


class OrderItemIn(BaseModel):
    """One entry of the submission's `items` array. Prices are re-derived server side."""
    fileName: str = Field(..., min_length=1)
    fileSizeBytes: int = Field(..., ge=0)
    declaredType: DeclaredType = DeclaredType.IMAGE
    printSize: PrintSize
    quantity: int = Field(..., ge=1)
    unitPrice: Optional[int] = None
    lineTotal: Optional[int] = None


class OrderItemOut(BaseModel):
    fileUrl: str
    fileName: str
    fileSizeBytes: int
    declaredType: DeclaredType
    printSize: PrintSize
    quantity: int
    unitPrice: int
    lineTotal: int


class OrderOut(BaseModel):
    orderId: str
    ownerId: str
    items: List[OrderItemOut]
    totalAmount: int
    deliveryInfo: DeliveryInfoOut
    paymentInfo: PaymentInfoOut
    status: OrderStatus
    orderDate: datetime
    createdAt: datetime
    updatedAt: datetime


class OrderCreatedOut(BaseModel):
    orderId: str
    orderDate: datetime
    totalAmount: int


class StatusUpdateIn(BaseModel):
    # unchecked here; the service answers any bad or missing value with a 400
    status: Any = None


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    pagination: PaginationOut
