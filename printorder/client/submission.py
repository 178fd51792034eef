# printorder/client/submission.py
"""
Packs an OrderDraft and a CheckoutFlow into the multipart request that
`POST /orders` expects, and sends it.

Wire layout:
  deliveryInfo.fullName / .address / .contact1 / .contact2   form fields
  paymentReceipt                                             file part
  items                                                      JSON array (metadata only)
  itemPayload_<i>                                            file part for items[i]
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import (
    AuthError,
    ConsistencyError,
    MissingFileError,
    SubmissionError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from ..pricing import content_type_matches
from ..settings import settings
from .checkout import CheckoutFlow
from .draft import OrderDraft

logger = logging.getLogger(__name__)

FilePart = Tuple[str, Tuple[str, bytes, str]]


def item_part_name(index: int) -> str:
    return f"itemPayload_{index}"


@dataclass
class SubmissionRequest:
    data: Dict[str, str] = field(default_factory=dict)
    files: List[FilePart] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionResult:
    orderId: str
    orderDate: str
    totalAmount: int


def assemble_submission(
    draft: OrderDraft,
    checkout: CheckoutFlow,
    *,
    max_item_bytes: Optional[int] = None,
    max_receipt_bytes: Optional[int] = None,
) -> SubmissionRequest:
    """
    Build the outbound request. Every precondition is checked here, so a
    failure means nothing was sent.
    """
    max_item_bytes = max_item_bytes or settings.max_item_file_bytes
    max_receipt_bytes = max_receipt_bytes or settings.max_receipt_file_bytes

    items = draft.cart.items
    if not items:
        raise ValidationError("Your order has no items")

    for item in items:
        if draft.files.get(item.id) is None:
            raise MissingFileError(f"Missing file for item: {item.fileName}")

    info = checkout.delivery_info
    if not checkout.is_delivery_info_complete:
        raise ValidationError("Delivery information is incomplete")
    receipt = checkout.receipt
    if receipt is None or not checkout.is_payment_info_complete:
        raise ValidationError("Please upload your payment receipt")
    if not receipt.payload.content_type.lower().startswith("image/"):
        raise ValidationError("Payment receipt must be an image file")
    if receipt.payload.size > max_receipt_bytes:
        raise ValidationError("Payment receipt is too large")

    req = SubmissionRequest()
    req.data["deliveryInfo.fullName"] = info.fullName
    req.data["deliveryInfo.address"] = info.address
    req.data["deliveryInfo.contact1"] = info.contact1
    if info.contact2:
        req.data["deliveryInfo.contact2"] = info.contact2

    rp = receipt.payload
    req.files.append(("paymentReceipt", (rp.file_name, rp.data, rp.content_type)))

    metadata: List[Dict[str, Any]] = []
    for index, item in enumerate(items):
        payload = draft.files.get(item.id)
        if not content_type_matches(item.declaredType, payload.content_type):
            raise ConsistencyError(
                f"Item {index}: file {payload.file_name!r} ({payload.content_type}) "
                f"does not match declared type {item.declaredType.value!r}"
            )
        if payload.size > max_item_bytes:
            raise ValidationError(f"Item {index}: file {payload.file_name!r} is too large")
        metadata.append(item.wire_metadata())
        req.files.append(
            (item_part_name(index), (payload.file_name, payload.data, payload.content_type))
        )
    req.data["items"] = json.dumps(metadata)
    return req


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
        if detail is not None:
            return json.dumps(detail)
    return f"HTTP {resp.status_code}"


class OrderClient:
    """
    Talks to the order API on behalf of a signed-in customer.

    A 401 from the API drops the stored token; the caller should send the
    customer back to sign in.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def submit(self, draft: OrderDraft, checkout: CheckoutFlow) -> SubmissionResult:
        """POST the order. On a 201 the draft and the checkout both start over;
        the returned result is what the confirmation screen shows."""
        req = assemble_submission(draft, checkout)
        if not self.token:
            raise AuthError("Unauthorized. Please login.")

        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            async with self._client() as client:
                resp = await client.post("/orders", data=req.data, files=req.files, headers=headers)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"Order submission timed out: {exc}")
        except httpx.RequestError as exc:
            raise UpstreamError(f"Order submission failed: {exc}")

        if resp.status_code == 401:
            self.token = None
            raise AuthError(_error_message(resp))
        if resp.status_code != 201:
            raise SubmissionError(_error_message(resp), resp.status_code)

        body = resp.json()
        result = SubmissionResult(
            orderId=body["orderId"],
            orderDate=body["orderDate"],
            totalAmount=body["totalAmount"],
        )
        logger.info("order %s submitted (%d items)", result.orderId, len(draft))

        draft.clear()
        checkout.reset()
        return result
