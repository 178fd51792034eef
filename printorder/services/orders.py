# printorder/services/orders.py
from __future__ import annotations

import asyncio
import json
import logging
import math
import secrets
import time
from dataclasses import dataclass
from datetime import date, datetime, time as dtime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from ..db import orders_store
from ..errors import ConsistencyError, NotFoundError, UpstreamError, ValidationError
from ..pricing import content_type_matches, line_total, unit_price
from ..schemas.orders import OrderItemIn, OrderStatus
from ..settings import settings
from . import storage

logger = logging.getLogger(__name__)

ITEM_PART_PREFIX = "itemPayload_"
RECEIPT_PART = "paymentReceipt"
VALID_STATUSES = [s.value for s in OrderStatus]


@dataclass(frozen=True)
class IncomingFile:
    """One file part of the submission, already read into memory."""
    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _now():
    return datetime.now(timezone.utc)


def _oid() -> str:
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(2)}"


# ---------- submission parsing ----------

def _delivery_info(fields: Mapping[str, str]) -> Dict[str, str]:
    info = {
        "fullName": (fields.get("deliveryInfo.fullName") or "").strip(),
        "address": (fields.get("deliveryInfo.address") or "").strip(),
        "contact1": (fields.get("deliveryInfo.contact1") or "").strip(),
        "contact2": (fields.get("deliveryInfo.contact2") or "").strip(),
    }
    if not (info["fullName"] and info["address"] and info["contact1"]):
        raise ValidationError("Delivery information is incomplete")
    return info


def _parse_items(raw: Optional[str]) -> List[OrderItemIn]:
    if not raw:
        raise ValidationError("Order items are required")
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError("Order items are not valid JSON")
    if not isinstance(data, list) or not data:
        raise ValidationError("Order must have at least one item")

    items: List[OrderItemIn] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValidationError(f"Item {index} is not an object")
        try:
            items.append(OrderItemIn(**entry))
        except PydanticValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(p) for p in err.get("loc", ()))
            raise ValidationError(f"Item {index}: {field} {err.get('msg')}".strip())
    return items


def _match_item_files(
    items: List[OrderItemIn], files: Mapping[str, IncomingFile]
) -> List[IncomingFile]:
    """Pair items[i] with part itemPayload_<i>; any gap or surplus rejects the request."""
    matched: List[IncomingFile] = []
    for index, item in enumerate(items):
        part = files.get(f"{ITEM_PART_PREFIX}{index}")
        if part is None:
            raise ConsistencyError(f"File for item {index} is missing")
        if not content_type_matches(item.declaredType, part.content_type):
            raise ConsistencyError(
                f"Item {index}: file {part.file_name!r} ({part.content_type}) "
                f"does not match declared type {item.declaredType.value!r}"
            )
        if part.size > settings.max_item_file_bytes:
            raise ValidationError(f"Item {index}: file {part.file_name!r} is too large")
        matched.append(part)

    attached = [k for k in files if k.startswith(ITEM_PART_PREFIX)]
    if len(attached) != len(items):
        raise ConsistencyError(
            f"Received {len(attached)} item files for {len(items)} items"
        )
    return matched


async def _upload_all(parts: List[IncomingFile]) -> List[str]:
    """Fan out every upload, wait for all of them, fail if any failed."""
    results = await asyncio.gather(
        *(storage.upload(p.data, p.file_name, p.content_type) for p in parts),
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error("%d of %d uploads failed; order not saved", len(failures), len(parts))
        first = failures[0]
        if isinstance(first, UpstreamError):
            raise first
        raise UpstreamError(f"File upload failed: {first}")
    return list(results)


# ---------- ingestion ----------

async def ingest_order(
    owner_id: str,
    fields: Mapping[str, str],
    files: Mapping[str, IncomingFile],
) -> Dict[str, Any]:
    """
    Validate a submission, move its files to object storage and persist the
    order. Either the whole order is written or nothing is.
    """
    delivery = _delivery_info(fields)

    receipt = files.get(RECEIPT_PART)
    if receipt is None or not receipt.data:
        raise ValidationError("Payment receipt is required")
    if not (receipt.content_type or "").lower().startswith("image/"):
        raise ValidationError("Payment receipt must be an image file")
    if receipt.size > settings.max_receipt_file_bytes:
        raise ValidationError("Payment receipt is too large")

    items_in = _parse_items(fields.get("items"))
    item_files = _match_item_files(items_in, files)

    receipt_url, *item_urls = await _upload_all([receipt, *item_files])

    items: List[Dict[str, Any]] = []
    for index, (item, url) in enumerate(zip(items_in, item_urls)):
        price = unit_price(item.printSize)
        total = line_total(item.printSize, item.quantity)
        if item.lineTotal is not None and item.lineTotal != total:
            logger.warning(
                "item %d: client lineTotal %s differs from %s; using server price",
                index, item.lineTotal, total,
            )
        items.append({
            "fileUrl": url,
            "fileName": item.fileName,
            "fileSizeBytes": item.fileSizeBytes,
            "declaredType": item.declaredType.value,
            "printSize": item.printSize.value,
            "quantity": item.quantity,
            "unitPrice": price,
            "lineTotal": total,
        })

    now = _now()
    order = {
        "orderId": _oid(),
        "ownerId": owner_id,
        "items": items,
        "totalAmount": sum(i["lineTotal"] for i in items),
        "deliveryInfo": delivery,
        "paymentInfo": {
            "receiptUrl": receipt_url,
            "receiptFileName": receipt.file_name,
            "receiptFileSize": receipt.size,
            "paymentDate": now.isoformat(),
        },
        "status": OrderStatus.PENDING.value,
        "orderDate": now,
        "createdAt": now,
        "updatedAt": now,
    }
    saved = await orders_store.insert_order(order)
    logger.info(
        "order %s created for %s: %d items, total %s",
        saved["orderId"], owner_id, len(items), saved["totalAmount"],
    )
    return saved


# ---------- reads / status ----------

async def get_order(order_id: str) -> Dict[str, Any]:
    order = await orders_store.get_order(order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def _check_status(status: Any, *, required: bool = False) -> Optional[str]:
    if status is None and not required:
        return None
    if not isinstance(status, str) or status not in VALID_STATUSES:
        raise ValidationError("Invalid status value")
    return status


async def set_status(order_id: str, status: Any) -> Dict[str, Any]:
    """
    Any known status may be set from any other; only the value itself is
    checked. Setting the current status again is a harmless rewrite.
    """
    _check_status(status, required=True)
    updated = await orders_store.update_status(order_id, status, _now())
    if not updated:
        raise NotFoundError("Order not found")
    logger.info("order %s status -> %s", order_id, status)
    return updated


def day_bounds(day: str, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """[start, end) of a YYYY-MM-DD calendar day in the orders timezone, as UTC."""
    try:
        d = date.fromisoformat(day)
    except ValueError:
        raise ValidationError("createdAtDate must be YYYY-MM-DD")
    tz = ZoneInfo(tz_name or settings.orders_timezone)
    start = datetime.combine(d, dtime.min, tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), dtime.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def list_orders(
    *,
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    search: Optional[str] = None,
    created_at_date: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> Dict[str, Any]:
    _check_status(status)
    created_from = created_to = None
    if created_at_date:
        created_from, created_to = day_bounds(created_at_date)

    orders, total = await orders_store.list_orders(
        owner_id=owner_id,
        status=status,
        search=(search or "").strip() or None,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "orders": orders,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }
