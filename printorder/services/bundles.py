# printorder/services/bundles.py
"""
Rebuild a zip of an order's files from object storage.

Best effort: a file that cannot be fetched is logged and left out, but a
bundle with no item files at all is an error.
"""
from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import UpstreamError
from ..pricing import DOCUMENT_SUFFIX, DeclaredType
from ..settings import settings
from .orders import get_order
from .storage import safe_file_name

logger = logging.getLogger(__name__)

USER_AGENT = "printorder-bundler/1.0"


@dataclass(frozen=True)
class Bundle:
    order_id: str
    content: bytes
    file_count: int

    @property
    def filename(self) -> str:
        return f"{self.order_id}.zip"


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.upstream_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def archive_name(position: int, item: Dict[str, Any]) -> str:
    """`<n>_<fileName>`, n 1-based; documents always end in .pdf."""
    name = safe_file_name(item.get("fileName") or "")
    if item.get("declaredType") == DeclaredType.DOCUMENT.value and not name.lower().endswith(DOCUMENT_SUFFIX):
        name += DOCUMENT_SUFFIX
    return f"{position}_{name}"


async def _fetch(client: httpx.AsyncClient, url: str, label: str) -> Optional[bytes]:
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error("failed to fetch %s: status %s", label, exc.response.status_code)
        return None
    except httpx.RequestError as exc:
        logger.error("error fetching %s: %s", label, exc)
        return None
    return resp.content


async def build_bundle(order_id: str) -> Bundle:
    order = await get_order(order_id)
    items: List[Dict[str, Any]] = order.get("items") or []
    receipt = order.get("paymentInfo") or {}

    async with _http_client() as client:
        fetched = await asyncio.gather(
            *(_fetch(client, it["fileUrl"], it.get("fileName", "")) for it in items)
        )
        receipt_bytes = None
        if receipt.get("receiptUrl"):
            receipt_bytes = await _fetch(client, receipt["receiptUrl"], "payment receipt")

    entries: List[Tuple[str, bytes]] = [
        (archive_name(pos, it), data)
        for pos, (it, data) in enumerate(zip(items, fetched), start=1)
        if data is not None
    ]
    if not entries:
        raise UpstreamError("Failed to download any files")
    if receipt_bytes is not None:
        receipt_name = safe_file_name(receipt.get("receiptFileName") or "", "payment_receipt")
        entries.append((f"RECEIPT_{receipt_name}", receipt_bytes))

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED, compresslevel=6) as zf:
        for name, data in entries:
            zf.writestr(f"{order_id}/{name}", data)

    skipped = len(items) - (len(entries) - (receipt_bytes is not None))
    logger.info(
        "bundled %d files for order %s (%d skipped)", len(entries), order_id, skipped
    )
    return Bundle(order_id=order_id, content=buf.getvalue(), file_count=len(entries))
