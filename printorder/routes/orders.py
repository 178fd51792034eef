from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from starlette.datastructures import UploadFile

from ..errors import OrderError
from ..schemas.orders import OrderCreatedOut, OrderListOut, OrderOut, StatusUpdateIn
from ..services.auth import require_owner
from ..services.bundles import build_bundle
from ..services.orders import IncomingFile, get_order, ingest_order, list_orders, set_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def _http_error(e: OrderError) -> HTTPException:
    # message goes back verbatim so the customer can act on it
    return HTTPException(status_code=e.status_code, detail=e.message)


async def _read_submission(request: Request):
    form = await request.form()
    fields: Dict[str, str] = {}
    files: Dict[str, IncomingFile] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files[key] = IncomingFile(
                file_name=value.filename or key,
                content_type=value.content_type or "application/octet-stream",
                data=await value.read(),
            )
            await value.close()
        else:
            fields[key] = value
    return fields, files


@router.post("", response_model=OrderCreatedOut, status_code=201)
async def create_order_endpoint(request: Request, owner_id: str = Depends(require_owner)):
    """
    Multipart order submission: delivery fields, `paymentReceipt`, the `items`
    JSON array and one `itemPayload_<i>` file per item.
    """
    fields, files = await _read_submission(request)
    try:
        order = await ingest_order(owner_id, fields, files)
    except OrderError as e:
        logger.warning("order submission from %s rejected: %s", owner_id, e.message)
        raise _http_error(e)
    return OrderCreatedOut(
        orderId=order["orderId"],
        orderDate=order["orderDate"],
        totalAmount=order["totalAmount"],
    )


@router.get("", response_model=OrderListOut)
async def list_orders_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    created_at_date: Optional[str] = Query(None, alias="createdAtDate"),
    _owner_id: str = Depends(require_owner),
):
    """All orders, newest first, for the operator screens."""
    try:
        return await list_orders(
            page=page, limit=limit, status=status, search=search,
            created_at_date=created_at_date,
        )
    except OrderError as e:
        raise _http_error(e)


@router.get("/mine", response_model=OrderListOut)
async def my_orders_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    owner_id: str = Depends(require_owner),
):
    try:
        return await list_orders(page=page, limit=limit, status=status, owner_id=owner_id)
    except OrderError as e:
        raise _http_error(e)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order_endpoint(order_id: str, _owner_id: str = Depends(require_owner)):
    try:
        return await get_order(order_id)
    except OrderError as e:
        raise _http_error(e)


@router.patch("/{order_id}/status", response_model=OrderOut)
async def update_status_endpoint(
    order_id: str,
    body: StatusUpdateIn,
    _owner_id: str = Depends(require_owner),
):
    try:
        return await set_status(order_id, body.status)
    except OrderError as e:
        raise _http_error(e)


@router.get("/{order_id}/bundle")
async def download_bundle_endpoint(order_id: str, _owner_id: str = Depends(require_owner)):
    """Zip of every item file (plus the receipt when reachable)."""
    try:
        bundle = await build_bundle(order_id)
    except OrderError as e:
        raise _http_error(e)
    return Response(
        content=bundle.content,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{bundle.filename}"',
            "Content-Length": str(len(bundle.content)),
        },
    )
