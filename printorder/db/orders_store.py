"""Postgres-backed order records."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from . import get_pool


def _json(v: Any) -> Any:
    return json.loads(v) if isinstance(v, str) else v


def _order_row_to_dict(row) -> Dict[str, Any]:
    """Convert a flat Postgres order row into the nested shape routes expect."""
    return {
        "orderId": row["id"],
        "ownerId": row["owner_id"],
        "items": _json(row["items"]),
        "totalAmount": row["total_amount"],
        "deliveryInfo": _json(row["delivery_info"]),
        "paymentInfo": _json(row["payment_info"]),
        "status": row["status"],
        "orderDate": row["order_date"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def insert_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """
    Write one complete order. `order` uses the same nested keys
    _order_row_to_dict produces.
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO orders (id, owner_id, items, total_amount, delivery_info,
                                payment_info, status, order_date, created_at, updated_at)
            VALUES ($1, $2, $3::jsonb, $4, $5::jsonb, $6::jsonb, $7, $8, $9, $10)
            RETURNING *
            """,
            order["orderId"],
            order["ownerId"],
            json.dumps(order["items"]),
            order["totalAmount"],
            json.dumps(order["deliveryInfo"]),
            json.dumps(order["paymentInfo"], default=str),
            order["status"],
            order["orderDate"],
            order["createdAt"],
            order["updatedAt"],
        )
    return _order_row_to_dict(row)


async def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow("SELECT * FROM orders WHERE id = $1", order_id)
    if not row:
        return None
    return _order_row_to_dict(row)


async def update_status(order_id: str, status: str, updated_at: datetime) -> Optional[Dict[str, Any]]:
    """Overwrite status; returns None when the order does not exist."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            UPDATE orders
            SET status = $2, updated_at = $3
            WHERE id = $1
            RETURNING *
            """,
            order_id,
            status,
            updated_at,
        )
    if not row:
        return None
    return _order_row_to_dict(row)


async def list_orders(
    *,
    owner_id: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[Dict[str, Any]], int]:
    """Newest first. Returns (page of orders, total matching)."""
    clauses: List[str] = []
    args: List[Any] = []

    def arg(v: Any) -> str:
        args.append(v)
        return f"${len(args)}"

    if owner_id is not None:
        clauses.append(f"owner_id = {arg(owner_id)}")
    if status is not None:
        clauses.append(f"status = {arg(status)}")
    if search:
        p = arg(_like_pattern(search))
        clauses.append(
            f"(id ILIKE {p} OR delivery_info->>'fullName' ILIKE {p}"
            f" OR delivery_info->>'contact1' ILIKE {p})"
        )
    if created_from is not None:
        clauses.append(f"created_at >= {arg(created_from)}")
    if created_to is not None:
        clauses.append(f"created_at < {arg(created_to)}")

    where = ("WHERE " + " AND ".join(clauses)) if clauses else ""
    count_args = list(args)
    page_sql = (
        f"SELECT * FROM orders {where} ORDER BY created_at DESC "
        f"LIMIT {arg(limit)} OFFSET {arg(offset)}"
    )

    pool = await get_pool()
    async with pool.acquire() as conn:
        total = await conn.fetchval(f"SELECT COUNT(*) FROM orders {where}", *count_args)
        rows = await conn.fetch(page_sql, *args)
    return [_order_row_to_dict(r) for r in rows], int(total or 0)
