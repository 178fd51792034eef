"""Async Postgres connection pool using asyncpg."""
from __future__ import annotations

from typing import Optional

import asyncpg

from ..settings import settings

_pool: Optional[asyncpg.Pool] = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS orders (
    id            TEXT PRIMARY KEY,
    owner_id      TEXT NOT NULL,
    items         JSONB NOT NULL,
    total_amount  INTEGER NOT NULL CHECK (total_amount >= 0),
    delivery_info JSONB NOT NULL,
    payment_info  JSONB NOT NULL,
    status        TEXT NOT NULL DEFAULT 'pending',
    order_date    TIMESTAMPTZ NOT NULL,
    created_at    TIMESTAMPTZ NOT NULL,
    updated_at    TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS orders_owner_created_idx ON orders (owner_id, created_at DESC);
CREATE INDEX IF NOT EXISTS orders_status_idx ON orders (status);
"""


async def get_pool() -> asyncpg.Pool:
    """Return (and lazily create) the asyncpg connection pool."""
    global _pool
    if _pool is None:
        if not settings.database_url:
            raise RuntimeError(
                "DATABASE_URL is not set. "
                "Postgres is required."
            )
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=2,
            max_size=10,
        )
    return _pool


async def init_schema() -> None:
    """Create the orders table if it is not there yet."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)


async def close_pool() -> None:
    """Shut down the connection pool (call on app shutdown)."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
