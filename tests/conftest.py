"""Shared fixtures: swap Postgres and object storage for in-memory fakes."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

# Set dummy env vars BEFORE any app imports
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_BUCKET", "test-bucket")
os.environ.setdefault("STORAGE_PUBLIC_URL", "https://files.test")
os.environ.setdefault("ORDERS_TIMEZONE", "Asia/Colombo")

import pytest

from printorder.errors import UpstreamError, UpstreamTimeoutError


# ---------- Fake order store ----------

_fake_orders: dict[str, dict] = {}


async def _fake_insert(order):
    _fake_orders[order["orderId"]] = dict(order)
    return dict(order)


async def _fake_get(order_id):
    order = _fake_orders.get(order_id)
    return dict(order) if order else None


async def _fake_update_status(order_id, status, updated_at):
    order = _fake_orders.get(order_id)
    if not order:
        return None
    order["status"] = status
    order["updatedAt"] = updated_at
    return dict(order)


async def _fake_list(*, owner_id=None, status=None, search=None,
                     created_from=None, created_to=None, limit=10, offset=0):
    rows = list(_fake_orders.values())
    if owner_id is not None:
        rows = [r for r in rows if r["ownerId"] == owner_id]
    if status is not None:
        rows = [r for r in rows if r["status"] == status]
    if search:
        s = search.lower()
        rows = [
            r for r in rows
            if s in r["orderId"].lower()
            or s in r["deliveryInfo"]["fullName"].lower()
            or s in r["deliveryInfo"]["contact1"].lower()
        ]
    if created_from is not None:
        rows = [r for r in rows if r["createdAt"] >= created_from]
    if created_to is not None:
        rows = [r for r in rows if r["createdAt"] < created_to]
    rows.sort(key=lambda r: r["createdAt"], reverse=True)
    return [dict(r) for r in rows[offset:offset + limit]], len(rows)


# ---------- Fake object storage ----------

class FakeStorage:
    """Records uploads; file names listed in fail_on / timeout_on blow up."""

    def __init__(self):
        self.uploads: list[tuple[str, str, int]] = []
        self.fail_on: set[str] = set()
        self.timeout_on: set[str] = set()

    async def upload(self, data, file_name, content_type):
        if file_name in self.timeout_on:
            raise UpstreamTimeoutError(f"Upload of {file_name} timed out")
        if file_name in self.fail_on:
            raise UpstreamError(f"Failed to upload {file_name}")
        self.uploads.append((file_name, content_type, len(data)))
        return f"https://files.test/orders/{len(self.uploads)}-{file_name}"


# ---------- Fixtures ----------

@pytest.fixture(autouse=True)
def fake_orders(monkeypatch):
    """Replace orders_store functions with in-memory fakes."""
    _fake_orders.clear()
    monkeypatch.setattr("printorder.db.orders_store.insert_order", _fake_insert)
    monkeypatch.setattr("printorder.db.orders_store.get_order", _fake_get)
    monkeypatch.setattr("printorder.db.orders_store.update_status", _fake_update_status)
    monkeypatch.setattr("printorder.db.orders_store.list_orders", _fake_list)
    return _fake_orders


@pytest.fixture(autouse=True)
def fake_storage(monkeypatch):
    storage = FakeStorage()
    monkeypatch.setattr("printorder.services.storage.upload", storage.upload)
    return storage


@pytest.fixture()
def seed_order(fake_orders):
    """Factory that drops a finished order straight into the fake store."""
    def _seed(order_id="ORD-1", owner_id="user-1", status="pending",
              created_at=None, full_name="Nimal Perera", contact1="0771234567",
              items=None, receipt_url="https://files.test/orders/receipt.png"):
        created_at = created_at or datetime(2026, 10, 1, 4, 30, tzinfo=timezone.utc)
        items = items if items is not None else [
            {"fileUrl": "https://files.test/orders/a.jpg", "fileName": "a.jpg",
             "fileSizeBytes": 3, "declaredType": "image", "printSize": "small",
             "quantity": 3, "unitPrice": 200, "lineTotal": 600},
            {"fileUrl": "https://files.test/orders/b", "fileName": "b",
             "fileSizeBytes": 4, "declaredType": "document", "printSize": "large",
             "quantity": 1, "unitPrice": 400, "lineTotal": 400},
        ]
        payment = {"receiptUrl": receipt_url, "receiptFileName": "receipt.png",
                   "receiptFileSize": 5, "paymentDate": created_at.isoformat()}
        if receipt_url is None:
            payment["receiptUrl"] = ""
        fake_orders[order_id] = {
            "orderId": order_id,
            "ownerId": owner_id,
            "items": items,
            "totalAmount": sum(i["lineTotal"] for i in items),
            "deliveryInfo": {"fullName": full_name, "address": "12 Galle Rd, Colombo",
                             "contact1": contact1, "contact2": ""},
            "paymentInfo": payment,
            "status": status,
            "orderDate": created_at,
            "createdAt": created_at,
            "updatedAt": created_at + timedelta(minutes=1),
        }
        return fake_orders[order_id]
    return _seed


@pytest.fixture()
def token():
    from printorder.services.auth import create_access_token
    return create_access_token("user-1", email="nimal@example.com")


@pytest.fixture()
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def client():
    """FastAPI TestClient (sync)."""
    from fastapi.testclient import TestClient
    from printorder.main import app
    return TestClient(app)
