"""Submission assembly and the customer-side client."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from printorder.client.checkout import CheckoutFlow, CheckoutStage, DeliveryInfo, Receipt
from printorder.client.draft import OrderDraft
from printorder.client.files import BinaryPayload
from printorder.client.submission import OrderClient, assemble_submission
from printorder.errors import (
    AuthError,
    ConsistencyError,
    MissingFileError,
    SubmissionError,
    ValidationError,
)


def _png(name="a.png"):
    return BinaryPayload(data=b"\x89PNGdata", content_type="image/png", file_name=name)


def _pdf(name="b.pdf"):
    return BinaryPayload(data=b"%PDF-1.7", content_type="application/pdf", file_name=name)


@pytest.fixture()
def draft():
    d = OrderDraft()
    d.add_item(_png("a.png"), printSize="small", quantity=3)
    d.add_item(_pdf("b.pdf"), declaredType="document", printSize="large", quantity=1)
    return d


@pytest.fixture()
def checkout():
    flow = CheckoutFlow()
    flow.set_delivery_info(DeliveryInfo(fullName="Nimal Perera", address="12 Galle Rd",
                                        contact1="0771234567"))
    flow.advance()
    flow.set_payment_info(Receipt(BinaryPayload(b"slip", "image/jpeg", "slip.jpg")))
    return flow


def _counting_transport(calls, status=201, body=None):
    def handler(request: httpx.Request):
        calls.append(request)
        return httpx.Response(status, json=body or {})
    return httpx.MockTransport(handler)


# ---------- assemble_submission ----------

def test_assembled_request_layout(draft, checkout):
    req = assemble_submission(draft, checkout)

    assert req.data["deliveryInfo.fullName"] == "Nimal Perera"
    assert req.data["deliveryInfo.contact1"] == "0771234567"
    assert "deliveryInfo.contact2" not in req.data

    items = json.loads(req.data["items"])
    assert [i["fileName"] for i in items] == ["a.png", "b.pdf"]
    assert items[0] == {"fileName": "a.png", "fileSizeBytes": len(_png().data),
                        "declaredType": "image", "printSize": "small", "quantity": 3,
                        "unitPrice": 200, "lineTotal": 600}
    assert all("id" not in i for i in items)

    names = [name for name, _ in req.files]
    assert names == ["paymentReceipt", "itemPayload_0", "itemPayload_1"]
    assert req.files[2][1] == ("b.pdf", b"%PDF-1.7", "application/pdf")


def test_contact2_sent_when_given(draft, checkout):
    checkout.set_delivery_info(DeliveryInfo("N", "A", "1", "2"))
    assert assemble_submission(draft, checkout).data["deliveryInfo.contact2"] == "2"


def test_missing_payload_fails_before_any_request(draft, checkout):
    victim = draft.cart.items[1]
    draft.files.delete(victim.id)
    calls = []
    client = OrderClient("http://api.test", token="t", transport=_counting_transport(calls))

    with pytest.raises(MissingFileError, match="b.pdf"):
        asyncio.run(client.submit(draft, checkout))
    assert calls == []
    assert len(draft) == 2


def test_type_mismatch_names_the_index(draft, checkout):
    item = draft.cart.items[1]
    draft.files.put(item.id, _png("sneaky.png"))
    with pytest.raises(ConsistencyError, match="Item 1"):
        assemble_submission(draft, checkout)


def test_incomplete_checkout_rejected(draft):
    with pytest.raises(ValidationError):
        assemble_submission(draft, CheckoutFlow())


def test_empty_cart_rejected(checkout):
    with pytest.raises(ValidationError):
        assemble_submission(OrderDraft(), checkout)


def test_oversized_item_rejected(draft, checkout):
    with pytest.raises(ValidationError, match="too large"):
        assemble_submission(draft, checkout, max_item_bytes=4)


# ---------- OrderClient ----------

def test_submit_success_starts_a_fresh_cycle(draft, checkout):
    calls = []
    body = {"orderId": "ORD-42", "orderDate": "2026-10-19T10:00:00Z", "totalAmount": 1000}
    client = OrderClient("http://api.test", token="t", transport=_counting_transport(calls, 201, body))

    result = asyncio.run(client.submit(draft, checkout))

    assert result.orderId == "ORD-42" and result.totalAmount == 1000
    assert len(calls) == 1
    assert calls[0].headers["Authorization"] == "Bearer t"
    assert calls[0].headers["content-type"].startswith("multipart/form-data")
    assert len(draft) == 0 and len(draft.files) == 0
    assert checkout.stage is CheckoutStage.DELIVERY
    assert checkout.order_id is None
    assert checkout.receipt is None


def test_submit_401_drops_token(draft, checkout):
    calls = []
    client = OrderClient("http://api.test", token="stale",
                         transport=_counting_transport(calls, 401, {"detail": "Unauthorized. Please login."}))
    with pytest.raises(AuthError):
        asyncio.run(client.submit(draft, checkout))
    assert client.token is None
    assert len(draft) == 2


def test_submit_without_token_sends_nothing(draft, checkout):
    calls = []
    client = OrderClient("http://api.test", transport=_counting_transport(calls))
    with pytest.raises(AuthError):
        asyncio.run(client.submit(draft, checkout))
    assert calls == []


def test_submit_rejection_surfaces_message(draft, checkout):
    calls = []
    client = OrderClient("http://api.test", token="t",
                         transport=_counting_transport(calls, 400, {"detail": "File for item 1 is missing"}))
    with pytest.raises(SubmissionError) as exc:
        asyncio.run(client.submit(draft, checkout))
    assert exc.value.status_code == 400
    assert exc.value.message == "File for item 1 is missing"
    assert checkout.order_id is None


# ---------- end to end against the API ----------

def test_submit_through_the_real_api(draft, checkout, token, fake_orders, fake_storage):
    from printorder.main import app
    client = OrderClient("http://api.test", token=token, transport=httpx.ASGITransport(app=app))

    result = asyncio.run(client.submit(draft, checkout))

    stored = fake_orders[result.orderId]
    assert stored["totalAmount"] == 1000
    assert [i["fileName"] for i in stored["items"]] == ["a.png", "b.pdf"]
    assert stored["items"][1]["fileUrl"].endswith("-b.pdf")
    assert len(fake_storage.uploads) == 3
    assert checkout.order_id is None


def test_second_order_needs_its_own_receipt(draft, checkout, token, fake_orders):
    """Nothing from the first checkout leaks into the next order."""
    from printorder.main import app
    client = OrderClient("http://api.test", token=token, transport=httpx.ASGITransport(app=app))

    first = asyncio.run(client.submit(draft, checkout))
    assert checkout.receipt is None and checkout.order_id is None

    draft.add_item(_png("c.png"), printSize="large", quantity=2)
    checkout.set_delivery_info(DeliveryInfo(fullName="Kamala Silva", address="4 Temple Rd",
                                            contact1="0719998888"))
    checkout.advance()
    with pytest.raises(ValidationError):
        asyncio.run(client.submit(draft, checkout))

    checkout.set_payment_info(Receipt(BinaryPayload(b"slip2", "image/png", "slip2.png")))
    second = asyncio.run(client.submit(draft, checkout))

    assert second.orderId != first.orderId
    stored = fake_orders[second.orderId]
    assert stored["paymentInfo"]["receiptFileName"] == "slip2.png"
    assert stored["deliveryInfo"]["fullName"] == "Kamala Silva"
    assert stored["totalAmount"] == 800
    assert fake_orders[first.orderId]["paymentInfo"]["receiptFileName"] == "slip.jpg"


def test_receipt_type_check_ignores_case(draft, checkout):
    checkout.set_payment_info(Receipt(BinaryPayload(b"slip", "IMAGE/JPEG", "slip.jpg")))
    req = assemble_submission(draft, checkout)
    assert req.files[0][0] == "paymentReceipt"
