import hashlib
import hmac
import json
import time

import pytest

from clubsphere.ledger.records import MEMBERSHIPS
from clubsphere.ledger.store import CLUBS
from clubsphere.payments import stripe_client
from clubsphere.utils.dependencies import get_gateway
from tests.fakes import CLUB_ID, paid_session

WEBHOOK_URL = "/api/v1/payments/webhook"


@pytest.fixture
def webhook_secret(monkeypatch):
    monkeypatch.setattr("clubsphere.payments.views.STRIPE_WEBHOOK_SECRET", "whsec_test")
    monkeypatch.setattr("clubsphere.payments.stripe_client.STRIPE_WEBHOOK_SECRET", "whsec_test")
    return "whsec_test"


def _completed(session_id):
    return {"type": "checkout.session.completed", "data": {"object": {"id": session_id, "object": "checkout.session"}}}


def test_webhook_without_secret_is_503(client, monkeypatch):
    monkeypatch.setattr("clubsphere.payments.views.STRIPE_WEBHOOK_SECRET", None)
    r = client.post(WEBHOOK_URL, content=b"{}")
    assert r.status_code == 503


def test_webhook_completed_event_reconciles(client, gateway, store, webhook_secret):
    gateway.add(paid_session("cs_hook", payment_intent="pi_hook"))
    gateway.next_event = _completed("cs_hook")

    r = client.post(WEBHOOK_URL, content=b"{}")

    assert r.status_code == 200
    assert r.json()["status"] == "recorded"
    assert store.find_one(CLUBS, {"id": CLUB_ID})["members"] == ["buyer@example.com"]
    assert gateway.retrievals == 1


def test_webhook_and_redirect_converge(client, gateway, store, webhook_secret):
    gateway.add(paid_session("cs_both"))
    gateway.next_event = _completed("cs_both")

    client.post(WEBHOOK_URL, content=b"{}")
    r = client.get("/api/v1/payments/success", params={"session_id": "cs_both"})

    assert r.status_code == 200
    assert r.json()["record_created"] is False
    assert len(store.rows(MEMBERSHIPS)) == 1


def test_webhook_ignores_other_events(client, gateway, store, webhook_secret):
    gateway.next_event = {"type": "invoice.paid", "data": {"object": {"id": "in_1"}}}
    r = client.post(WEBHOOK_URL, content=b"{}")
    assert r.status_code == 200
    assert r.json() == {"status": "ignored", "type": "invoice.paid"}
    assert gateway.retrievals == 0
    assert store.writes == 0


def test_webhook_acknowledges_foreign_sessions(client, gateway, store, webhook_secret):
    # Session d'un autre produit: pas de metadata kind
    foreign = paid_session("cs_shop")
    foreign["metadata"] = {"order_ref": "A-17"}
    gateway.add(foreign)
    gateway.next_event = _completed("cs_shop")

    r = client.post(WEBHOOK_URL, content=b"{}")

    assert r.status_code == 200
    assert r.json() == {"status": "ignored", "type": "checkout.session.completed"}
    assert store.writes == 0


def test_redirect_still_rejects_foreign_sessions(client, gateway):
    foreign = paid_session("cs_shop")
    foreign["metadata"] = {}
    gateway.add(foreign)
    assert client.get("/api/v1/payments/success", params={"session_id": "cs_shop"}).status_code == 400


def _signature(payload: bytes, secret: str) -> str:
    ts = int(time.time())
    mac = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={mac}"


def test_webhook_rejects_bad_signature(app, client, store, webhook_secret):
    app.dependency_overrides[get_gateway] = lambda: stripe_client
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "checkout.session.completed"}).encode()
    r = client.post(WEBHOOK_URL, content=payload, headers={"Stripe-Signature": _signature(payload, "whsec_other")})
    assert r.status_code == 400
    assert store.writes == 0


def test_webhook_accepts_signed_event(app, client, webhook_secret):
    app.dependency_overrides[get_gateway] = lambda: stripe_client
    payload = json.dumps({"id": "evt_2", "object": "event", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}).encode()
    r = client.post(WEBHOOK_URL, content=payload, headers={"Stripe-Signature": _signature(payload, webhook_secret)})
    assert r.status_code == 200
    assert r.json()["status"] == "ignored"
