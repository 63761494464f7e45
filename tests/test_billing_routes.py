import json
from types import SimpleNamespace

import pytest
import stripe


JAN_1 = 1735689600
FEB_1 = 1738368000


def test_subscription_status_requires_login(client):
    response = client.get("/api/subscription-status")

    assert response.status_code == 401


def test_subscription_status_without_subscription(client, make_headers):
    response = client.get("/api/subscription-status", headers=make_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["hasActiveSubscription"] is False
    assert body["subscription"] is None
    assert body["periodInfo"] is None
    assert body["user"] == {"id": "user-1", "email": "user1@example.com"}


def test_subscription_status_with_period_info(client, make_headers, fake_supabase, monkeypatch):
    fake_supabase.seed(
        "subscriptions",
        user_id="user-1",
        stripe_customer_id="cus_1",
        stripe_subscription_id="sub_1",
        price_id="price_default",
        status="active_until_period_end",
    )
    monkeypatch.setattr(stripe.Subscription, "retrieve", lambda sub_id, **kwargs: {
        "id": sub_id,
        "current_period_start": JAN_1,
        "current_period_end": FEB_1,
        "cancel_at_period_end": True,
    })

    response = client.get("/api/subscription-status?include_period=true", headers=make_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["hasActiveSubscription"] is True
    assert body["subscription"]["stripe_subscription_id"] == "sub_1"
    assert body["subscription"]["status"] == "active_until_period_end"
    assert body["periodInfo"]["current_period_end"] == FEB_1
    assert body["periodInfo"]["readable"]["period_end"] == "2025/2/1"
    assert body["periodInfo"]["cancel_at_period_end"] is True


@pytest.mark.parametrize("query", ["", "?include_period=false", "?include_period=1", "?include_period=yes", "?include_period=True"])
def test_subscription_status_skips_period_unless_requested(client, make_headers, fake_supabase, monkeypatch, query):
    fake_supabase.seed("subscriptions", user_id="user-1", stripe_subscription_id="sub_1", status="active")

    def _retrieve(*_args, **_kwargs):
        raise AssertionError("Stripe should not be called")

    monkeypatch.setattr(stripe.Subscription, "retrieve", _retrieve)

    response = client.get(f"/api/subscription-status{query}", headers=make_headers())

    assert response.status_code == 200
    assert response.json()["periodInfo"] is None


def test_subscription_status_store_error(client, make_headers, fake_supabase):
    fake_supabase.error = RuntimeError("database unavailable")

    response = client.get("/api/subscription-status", headers=make_headers())

    assert response.status_code == 500


def test_subscription_status_accepts_cookie_token(client, auth):
    token = auth.create_access_token("user-1", "user1@example.com")
    cookie_value = json.dumps([token, "refresh-token"], separators=(",", ":"))

    response = client.get("/api/subscription-status", headers={"Cookie": f"supabase-auth-token={cookie_value}"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == "user-1"


def test_create_checkout_session(client, make_headers, monkeypatch):
    monkeypatch.setattr(stripe.Price, "retrieve", lambda price_id, **kwargs: {"id": price_id})
    monkeypatch.setattr(
        stripe.checkout.Session,
        "create",
        lambda **kwargs: SimpleNamespace(id="cs_1", url=f"https://checkout.stripe.test/{kwargs['metadata']['user_id']}"),
    )

    response = client.post("/api/create-checkout-session", headers=make_headers())

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/user-1"}


def test_create_checkout_session_rejects_foreign_user_id(client, make_headers):
    response = client.post(
        "/api/create-checkout-session",
        headers=make_headers(),
        json={"priceId": "price_default", "userId": "someone-else"},
    )

    assert response.status_code == 403


def test_create_checkout_session_invalid_price(client, make_headers, monkeypatch):
    def _retrieve(price_id, **kwargs):
        raise stripe.InvalidRequestError(f"No such price: '{price_id}'", "price")

    monkeypatch.setattr(stripe.Price, "retrieve", _retrieve)

    response = client.post(
        "/api/create-checkout-session",
        headers=make_headers(),
        json={"priceId": "price_bad"},
    )

    assert response.status_code == 400
    assert "Invalid price ID" in response.json()["detail"]


def test_create_checkout_session_requires_login(client):
    response = client.post("/api/create-checkout-session", json={"priceId": "price_default"})

    assert response.status_code == 401


def test_create_portal_session(client, make_headers, fake_supabase, monkeypatch):
    fake_supabase.seed("subscriptions", user_id="user-1", stripe_customer_id="cus_1", stripe_subscription_id="sub_1", status="active")
    captured = {}

    def _create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(url="https://billing.stripe.test/session")

    monkeypatch.setattr(stripe.billing_portal.Session, "create", _create)

    response = client.post("/api/create-portal-session", headers=make_headers())

    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/session"}
    assert captured == {"customer": "cus_1", "return_url": "http://app.test/dashboard"}


def test_create_portal_session_without_subscription(client, make_headers, fake_supabase):
    fake_supabase.seed("subscriptions", user_id="user-1", stripe_customer_id="cus_1", status="canceled")

    response = client.post("/api/create-portal-session", headers=make_headers())

    assert response.status_code == 403


def test_create_portal_session_without_customer(client, make_headers, fake_supabase):
    fake_supabase.seed("subscriptions", user_id="user-1", stripe_subscription_id="sub_1", status="active")

    response = client.post("/api/create-portal-session", headers=make_headers())

    assert response.status_code == 400


def test_create_portal_session_stripe_error(client, make_headers, fake_supabase, monkeypatch):
    fake_supabase.seed("subscriptions", user_id="user-1", stripe_customer_id="cus_1", status="active")

    def _create(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.billing_portal.Session, "create", _create)

    response = client.post("/api/create-portal-session", headers=make_headers())

    assert response.status_code == 500


def test_webhook_requires_signature(client):
    response = client.post("/api/webhook", content=b"{}")

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing Stripe signature"


def test_webhook_rejects_bad_signature(client, monkeypatch):
    def _raise(*_args, **_kwargs):
        raise stripe.SignatureVerificationError("No signatures found matching the expected signature", "t=1,v1=bad")

    monkeypatch.setattr(stripe.Webhook, "construct_event", _raise)

    response = client.post("/api/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Webhook Error:")


def test_webhook_applies_checkout(client, fake_supabase, monkeypatch):
    event = {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_1",
            "customer": "cus_1",
            "subscription": "sub_1",
            "metadata": {"user_id": "user-1", "price_id": "price_default"},
        }},
    }
    monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret, **kwargs: event)

    response = client.post("/api/webhook", content=json.dumps(event).encode(), headers={"stripe-signature": "t=1,v1=ok"})

    assert response.status_code == 200
    assert response.json() == {"received": True}
    rows = fake_supabase.tables["subscriptions"]
    assert rows[0]["user_id"] == "user-1"
    assert rows[0]["status"] == "active"


def test_webhook_handler_failure_returns_500(client, fake_supabase, monkeypatch):
    event = {"id": "evt_2", "type": "invoice.paid", "data": {"object": {"subscription": "sub_1"}}}
    monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret, **kwargs: event)
    fake_supabase.error = RuntimeError("database unavailable")

    response = client.post("/api/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=ok"})

    assert response.status_code == 500


def test_plans_are_public(client):
    response = client.get("/api/plans")

    assert response.status_code == 200
    plans = {plan["id"]: plan for plan in response.json()["plans"]}
    assert plans["pro"]["price_id"] == "price_default"
    assert plans["pro"]["available"] is True
