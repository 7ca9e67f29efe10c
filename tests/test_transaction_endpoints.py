"""
Integration tests for the purchase, webhook and plan endpoints.
"""
import asyncio
import json

from careerly.db.models import Subscription, Transaction


def purchase(client, headers, plan_id):
    return client.post("/transactions", json={"plan_id": plan_id}, headers=headers)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_requires_authentication(client, pro_plan):
    assert client.post("/transactions", json={"plan_id": pro_plan.id}).status_code == 401
    assert client.get("/me/quota", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


def test_create_transaction(client, test_user, pro_plan, gateway, auth_headers):
    response = purchase(client, auth_headers(test_user), pro_plan.id)

    assert response.status_code == 201
    data = response.json()
    assert data["transaction"]["status"] == "pending"
    assert data["transaction"]["plan"]["name"] == "pro-monthly"
    assert data["session_token"].startswith("snap-CAREERLY-")
    assert data["redirect_url"].endswith(data["session_token"])
    assert gateway.sessions[0]["amount"] == 150000


def test_create_transaction_rejects_client_amount(client, test_user, pro_plan, gateway, auth_headers):
    response = client.post(
        "/transactions",
        json={"plan_id": pro_plan.id, "gross_amount": 1},
        headers=auth_headers(test_user),
    )

    assert response.status_code == 422
    assert gateway.sessions == []


def test_create_transaction_error_codes(client, test_user, pro_plan, make_plan, make_subscription, gateway, auth_headers):
    headers = auth_headers(test_user)
    inactive = make_plan(name="legacy", is_active=False)

    assert purchase(client, headers, inactive.id).status_code == 400

    gateway.fail_create = True
    assert purchase(client, headers, pro_plan.id).status_code == 502

    make_subscription(test_user, pro_plan)
    assert purchase(client, headers, pro_plan.id).status_code == 409


def test_transaction_ownership(client, test_user, other_user, pro_plan, auth_headers):
    created = purchase(client, auth_headers(test_user), pro_plan.id).json()["transaction"]

    own = client.get(f"/transactions/{created['id']}", headers=auth_headers(test_user))
    foreign = client.get(f"/transactions/{created['id']}", headers=auth_headers(other_user))
    foreign_status = client.get(f"/transactions/{created['id']}/status", headers=auth_headers(other_user))

    assert own.status_code == 200
    assert own.json()["order_id"] == created["order_id"]
    assert foreign.status_code == 404
    assert foreign_status.status_code == 404

    listing = client.get("/transactions", headers=auth_headers(other_user)).json()
    assert listing["transactions"] == []
    assert listing["pagination"]["total"] == 0


def test_status_poll_reconciles(client, db, test_user, pro_plan, gateway, auth_headers):
    headers = auth_headers(test_user)
    created = purchase(client, headers, pro_plan.id).json()["transaction"]

    assert client.get(f"/transactions/{created['id']}/status", headers=headers).status_code == 502

    gateway.set_status(created["order_id"], "settlement")
    response = client.get(f"/transactions/{created['id']}/status", headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    assert response.json()["subscription_id"] is not None


def test_webhook_acknowledgements(client, db, test_user, pro_plan, gateway, auth_headers, notification):
    created = purchase(client, auth_headers(test_user), pro_plan.id).json()["transaction"]
    order_id = created["order_id"]

    # Unknown order: acknowledged so the gateway stops retrying
    response = client.post("/transactions/webhook", json=notification("CAREERLY-unknown"))
    assert response.status_code == 200
    assert response.json()["status"] == "ignored"

    # Gateway query failure
    response = client.post("/transactions/webhook", json=notification(order_id))
    assert response.status_code == 200
    assert response.json()["status"] == "error"

    # Bad signature
    response = client.post("/transactions/webhook", json=notification(order_id, server_key="wrong"))
    assert response.status_code == 401

    # Unparsable body
    response = client.post(
        "/transactions/webhook",
        content=b"order_id=abc",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 400

    gateway.set_status(order_id, "settlement")
    response = client.post("/transactions/webhook", content=json.dumps(notification(order_id)))
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

    db.expire_all()
    transaction = db.query(Transaction).filter(Transaction.order_id == order_id).one()
    assert transaction.status == "success"
    assert db.query(Subscription).count() == 1


def test_plans_listing_and_admin_crud(client, test_user, admin_user, pro_plan, auth_headers):
    user_headers = auth_headers(test_user)
    admin_headers = auth_headers(admin_user)

    listing = client.get("/plans", headers=user_headers)
    assert listing.status_code == 200
    assert [p["name"] for p in listing.json()["plans"]] == ["pro-monthly"]

    new_plan = {"name": "elite", "display_name": "Elite", "price": 300000, "max_resumes": None}
    assert client.post("/plans", json=new_plan, headers=user_headers).status_code == 403

    created = client.post("/plans", json=new_plan, headers=admin_headers)
    assert created.status_code == 201
    plan_id = created.json()["id"]

    assert client.post("/plans", json=new_plan, headers=admin_headers).status_code == 409

    updated = client.put(f"/plans/{plan_id}", json={"is_active": False}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    assert len(client.get("/plans", headers=user_headers).json()["plans"]) == 1
    assert len(client.get("/plans?include_inactive=true", headers=user_headers).json()["plans"]) == 1
    assert len(client.get("/plans?include_inactive=true", headers=admin_headers).json()["plans"]) == 2

    assert client.delete(f"/plans/{plan_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/plans/{plan_id}", headers=user_headers).status_code == 404


def test_webhook_non_ascii_signature_is_rejected(client, db, test_user, pro_plan, gateway, auth_headers, notification):
    created = purchase(client, auth_headers(test_user), pro_plan.id).json()["transaction"]
    gateway.set_status(created["order_id"], "settlement")

    body = notification(created["order_id"])
    body["signature_key"] = "é" * 128
    response = client.post("/transactions/webhook", json=body)

    assert response.status_code == 401
    assert gateway.status_queries == []
    db.expire_all()
    transaction = db.query(Transaction).filter(Transaction.order_id == created["order_id"]).one()
    assert transaction.status == "pending"
    assert transaction.gateway_raw_response is None
    assert db.query(Subscription).count() == 0


def test_webhook_stores_full_notification(client, db, test_user, pro_plan, gateway, auth_headers, notification):
    created = purchase(client, auth_headers(test_user), pro_plan.id).json()["transaction"]
    gateway.set_status(created["order_id"], "settlement")

    body = notification(
        created["order_id"],
        settlement_time="2026-10-19 10:15:02",
        va_numbers=[{"bank": "bca", "va_number": "12345678901"}],
    )
    response = client.post("/transactions/webhook", json=body)

    assert response.json()["status"] == "ok"
    db.expire_all()
    stored = db.query(Transaction).filter(Transaction.order_id == created["order_id"]).one().gateway_raw_response
    assert stored == body


def test_webhook_unexpected_failure_is_acknowledged(client, db, test_user, pro_plan, gateway, auth_headers, notification):
    created = purchase(client, auth_headers(test_user), pro_plan.id).json()["transaction"]

    def broken_query(order_id):
        raise RuntimeError("unexpected response shape")

    gateway.query_status = broken_query
    response = client.post("/transactions/webhook", json=notification(created["order_id"]))

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    db.expire_all()
    assert db.query(Transaction).filter(Transaction.order_id == created["order_id"]).one().status == "pending"


def test_webhook_processing_runs_off_the_event_loop(client, test_user, pro_plan, gateway, auth_headers, notification, monkeypatch):
    from careerly.services import transaction_service

    created = purchase(client, auth_headers(test_user), pro_plan.id).json()["transaction"]
    gateway.set_status(created["order_id"], "settlement")
    handle_webhook = transaction_service.handle_webhook
    seen = []

    def recording_handle_webhook(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker thread")
        return handle_webhook(*args, **kwargs)

    monkeypatch.setattr(transaction_service, "handle_webhook", recording_handle_webhook)
    response = client.post("/transactions/webhook", json=notification(created["order_id"]))

    assert response.json()["status"] == "ok"
    assert seen == ["worker thread"]


def test_plan_limits_cannot_be_negative(client, admin_user, pro_plan, auth_headers):
    admin_headers = auth_headers(admin_user)
    new_plan = {"name": "broken", "display_name": "Broken", "price": 100000, "max_resumes": -1}

    assert client.post("/plans", json=new_plan, headers=admin_headers).status_code == 422
    assert client.put(f"/plans/{pro_plan.id}", json={"max_ats_checks": -5}, headers=admin_headers).status_code == 422
    assert client.get(f"/plans/{pro_plan.id}", headers=admin_headers).json()["max_ats_checks"] == 5
