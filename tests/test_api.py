import inspect

from fastapi.routing import APIRoute

from auth.dependencies import decode_access_token

from conftest import (
    BRAND, DAY, FEE, INFLUENCER, ORACLE, OWNER, SCALE, STRANGER, T0, WEEK, auth_headers
)

API = "/api/v2"


def create_body(**overrides):
    body = {
        "offer_id": "camp-1",
        "influencer": INFLUENCER,
        "amount": 1000,
        "minimum_engagement": 500 * SCALE,
        "expired_at": T0 + DAY,
        "duration_seconds": WEEK,
        "value": 1000,
    }
    body.update(overrides)
    return body


def fund_vault(client):
    response = client.post(f"{API}/admin/fees/deposit", json={"amount": 10 * FEE}, headers=auth_headers("fee-sponsor"))
    assert response.status_code == 200


def test_token_round_trip():
    principal = decode_access_token(auth_headers(BRAND)["Authorization"].split()[1])
    assert principal.address == BRAND
    assert decode_access_token("garbage") is None


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_requires_token(client):
    assert client.post(f"{API}/escrow", json=create_body()).status_code in (401, 403)
    response = client.post(f"{API}/escrow", json=create_body(), headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_full_campaign_completes(client, clock):
    fund_vault(client)

    response = client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))
    assert response.status_code == 201
    created = response.json()
    assert created["brand"] == BRAND
    assert created["status"] == "pending"
    assert created["minimum_engagement"] == 500 * SCALE

    clock.set(T0 + 10)
    response = client.post(f"{API}/escrow/camp-1/accept", headers=auth_headers(INFLUENCER))
    assert response.status_code == 200
    assert response.json()["accepted_at"] == T0 + 10

    clock.set(T0 + 10 + WEEK)
    response = client.post(f"{API}/escrow/camp-1/request-verification", headers=auth_headers(STRANGER))
    assert response.status_code == 202
    request = response.json()
    assert request["times"] == str(SCALE)

    response = client.post(
        f"{API}/oracle/fulfill",
        json={"request_id": request["request_id"], "metric": 750 * SCALE},
        headers=auth_headers(ORACLE),
    )
    assert response.json() == {"status": "settled", "offer_id": "camp-1", "contract_status": "completed"}

    wallet = client.get(f"{API}/wallet", headers=auth_headers(INFLUENCER)).json()
    assert wallet["balance"] == 1000
    assert wallet["transactions"][0]["transaction_type"] == "escrow_release"

    events = client.get(f"{API}/escrow/camp-1/events", headers=auth_headers(STRANGER)).json()
    assert [e["event_type"] for e in events][-2:] == ["verification_fulfilled", "payment_released"]


def test_low_engagement_refunds(client, clock):
    fund_vault(client)
    client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))
    clock.set(T0 + 10)
    client.post(f"{API}/escrow/camp-1/accept", headers=auth_headers(INFLUENCER))
    clock.set(T0 + 10 + WEEK)
    request = client.post(f"{API}/escrow/camp-1/request-verification", headers=auth_headers(BRAND)).json()

    response = client.post(
        f"{API}/oracle/fulfill",
        json={"request_id": request["request_id"], "metric": 300 * SCALE},
        headers=auth_headers(ORACLE),
    )
    assert response.json()["contract_status"] == "refunded"
    assert client.get(f"{API}/wallet", headers=auth_headers(BRAND)).json()["balance"] == 1000


def test_expiry(client, clock):
    client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))

    response = client.post(f"{API}/escrow/camp-1/check-expired", headers=auth_headers(STRANGER))
    assert response.status_code == 409
    assert response.json()["code"] == "contract_not_expired"

    clock.set(T0 + DAY + 1)
    response = client.post(f"{API}/escrow/camp-1/check-expired", headers=auth_headers(STRANGER))
    assert response.json()["status"] == "expired"


def test_error_bodies(client):
    response = client.post(f"{API}/escrow", json=create_body(value=999), headers=auth_headers(BRAND))
    assert response.status_code == 400
    assert response.json()["code"] == "incorrect_amount_sent"

    client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))

    response = client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))
    assert response.status_code == 409
    assert response.json()["code"] == "already_exists"

    response = client.post(f"{API}/escrow/camp-1/accept", headers=auth_headers(BRAND))
    assert response.status_code == 403
    assert response.json() == {"detail": "Only the influencer of this offer can perform this action.", "code": "only_influencer"}

    response = client.get(f"{API}/escrow/missing", headers=auth_headers(BRAND))
    assert response.status_code == 404

    response = client.post(f"{API}/escrow/camp-1/request-verification", headers=auth_headers(BRAND))
    assert response.json()["code"] == "contract_not_active"


def test_oracle_callback_guards(client):
    response = client.post(
        f"{API}/oracle/fulfill",
        json={"request_id": "unknown", "metric": 1},
        headers=auth_headers(ORACLE),
    )
    assert response.json() == {"status": "ignored", "offer_id": None, "contract_status": None}

    response = client.post(
        f"{API}/oracle/fulfill",
        json={"request_id": "unknown", "metric": 1},
        headers=auth_headers(STRANGER),
    )
    assert response.status_code == 403
    assert response.json()["code"] == "not_oracle"


def test_oracle_unavailable(client, clock, oracle_client):
    fund_vault(client)
    client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))
    client.post(f"{API}/escrow/camp-1/accept", headers=auth_headers(INFLUENCER))
    clock.set(T0 + WEEK)
    oracle_client.fail = True

    response = client.post(f"{API}/escrow/camp-1/request-verification", headers=auth_headers(BRAND))
    assert response.status_code == 503
    assert client.get(f"{API}/admin/fees", headers=auth_headers(BRAND)).json()["balance"] == 10 * FEE


def test_list_filters(client):
    client.post(f"{API}/escrow", json=create_body(), headers=auth_headers(BRAND))
    client.post(f"{API}/escrow", json=create_body(offer_id="camp-2", influencer="someone"), headers=auth_headers(BRAND))
    client.post(f"{API}/escrow/camp-1/accept", headers=auth_headers(INFLUENCER))

    mine = client.get(f"{API}/escrow", params={"mine": True}, headers=auth_headers(INFLUENCER)).json()
    assert [c["offer_id"] for c in mine] == ["camp-1"]

    pending = client.get(f"{API}/escrow", params={"status": "pending"}, headers=auth_headers(STRANGER)).json()
    assert [c["offer_id"] for c in pending] == ["camp-2"]


def test_fee_sweep_is_owner_only(client):
    fund_vault(client)

    response = client.post(f"{API}/admin/fees/sweep", json={"to": STRANGER}, headers=auth_headers(STRANGER))
    assert response.status_code == 403
    assert response.json()["code"] == "not_owner"

    response = client.post(f"{API}/admin/fees/sweep", json={"to": OWNER}, headers=auth_headers(OWNER))
    assert response.status_code == 200
    assert response.json() == {"address": "escrow:oracle-fees", "balance": 0, "swept": 10 * FEE}
    assert client.get(f"{API}/wallet", headers=auth_headers(OWNER)).json()["balance"] == 10 * FEE


def test_locking_routes_run_in_threadpool():
    from server import app

    blocking = {
        ("POST", "/api/v2/escrow"),
        ("POST", "/api/v2/escrow/{offer_id}/accept"),
        ("POST", "/api/v2/escrow/{offer_id}/reject"),
        ("POST", "/api/v2/escrow/{offer_id}/check-expired"),
        ("POST", "/api/v2/escrow/{offer_id}/request-verification"),
        ("POST", "/api/v2/oracle/fulfill"),
        ("POST", "/api/v2/admin/fees/deposit"),
        ("POST", "/api/v2/admin/fees/sweep"),
    }
    found = set()
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in route.methods:
            if (method, route.path) in blocking:
                found.add((method, route.path))
                assert not inspect.iscoroutinefunction(route.endpoint), route.path
    assert found == blocking
