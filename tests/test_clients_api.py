import uuid

from database import Base
from schemas import PHONE_MESSAGE

from conftest import envelope, valid_client


async def _create(api, **overrides):
    resp = await api.post("/api/clients", json=valid_client(**overrides))
    assert resp.status_code == 201
    return resp.json()


async def test_health(api):
    resp = await api.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── POST ─────────────────────────────────────────────────────────────────────

async def test_create_returns_201_with_camel_case_record(api):
    body = await _create(api)

    assert uuid.UUID(body["id"])
    assert body["mtcGroupID"] == 21
    assert body["reporterPhone"] == "+972501234567"
    assert body["createdAt"] == body["updatedAt"]


async def test_create_invalid_is_400_with_messages(api):
    resp = await api.post("/api/clients", json=valid_client(reporterPhone="050-1234567"))

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error.startswith("Client validation failed: ")
    assert PHONE_MESSAGE in error


async def test_create_with_broken_json_is_400(api):
    resp = await api.post(
        "/api/clients",
        content=b"{nope",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert "valid JSON" in resp.json()["error"]


# ── GET ──────────────────────────────────────────────────────────────────────

async def test_get_by_id(api):
    created = await _create(api)

    resp = await api.get("/api/clients", params={"id": created["id"]})

    assert resp.status_code == 200
    assert resp.json() == created


async def test_get_unknown_id_is_404(api):
    for client_id in (str(uuid.uuid4()), "not-an-id"):
        resp = await api.get("/api/clients", params={"id": client_id})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Client not found"}


async def test_list_shape_and_defaults(api):
    for i in range(3):
        await _create(api, bid=i)

    resp = await api.get("/api/clients")

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"clients", "total", "page", "limit"}
    assert (body["total"], body["page"], body["limit"]) == (3, 1, 10)
    assert [c["bid"] for c in body["clients"]] == [2, 1, 0]


async def test_list_pagination_and_sorting_params(api):
    for i in range(7):
        await _create(api, bid=i)

    resp = await api.get(
        "/api/clients",
        params={"page": 2, "limit": 3, "sortBy": "bid", "sortOrder": "asc"},
    )

    body = resp.json()
    assert [c["bid"] for c in body["clients"]] == [3, 4, 5]
    assert (body["total"], body["page"], body["limit"]) == (7, 2, 3)


async def test_list_rejects_bad_query(api):
    for params in ({"limit": "abc"}, {"limit": 100000}, {"page": 0}, {"sortOrder": "sideways"}):
        resp = await api.get("/api/clients", params=params)
        assert resp.status_code == 400, params
        assert "error" in resp.json()


async def test_list_with_huge_page_is_400(api):
    resp = await api.get("/api/clients", params={"page": "100000000000000000000"})

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Client validation failed: page")


async def test_storage_failure_is_redacted_500(api, database):
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    resp = await api.get("/api/clients")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch clients"}


# ── PATCH ────────────────────────────────────────────────────────────────────

async def test_patch_updates_present_fields(api):
    created = await _create(api)

    resp = await api.patch("/api/clients", params={"id": created["id"]}, json={"reporterName": "Noa"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["reporterName"] == "Noa"
    assert body["createdAt"] == created["createdAt"]
    assert body["password"] == created["password"]


async def test_patch_errors(api):
    created = await _create(api)

    resp = await api.patch("/api/clients", json={"reporterName": "Noa"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Client ID is required"}

    resp = await api.patch("/api/clients", params={"id": str(uuid.uuid4())}, json={"reporterName": "Noa"})
    assert resp.status_code == 404

    resp = await api.patch("/api/clients", params={"id": created["id"]}, json={"reporterPhone": "+1"})
    assert resp.status_code == 400
    assert PHONE_MESSAGE in resp.json()["error"]


# ── DELETE ───────────────────────────────────────────────────────────────────

async def test_delete_flow(api):
    created = await _create(api)

    resp = await api.delete("/api/clients", params={"id": created["id"]})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Client deleted successfully"}

    resp = await api.delete("/api/clients", params={"id": created["id"]})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Client not found"}


async def test_delete_without_id_is_400(api):
    resp = await api.delete("/api/clients")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Client ID is required"}


# ── Active client ────────────────────────────────────────────────────────────

async def test_active_client_for_group(api):
    created = await _create(api, whatsappGroupName="Ops")

    resp = await api.get("/api/clients/active", params={"group": "Ops"})
    assert resp.status_code == 200
    assert resp.json()["id"] == created["id"]

    resp = await api.get("/api/clients/active", params={"group": "Nobody"})
    assert resp.status_code == 404

    resp = await api.get("/api/clients/active")
    assert resp.status_code == 400


# ── Bootstrap ────────────────────────────────────────────────────────────────

async def test_bootstrap_creates_client_from_phone(api, identity):
    resp = await api.post(
        "/api/clients/bootstrap",
        json={"phone": "+972501234567", "reporterName": "Dana", "whatsappGroupName": "Ops"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["compId"] == body["userName"] == "C1"
    assert (body["bid"], body["uid"], body["mtcGroupID"]) == (5, 9, 21)
    assert body["reporterPhone"] == "+972501234567"
    assert body["whatsappGroupName"] == "Ops"
    assert len(identity.requests) == 2


async def test_bootstrap_login_failure_is_502_and_stores_nothing(api, identity):
    identity.login = (200, envelope({"Table": []}))

    resp = await api.post(
        "/api/clients/bootstrap",
        json={"phone": "+972501234567", "reporterName": "Dana"},
    )

    assert resp.status_code == 502
    body = resp.json()
    assert (body["phase"], body["reason"]) == ("login", "no data")
    assert (await api.get("/api/clients")).json()["total"] == 0


async def test_bootstrap_rejects_bad_phone_before_calling_out(api, identity):
    resp = await api.post(
        "/api/clients/bootstrap",
        json={"phone": "0501234567", "reporterName": "Dana"},
    )

    assert resp.status_code == 400
    assert identity.requests == []


# ── CORS ─────────────────────────────────────────────────────────────────────

async def test_cors_is_open(api):
    resp = await api.options(
        "/api/clients",
        headers={"Origin": "http://example.com", "Access-Control-Request-Method": "DELETE"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"

    resp = await api.get("/api/clients", headers={"Origin": "http://example.com"})
    assert resp.headers["access-control-allow-origin"] == "*"
