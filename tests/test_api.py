"""
HTTP 層測試：回應外框、camelCase、驗證與權限、錯誤碼對應，以及主要流程的端點串接。
"""
import pytest

from agentcare.auth import create_access_token


def _bearer(client, permissions):
    """改用 JWT：拿掉預設 X-API-Key"""
    client.headers.pop("X-API-Key", None)
    client.headers["Authorization"] = f"Bearer {create_access_token('tester', permissions)}"


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_credentials_401(client, world):
    client.headers.pop("X-API-Key", None)
    r = await client.get("/api/v1/zones")
    assert r.status_code == 401
    body = r.json()
    assert body["success"] is False
    assert body["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_wrong_api_key_401(client):
    r = await client.get("/api/v1/zones", headers={"X-API-Key": "nope"})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid API key"


@pytest.mark.asyncio
async def test_invalid_token_401(client):
    client.headers.pop("X-API-Key", None)
    r = await client.get("/api/v1/zones", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_permission_checks(client, world):
    _bearer(client, ["zones:read"])
    assert (await client.get("/api/v1/zones")).status_code == 200
    r = await client.post("/api/v1/zones", json={"name": "Zone X"})
    assert r.status_code == 403
    assert r.json()["error"] == {"code": "FORBIDDEN", "message": "Missing permission: zones:write"}

    _bearer(client, ["zones:*"])
    assert (await client.post("/api/v1/zones", json={"name": "Zone X"})).status_code == 201
    assert (await client.get("/api/v1/leaves/types")).status_code == 403


@pytest.mark.asyncio
async def test_list_envelope_and_camel_case(client, world):
    r = await client.get("/api/v1/zones")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}
    zone = body["data"][0]
    assert zone["governorateId"] == world.governorate_id
    assert "isActive" in zone and "is_active" not in zone


@pytest.mark.asyncio
async def test_not_found_and_conflict(client, world):
    r = await client.get("/api/v1/zones/9999")
    assert r.status_code == 404
    assert r.json()["error"] == {"code": "NOT_FOUND", "message": "Zone not found"}
    r = await client.post("/api/v1/zones", json={"name": "Zone A", "governorateId": world.governorate_id})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_validation_error_400(client, world):
    r = await client.post(
        "/api/v1/service-requests",
        json={"customerId": world.customer_id, "complaintTypeId": world.plumbing_id, "title": "No premise"},
    )
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert isinstance(error["details"], list) and error["details"]


@pytest.mark.asyncio
async def test_active_head_and_coverage_endpoints(client, world):
    r = await client.get(f"/api/v1/zones/{world.zone_id}/active-head", params={"date": "2030-06-10"})
    data = r.json()["data"]
    assert data["activeHead"]["firstName"] == "Ali"
    assert data["isPrimaryOnLeave"] is False
    assert data["date"] == "2030-06-10"

    r = await client.get(
        f"/api/v1/zones/{world.zone_id}/coverage", params={"startDate": "2030-06-01", "endDate": "2030-06-30"}
    )
    data = r.json()["data"]
    assert data["coverageStatus"] == "FULL"
    assert data["period"] == {"startDate": "2030-06-01", "endDate": "2030-06-30"}

    r = await client.get("/api/v1/zones/coverage/all", params={"date": "2030-06-10"})
    assert r.json()["data"]["totalZones"] == 1
    assert r.json()["data"]["zones"][0]["activeRequests"] == 0


@pytest.mark.asyncio
async def test_zone_heads_endpoint(client, world):
    r = await client.put(f"/api/v1/zones/{world.zone_id}/heads", json={"primaryHeadId": world.outsider_id})
    assert r.status_code == 200
    team = r.json()["data"]
    assert team["primaryHead"]["id"] == world.outsider_id
    assert team["secondaryHead"]["id"] == world.secondary_id

    r = await client.put(f"/api/v1/zones/{world.zone_id}/heads", json={"secondaryHeadId": None})
    assert r.json()["data"]["secondaryHead"] is None


@pytest.mark.asyncio
async def test_leave_flow_over_http(client, world):
    r = await client.post("/api/v1/leaves/requests", json={
        "employeeId": world.primary_id, "leaveTypeId": world.annual_id,
        "startDate": "2030-06-09", "endDate": "2030-06-11",
    })
    assert r.status_code == 201
    request_id = r.json()["data"]["id"]
    assert r.json()["data"]["totalDays"] == 3

    r = await client.post(f"/api/v1/leaves/requests/{request_id}/approve", json={"approverId": world.secondary_id})
    assert r.json()["data"]["status"] == "APPROVED"

    r = await client.get(f"/api/v1/leaves/balances/{world.primary_id}", params={"year": 2030})
    annual = r.json()["data"][0]
    assert (annual["leaveTypeName"], annual["usedDays"], annual["availableDays"]) == ("Annual", 3, 27)

    r = await client.get(f"/api/v1/zones/{world.zone_id}/active-head", params={"date": "2030-06-10"})
    assert r.json()["data"]["activeHead"]["id"] == world.secondary_id
    assert r.json()["data"]["isUsingSecondary"] is True

    r = await client.get("/api/v1/leaves/on-leave", params={"startDate": "2030-06-10", "zoneId": world.zone_id})
    on_leave = r.json()["data"]
    assert [x["employee"]["firstName"] for x in on_leave] == ["Ali"]

    r = await client.post(f"/api/v1/leaves/requests/{request_id}/reject", json={"rejectionReason": "late"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_service_request_over_http(client, world):
    r = await client.post("/api/v1/service-requests", json={
        "customerId": world.customer_id, "unitId": world.unit_id,
        "complaintTypeId": world.plumbing_id, "title": "Blocked drain", "priority": "HIGH",
    })
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["assignedToId"] == world.tech_id
    assert data["status"] == "ASSIGNED"
    assert [t["action"] for t in data["timeline"]] == ["AUTO_ASSIGNED", "REQUEST_CREATED"]
    assert data["timeline"][1]["performedBy"] == "internal-service"

    r = await client.post(f"/api/v1/service-requests/{data['id']}/cancel", json={})
    assert r.status_code == 400

    r = await client.get("/api/v1/service-requests/stats")
    assert r.json()["data"]["byPriority"] == {"HIGH": 1}


@pytest.mark.asyncio
async def test_amc_flow_over_http(client, world):
    r = await client.post("/api/v1/amc", json={
        "customerId": world.customer_id,
        "startDate": "2030-01-01",
        "endDate": "2030-12-31",
        "contractValue": "1200.000",
        "paymentTerms": "QUARTERLY",
        "properties": [{"unitId": world.unit_id}],
        "services": [{"complaintTypeId": world.plumbing_id, "frequency": "QUARTERLY"}],
    })
    assert r.status_code == 201
    contract = r.json()["data"]
    assert contract["status"] == "DRAFT"
    assert contract["services"][0]["visitsPerYear"] == 4

    r = await client.patch(f"/api/v1/amc/{contract['id']}/status", json={"status": "ACTIVE"})
    assert r.json()["data"]["status"] == "ACTIVE"

    r = await client.get("/api/v1/amc/schedules", params={"contractId": contract["id"]})
    assert r.json()["pagination"]["total"] == 5
    r = await client.get("/api/v1/amc/payments", params={"contractId": contract["id"]})
    payments = r.json()["data"]
    assert len(payments) == 4

    r = await client.post(
        f"/api/v1/amc/payments/{payments[0]['id']}/record",
        json={"paidAmount": "300", "paymentMethod": "BANK_TRANSFER", "paymentReference": "TRX-1"},
    )
    assert r.json()["data"]["status"] == "PAID"

    r = await client.post(f"/api/v1/amc/{contract['id']}/payments/generate")
    assert r.json()["data"]["paymentsCreated"] == 3

    r = await client.delete(f"/api/v1/amc/{contract['id']}")
    assert r.status_code == 400

    r = await client.post(f"/api/v1/amc/{contract['id']}/renew")
    assert r.status_code == 201
    assert r.json()["data"]["renewedFromId"] == contract["id"]


@pytest.mark.asyncio
async def test_scheduler_job_endpoints(client):
    r = await client.get("/api/v1/scheduler/jobs")
    names = [j["name"] for j in r.json()["data"]]
    assert names == ["zone-head-evening", "zone-head-morning", "notification-processor"]
    r = await client.get("/api/v1/scheduler/jobs/unknown")
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Job 'unknown' not found"
