"""Integration tests for error responses, request IDs and health probes."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    """Liveness and readiness probes answer without authentication."""
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

    response = await async_client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {
        "ready": True,
        "checks": {"database": "connected"},
        "timestamp": response.json()["timestamp"],
    }


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client: AsyncClient) -> None:
    """A caller-supplied request ID is returned; otherwise one is generated."""
    response = await async_client.get("/health", headers={"X-Request-ID": "req_fromcaller1"})
    assert response.headers["x-request-id"] == "req_fromcaller1"

    response = await async_client.get("/health")
    assert response.headers["x-request-id"].startswith("req_")


@pytest.mark.asyncio
async def test_error_body_carries_request_id(async_client: AsyncClient) -> None:
    """Structured errors include the request ID and a timestamp."""
    response = await async_client.get("/v1/credits", headers={"X-Request-ID": "req_trace00001"})

    body = response.json()
    assert body["request_id"] == "req_trace00001"
    assert body["timestamp"].endswith("Z")
    assert set(body) == {"error", "message", "details", "remediation", "request_id", "timestamp"}


@pytest.mark.asyncio
async def test_unknown_route_is_structured_404(async_client: AsyncClient) -> None:
    """Routing misses use the same error shape."""
    response = await async_client.get("/v1/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"
    assert response.json()["details"][0]["code"] == "not_found"


@pytest.mark.asyncio
async def test_wrong_method_is_structured_405(async_client: AsyncClient, user_headers: dict) -> None:
    """Unsupported methods use the same error shape."""
    response = await async_client.delete("/v1/credits", headers=user_headers)

    assert response.status_code == 405
    assert response.json()["details"][0]["code"] == "method_not_allowed"


@pytest.mark.asyncio
async def test_non_numeric_path_id(async_client: AsyncClient, admin_headers: dict) -> None:
    """Path parameters are validated like body fields."""
    response = await async_client.get("/v1/admin/invoices/abc", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    assert response.json()["details"][0]["field"] == "path.invoice_id"


@pytest.mark.asyncio
async def test_remediation_hint_for_domain_errors(async_client: AsyncClient, admin_headers: dict) -> None:
    """Domain errors carry a remediation hint."""
    response = await async_client.get("/v1/admin/users/search?query=a", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["remediation"] == "Search with at least 2 characters"


@pytest.mark.asyncio
async def test_root(async_client: AsyncClient) -> None:
    """The root endpoint describes the service."""
    response = await async_client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "billingcore"
