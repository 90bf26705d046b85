import httpx
import pytest

from storefront.domain.exceptions import IdentityServiceError
from storefront.domain.models import UserRole
from storefront.infrastructure.http_clients import HTTPIdentityClient


def make_client(handler):
    return HTTPIdentityClient("http://identity", "service-key", transport=httpx.MockTransport(handler))


async def test_resolves_user_from_envelope():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["key"] = request.headers["X-API-Key"]
        return httpx.Response(200, json={
            "success": True,
            "data": {"_id": "u-42", "name": "Le Van C", "email": "c@example.com", "role": "admin"},
        })

    user = await make_client(handler).get_current_user("jwt-token")

    assert seen == {"path": "/api/auth/me", "auth": "Bearer jwt-token", "key": "service-key"}
    assert user.id == "u-42"
    assert user.role == UserRole.ADMIN
    assert user.phone == ""


@pytest.mark.parametrize("status_code", [401, 403, 404])
async def test_rejected_token_is_anonymous(status_code):
    user = await make_client(lambda request: httpx.Response(status_code)).get_current_user("expired")
    assert user is None


async def test_server_error_raises():
    with pytest.raises(IdentityServiceError):
        await make_client(lambda request: httpx.Response(500)).get_current_user("jwt-token")


async def test_connection_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IdentityServiceError):
        await make_client(handler).get_current_user("jwt-token")


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, json={"success": True, "data": {"name": "No Id"}}),
    httpx.Response(200, json={"success": True, "data": None}),
])
async def test_malformed_user_payload_raises(response):
    with pytest.raises(IdentityServiceError):
        await make_client(lambda request: response).get_current_user("jwt-token")


async def test_malformed_payload_is_503(client):
    from storefront.main import app
    from storefront.presentation.dependencies import get_identity_service

    app.dependency_overrides[get_identity_service] = lambda: make_client(
        lambda request: httpx.Response(200, text="not json")
    )

    response = await client.get("/api/cart", headers={"Authorization": "Bearer jwt-token"})

    assert response.status_code == 503
    assert response.json()["success"] is False
