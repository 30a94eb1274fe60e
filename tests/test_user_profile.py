import httpx
import pytest

from exceptions import NotFoundError
from user_profile.profile import UserProfileService, UserProfileServiceError, encode_email

BASE_URL = "https://api.collegemate.test"


def profile_payload(**overrides):
    payload = {
        "nickname": "park",
        "lastLogin": "2023-02-10T00:50:43.000Z",
        "signUpDate": "2023-01-01T00:00:00.000Z",
        "nicknameChanged": "2023-01-01T00:00:00.000Z",
        "major": "Computer Science",
        "graduationYear": 2024,
        "tncVersion": "v1.0.1",
        "deleted": False,
        "locked": False,
    }
    payload.update(overrides)
    return payload


def make_service(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UserProfileService(BASE_URL, "server-admin-key", client=client)


def test_encode_email_is_unpadded_base64url():
    assert encode_email("steve@wisc.edu") == "c3RldmVAd2lzYy5lZHU"


@pytest.mark.asyncio
async def test_get_profile():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=profile_payload())

    service = make_service(handler)
    profile = await service.get_profile("park@wisc.edu")

    assert profile.email == "park@wisc.edu"
    assert profile.nickname == "park"
    assert profile.is_eligible
    assert seen[0].url.path == f"/user/profile/{encode_email('park@wisc.edu')}"
    await service.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("flags", [{"deleted": True}, {"locked": True}])
async def test_deleted_or_locked_profile_is_not_eligible(flags):
    service = make_service(lambda request: httpx.Response(200, json=profile_payload(**flags)))
    profile = await service.get_profile("park@wisc.edu")
    assert not profile.is_eligible


@pytest.mark.asyncio
async def test_missing_profile_raises_not_found():
    service = make_service(lambda request: httpx.Response(404))
    with pytest.raises(NotFoundError):
        await service.get_profile("notFound@wisc.edu")


@pytest.mark.asyncio
async def test_renews_server_token_once_on_rejection():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if request.url.path == "/auth/login":
            assert request.headers["X-SERVER-KEY"] == "server-admin-key"
            return httpx.Response(200, json={"serverAdminToken": "fresh-token"})
        if request.headers.get("X-SERVER-TOKEN") == "fresh-token":
            return httpx.Response(200, json=profile_payload())
        return httpx.Response(401)

    service = make_service(handler)
    profile = await service.get_profile("park@wisc.edu")

    assert profile.nickname == "park"
    assert service.server_admin_token == "fresh-token"
    assert calls.count("/auth/login") == 1
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_failed_token_renewal_propagates():
    def handler(request):
        if request.url.path == "/auth/login":
            return httpx.Response(500)
        return httpx.Response(403)

    service = make_service(handler)
    with pytest.raises(UserProfileServiceError):
        await service.get_profile("park@wisc.edu")


@pytest.mark.asyncio
async def test_unexpected_status_propagates():
    service = make_service(lambda request: httpx.Response(503))
    with pytest.raises(UserProfileServiceError):
        await service.get_profile("park@wisc.edu")
