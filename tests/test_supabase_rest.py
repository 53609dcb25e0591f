"""
Tests for the Supabase REST backend against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from bluework.backend.supabase_rest import create_supabase_backend
from bluework.core.errors import DependencyError

BASE_URL = "https://proj.supabase.co"
ANON_KEY = "anon-key"


class Recorder:
    """MockTransport handler that records requests and replays canned responses"""

    def __init__(self, responses=None):
        self.requests: list[httpx.Request] = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status, body = self.responses.get(key, (200, []))
        return httpx.Response(status, json=body)


def backend_with(recorder):
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return create_supabase_backend(BASE_URL, ANON_KEY, client=client)


def html_backend(status=200):
    def handler(request):
        return httpx.Response(status, text="<html>Bad Gateway</html>")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return create_supabase_backend(BASE_URL, ANON_KEY, client=client)


class TestConfiguration:

    def test_missing_configuration(self):
        with pytest.raises(DependencyError, match="Konfigurasi Supabase"):
            create_supabase_backend("", "")


class TestQuery:

    @pytest.mark.asyncio
    async def test_select_with_filter_and_order(self):
        recorder = Recorder({("GET", "/rest/v1/job_listings"): (200, [{"id": 1, "title": "Kurir"}])})
        backend = backend_with(recorder)

        rows = await backend.query.select("job_listings", filters={"is_active": True},
                                          order_by="created_at", descending=True)

        assert rows == [{"id": 1, "title": "Kurir"}]
        request = recorder.requests[0]
        assert request.url.params["select"] == "*"
        assert request.url.params["is_active"] == "eq.true"
        assert request.url.params["order"] == "created_at.desc"
        assert request.headers["apikey"] == ANON_KEY
        assert request.headers["authorization"] == f"Bearer {ANON_KEY}"
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_insert_returns_representation(self):
        recorder = Recorder({("POST", "/rest/v1/applications"): (201, [{"id": 42, "full_name": "Budi"}])})
        backend = backend_with(recorder)

        rows = await backend.query.insert("applications", [{"full_name": "Budi"}])

        assert rows[0]["id"] == 42
        request = recorder.requests[0]
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == [{"full_name": "Budi"}]

    @pytest.mark.asyncio
    async def test_delete_by_id(self):
        recorder = Recorder({("DELETE", "/rest/v1/applications"): (204, None)})
        backend = backend_with(recorder)
        await backend.query.delete("applications", {"id": "42"})
        assert recorder.requests[0].url.params["id"] == "eq.42"

    @pytest.mark.asyncio
    async def test_delete_without_filter_refused(self):
        backend = backend_with(Recorder())
        with pytest.raises(ValueError):
            await backend.query.delete("applications", {})

    @pytest.mark.asyncio
    async def test_error_response_becomes_dependency_error(self):
        recorder = Recorder({
            ("POST", "/rest/v1/applicant_work_experiences"): (400, {"message": "violates foreign key constraint"}),
        })
        backend = backend_with(recorder)
        with pytest.raises(DependencyError, match="violates foreign key constraint"):
            await backend.query.insert("applicant_work_experiences", [{"application_id": "x"}])

    @pytest.mark.asyncio
    async def test_network_error_becomes_dependency_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        backend = create_supabase_backend(BASE_URL, ANON_KEY, client=client)
        with pytest.raises(DependencyError):
            await backend.query.select("job_listings")

    @pytest.mark.asyncio
    async def test_non_json_select_becomes_dependency_error(self):
        backend = html_backend()
        with pytest.raises(DependencyError, match="Respons server tidak valid"):
            await backend.query.select("job_listings")

    @pytest.mark.asyncio
    async def test_non_json_insert_becomes_dependency_error(self):
        backend = html_backend(201)
        with pytest.raises(DependencyError) as exc_info:
            await backend.query.insert("applications", [{"full_name": "Budi"}])
        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_session_scoped_queries_use_user_token(self):
        recorder = Recorder()
        backend = backend_with(recorder).for_session("user-jwt")
        await backend.query.select("applications")
        assert recorder.requests[0].headers["authorization"] == "Bearer user-jwt"
        assert recorder.requests[0].headers["apikey"] == ANON_KEY


class TestStorage:

    @pytest.mark.asyncio
    async def test_upload_and_public_url(self):
        recorder = Recorder({
            ("POST", "/storage/v1/object/applicant-documents/photos/1-me.jpg"): (200, {"Key": "ok"}),
        })
        backend = backend_with(recorder)

        await backend.storage.upload("applicant-documents", "photos/1-me.jpg", b"img", "image/jpeg")

        request = recorder.requests[0]
        assert request.content == b"img"
        assert request.headers["content-type"] == "image/jpeg"
        assert request.headers["x-upsert"] == "false"
        assert backend.storage.get_public_url("applicant-documents", "photos/1-me.jpg") == (
            f"{BASE_URL}/storage/v1/object/public/applicant-documents/photos/1-me.jpg"
        )

    @pytest.mark.asyncio
    async def test_duplicate_upload_fails(self):
        recorder = Recorder({
            ("POST", "/storage/v1/object/applicant-documents/cvs/1-cv.pdf"): (409, {"error": "Duplicate"}),
        })
        backend = backend_with(recorder)
        with pytest.raises(DependencyError, match="Duplicate"):
            await backend.storage.upload("applicant-documents", "cvs/1-cv.pdf", b"pdf")


class TestAuth:

    @pytest.mark.asyncio
    async def test_sign_in(self):
        recorder = Recorder({("POST", "/auth/v1/token"): (200, {
            "access_token": "jwt",
            "refresh_token": "refresh",
            "expires_in": 3600,
            "user": {"id": "u1", "email": "admin@bluework.id"},
        })})
        backend = backend_with(recorder)

        session = await backend.auth.sign_in("admin@bluework.id", "secret")

        assert session.access_token == "jwt"
        assert session.expires_in == 3600
        assert session.user.email == "admin@bluework.id"
        assert recorder.requests[0].url.params["grant_type"] == "password"

    @pytest.mark.asyncio
    async def test_invalid_credentials(self):
        recorder = Recorder({("POST", "/auth/v1/token"): (400, {"error_description": "Invalid login credentials"})})
        backend = backend_with(recorder)
        with pytest.raises(DependencyError, match="Invalid login credentials"):
            await backend.auth.sign_in("admin@bluework.id", "wrong")

    @pytest.mark.asyncio
    async def test_non_json_sign_in_becomes_dependency_error(self):
        backend = html_backend()
        with pytest.raises(DependencyError, match="Respons server tidak valid"):
            await backend.auth.sign_in("admin@bluework.id", "secret")

    @pytest.mark.asyncio
    async def test_non_json_user_becomes_dependency_error(self):
        backend = html_backend()
        with pytest.raises(DependencyError):
            await backend.auth.get_user("jwt")

    @pytest.mark.asyncio
    async def test_get_user_with_expired_token(self):
        recorder = Recorder({("GET", "/auth/v1/user"): (401, {"msg": "expired"})})
        backend = backend_with(recorder)
        assert await backend.auth.get_user("old-jwt") is None

    @pytest.mark.asyncio
    async def test_get_user_without_token_makes_no_request(self):
        recorder = Recorder()
        backend = backend_with(recorder)
        assert await backend.auth.get_user(None) is None
        assert recorder.requests == []
