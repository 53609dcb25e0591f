"""
Supabase backend over its REST APIs (PostgREST, Storage, GoTrue) using httpx
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from bluework.backend.base import AuthClient, AuthSession, Backend, QueryClient, Record, StorageClient, User
from bluework.core.errors import DependencyError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error_description", "msg", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or response.reason_phrase


async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error(f"❌ {method} {url} failed: {e}")
        raise DependencyError(str(e) or e.__class__.__name__, cause=e) from e

    if response.is_error:
        message = _error_text(response)
        logger.error(f"❌ {method} {url} -> {response.status_code}: {message}")
        raise DependencyError(message)
    return response


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        logger.error(f"❌ {response.request.method} {response.request.url} returned a non-JSON body")
        raise DependencyError("Respons server tidak valid.", cause=e) from e


def _filter_params(filters: Optional[dict[str, Any]]) -> dict[str, str]:
    params = {}
    for column, value in (filters or {}).items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[column] = f"eq.{value}"
    return params


class SupabaseQueryClient(QueryClient):
    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str, access_token: Optional[str] = None):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token

    def with_token(self, access_token: str) -> "SupabaseQueryClient":
        return SupabaseQueryClient(self.client, self.base_url, self.api_key, access_token)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: str = "*",
    ) -> list[Record]:
        params = {"select": columns, **_filter_params(filters)}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        response = await _send(self.client, "GET", self._url(table), params=params, headers=self.headers)
        return _json(response)

    async def insert(self, table: str, records: list[Record]) -> list[Record]:
        headers = {**self.headers, "Prefer": "return=representation"}
        response = await _send(self.client, "POST", self._url(table), json=records, headers=headers)
        return _json(response)

    async def update(self, table: str, patch: Record, filters: dict[str, Any]) -> None:
        await _send(
            self.client, "PATCH", self._url(table),
            params=_filter_params(filters), json=patch, headers=self.headers,
        )

    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        if not filters:
            raise ValueError("Refusing to delete without a filter")
        await _send(self.client, "DELETE", self._url(table), params=_filter_params(filters), headers=self.headers)


class SupabaseStorageClient(StorageClient):
    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": content_type,
            "Cache-Control": "max-age=3600",
            "x-upsert": "false",
        }
        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(key)}"
        await _send(self.client, "POST", url, content=data, headers=headers)

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(key)}"


class SupabaseAuthClient(AuthClient):
    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        return {"apikey": self.api_key, "Authorization": f"Bearer {token or self.api_key}"}

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await _send(
            self.client, "POST", f"{self.base_url}/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        body = _json(response)
        user = body.get("user") or {}
        if not body.get("access_token") or not user:
            raise DependencyError("Login gagal. Periksa kembali email dan password Anda.")
        return AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
            user=User(id=str(user.get("id", "")), email=user.get("email", "")),
        )

    async def sign_out(self, access_token: str) -> None:
        await _send(self.client, "POST", f"{self.base_url}/auth/v1/logout", headers=self._headers(access_token))

    async def get_user(self, access_token: Optional[str]) -> Optional[User]:
        if not access_token:
            return None
        try:
            response = await self.client.get(f"{self.base_url}/auth/v1/user", headers=self._headers(access_token))
        except httpx.HTTPError as e:
            raise DependencyError(str(e), cause=e) from e
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise DependencyError(_error_text(response))
        body = _json(response)
        return User(id=str(body.get("id", "")), email=body.get("email", ""))


def create_supabase_backend(
    url: str,
    api_key: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Backend:
    if not url or not api_key:
        raise DependencyError("Konfigurasi Supabase belum lengkap.")
    client = client or httpx.AsyncClient(timeout=timeout)
    return Backend(
        name="supabase",
        query=SupabaseQueryClient(client, url, api_key),
        storage=SupabaseStorageClient(client, url, api_key),
        auth=SupabaseAuthClient(client, url, api_key),
        extras={"close": client.aclose},
    )
