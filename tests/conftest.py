"""
Shared fixtures: an in-memory backend that records every call and can be told
to fail specific operations, plus settings and app clients wired to it.
"""

import itertools
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from bluework.backend.base import AuthClient, AuthSession, Backend, QueryClient, StorageClient, User
from bluework.core.errors import DependencyError
from bluework.forms.draft import FormDraft, UploadedFile
from bluework.forms.experience import ExperienceDraft, ExperienceGroup
from bluework.utils.config import Settings

FIXED_NOW = datetime(2024, 6, 10, 9, 30, tzinfo=timezone.utc)
TODAY = date(2024, 6, 10)

ADMIN_EMAIL = "admin@bluework.id"
ADMIN_PASSWORD = "rahasia123"


class FakeQueryClient(QueryClient):
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self._ids = itertools.count(1)

    def fail(self, op: str, table: str, error: Optional[Exception] = None) -> None:
        self.failures[(op, table)] = error or DependencyError(f"{op} on {table} failed")

    def _check(self, op: str, table: str) -> None:
        error = self.failures.get((op, table))
        if error is not None:
            raise error

    @staticmethod
    def _matches(row: dict, filters: Optional[dict[str, Any]]) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in (filters or {}).items())

    async def select(self, table, filters=None, order_by=None, descending=False, columns="*"):
        self.calls.append(("select", table, filters))
        self._check("select", table)
        rows = [dict(r) for r in self.tables.get(table, []) if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{k: r.get(k) for k in wanted} for r in rows]
        return rows

    async def insert(self, table, records):
        self.calls.append(("insert", table, records))
        self._check("insert", table)
        stored = []
        for record in records:
            row = {"id": str(next(self._ids)), **record}
            self.tables.setdefault(table, []).append(row)
            stored.append(dict(row))
        return stored

    async def update(self, table, patch, filters):
        self.calls.append(("update", table, patch, filters))
        self._check("update", table)
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(patch)

    async def delete(self, table, filters):
        self.calls.append(("delete", table, filters))
        self._check("delete", table)
        self.tables[table] = [r for r in self.tables.get(table, []) if not self._matches(r, filters)]

    def ops(self) -> list[tuple[str, str]]:
        return [(call[0], call[1]) for call in self.calls]


class FakeStorageClient(StorageClient):
    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.error: Optional[Exception] = None

    async def upload(self, bucket, key, data, content_type="application/octet-stream"):
        self.calls.append((bucket, key))
        if self.error is not None:
            raise self.error
        self.objects[f"{bucket}/{key}"] = data

    def get_public_url(self, bucket, key):
        return f"https://files.test/{bucket}/{key}"


class FakeAuthClient(AuthClient):
    def __init__(self):
        self.user = User(id="admin-1", email=ADMIN_EMAIL)
        self.tokens: set[str] = set()
        self.signed_out: list[str] = []

    async def sign_in(self, email, password):
        if email != ADMIN_EMAIL or password != ADMIN_PASSWORD:
            raise DependencyError("Invalid login credentials")
        token = f"token-{len(self.tokens) + 1}"
        self.tokens.add(token)
        return AuthSession(access_token=token, user=self.user)

    async def sign_out(self, access_token):
        self.signed_out.append(access_token)
        self.tokens.discard(access_token)

    async def get_user(self, access_token):
        return self.user if access_token in self.tokens else None


@pytest.fixture
def fake_backend() -> Backend:
    return Backend(
        name="fake",
        query=FakeQueryClient(),
        storage=FakeStorageClient(),
        auth=FakeAuthClient(),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        BACKEND="local",
        ADMIN_EMAIL=ADMIN_EMAIL,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        database={"path": ":memory:"},
        uploads={"local_dir": str(tmp_path / "uploads")},
        logging={"file": str(tmp_path / "logs" / "bluework.log")},
    )


@pytest.fixture
def app(settings, fake_backend):
    from bluework.dashboard.app import create_app
    return create_app(settings=settings, backend=fake_backend)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_client(client) -> TestClient:
    response = client.post(
        "/admin",
        data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client


def make_draft(experiences: Optional[list[ExperienceDraft]] = None, **overrides) -> FormDraft:
    """A fully filled-in draft that passes validation"""
    fields = dict(
        full_name="Budi Santoso",
        nick_name="Budi",
        address="Jl. Merdeka No. 1, Bandung",
        phone_number="081234567890",
        email="budi@example.com",
        ktp_number="3273000000000001",
        last_education="SMA",
        applied_position="Operator Produksi",
        last_salary="4500000",
        expected_salary="5000000",
        domicile_city="Bandung",
        ready_to_relocate=True,
    )
    fields.update(overrides)
    draft = FormDraft(**fields)
    draft.set_date_of_birth(overrides.get("date_of_birth", "1995-08-17"), today=TODAY)
    if experiences is not None:
        draft.experiences = ExperienceGroup(experiences)
    return draft


def make_file(name: str, size: int, content_type: str = "application/octet-stream") -> UploadedFile:
    return UploadedFile(filename=name, content=b"x" * size, content_type=content_type)
