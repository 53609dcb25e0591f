"""
Backend capabilities - query, object storage and auth.

Every implementation raises ``DependencyError`` when the underlying service
call fails.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

Record = dict[str, Any]


@dataclass
class User:
    id: str
    email: str


@dataclass
class AuthSession:
    access_token: str
    user: User
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class QueryClient(ABC):
    """Table access: equality filters and single-column ordering"""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: str = "*",
    ) -> list[Record]:
        pass

    @abstractmethod
    async def insert(self, table: str, records: list[Record]) -> list[Record]:
        """Insert rows and return them as stored (including assigned ids)"""
        pass

    @abstractmethod
    async def update(self, table: str, patch: Record, filters: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        pass


class StorageClient(ABC):

    @abstractmethod
    async def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        pass

    @abstractmethod
    def get_public_url(self, bucket: str, key: str) -> str:
        pass


class AuthClient(ABC):

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        pass

    @abstractmethod
    async def get_user(self, access_token: Optional[str]) -> Optional[User]:
        """Current user for a token, or None when the token is missing or invalid"""
        pass


@dataclass
class Backend:
    """Explicitly constructed bundle of collaborator clients"""
    name: str
    query: QueryClient
    storage: StorageClient
    auth: AuthClient
    extras: dict[str, Any] = field(default_factory=dict)

    def for_session(self, access_token: Optional[str]) -> "Backend":
        """Backend whose queries run as the signed-in user (row-level security)"""
        scoped = getattr(self.query, "with_token", None)
        if not access_token or scoped is None:
            return self
        return Backend(
            name=self.name,
            query=scoped(access_token),
            storage=self.storage,
            auth=self.auth,
            extras=self.extras,
        )

    async def aclose(self) -> None:
        closer = self.extras.get("close")
        if closer is not None:
            await closer()
