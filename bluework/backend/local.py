"""
Local backend - SQLite with SQLAlchemy ORM, files on disk, admin login from settings.
Used for development and tests when no Supabase project is configured.
"""

import hmac
import secrets
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import (
    create_engine,
    Column,
    String,
    Integer,
    Float,
    Boolean,
    Date,
    DateTime,
    Text,
    ForeignKey,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.pool import StaticPool

from bluework.backend.base import AuthClient, AuthSession, Backend, QueryClient, Record, StorageClient, User
from bluework.core.errors import DependencyError

Base = declarative_base()


class JobListingModel(Base):
    """SQLAlchemy model for JobPosting"""
    __tablename__ = "job_listings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False, default="")
    company = Column(String, nullable=False, default="")
    location = Column(String, default="")
    type = Column(String, default="")
    description = Column(Text, default="")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)


class ApplicationModel(Base):
    """SQLAlchemy model for Applicant"""
    __tablename__ = "applications"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String, nullable=False)
    nick_name = Column(String)
    address = Column(Text)
    date_of_birth = Column(Date)
    age = Column(Integer)
    phone_number = Column(String)
    email = Column(String)
    ktp_number = Column(String)
    last_education = Column(String)
    applied_position = Column(String)
    last_salary = Column(Float)
    expected_salary = Column(Float)
    domicile_city = Column(String)
    ready_to_relocate = Column(Boolean, default=False)
    photo_url = Column(String, default="")
    cv_url = Column(String, default="")
    applied_at = Column(DateTime, default=datetime.now)


class WorkExperienceModel(Base):
    """SQLAlchemy model for WorkExperience"""
    __tablename__ = "applicant_work_experiences"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    application_id = Column(String, ForeignKey("applications.id"), nullable=False)
    position = Column(String, nullable=False)
    company_name = Column(String, nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    is_current_job = Column(Boolean, default=False)


MODELS = {model.__tablename__: model for model in (JobListingModel, ApplicationModel, WorkExperienceModel)}


def _to_python(column: Column, value: Any) -> Any:
    if isinstance(value, str) and value:
        if isinstance(column.type, DateTime):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            # SQLite keeps naive UTC timestamps
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        if isinstance(column.type, Date):
            return date.fromisoformat(value)
    if value == "" and isinstance(column.type, (Date, DateTime)):
        return None
    return value


def _to_wire(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _row_to_record(row) -> Record:
    return {column.name: _to_wire(getattr(row, column.name)) for column in row.__table__.columns}


class Database:
    """
    Database manager for the local backend.
    Handles all table operations with SQLite.
    """

    def __init__(self, db_path: str = "data/bluework.db", echo: bool = False):
        engine_kwargs = {"echo": echo, "connect_args": {"check_same_thread": False}}
        if db_path == ":memory:":
            url = "sqlite://"
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        else:
            path = Path(db_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{path}"

        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        # Create tables
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Session:
        """Get a database session"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DependencyError(str(e.orig if getattr(e, "orig", None) else e), cause=e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _model(table: str):
    try:
        return MODELS[table]
    except KeyError:
        raise DependencyError(f"Unknown table: {table}") from None


def _where(query, model, filters: Optional[dict[str, Any]]):
    for column_name, value in (filters or {}).items():
        column = model.__table__.columns[column_name]
        query = query.filter(getattr(model, column_name) == _to_python(column, value))
    return query


class LocalQueryClient(QueryClient):
    def __init__(self, db: Database):
        self.db = db

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: str = "*",
    ) -> list[Record]:
        model = _model(table)
        with self.db.session() as session:
            query = _where(session.query(model), model, filters)
            if order_by:
                attr = getattr(model, order_by)
                query = query.order_by(attr.desc() if descending else attr.asc())
            records = [_row_to_record(row) for row in query.all()]

        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            records = [{k: r.get(k) for k in wanted} for r in records]
        return records

    async def insert(self, table: str, records: list[Record]) -> list[Record]:
        model = _model(table)
        table_columns = model.__table__.columns
        with self.db.session() as session:
            rows = []
            for record in records:
                values = {
                    name: _to_python(table_columns[name], value)
                    for name, value in record.items()
                    if name in table_columns
                }
                rows.append(model(**values))
            session.add_all(rows)
            session.flush()
            return [_row_to_record(row) for row in rows]

    async def update(self, table: str, patch: Record, filters: dict[str, Any]) -> None:
        model = _model(table)
        table_columns = model.__table__.columns
        values = {name: _to_python(table_columns[name], value) for name, value in patch.items() if name in table_columns}
        with self.db.session() as session:
            _where(session.query(model), model, filters).update(values, synchronize_session=False)

    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        if not filters:
            raise ValueError("Refusing to delete without a filter")
        model = _model(table)
        with self.db.session() as session:
            _where(session.query(model), model, filters).delete(synchronize_session=False)


class LocalStorageClient(StorageClient):
    """Stores objects under ``root/<bucket>/<key>``; served at ``url_prefix``"""

    def __init__(self, root: str | Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, bucket: str, key: str) -> Path:
        path = (self.root / bucket / key).resolve()
        if self.root.resolve() not in path.parents:
            raise DependencyError(f"Invalid object key: {key}")
        return path

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        path = self._path(bucket, key)
        if path.exists():
            raise DependencyError(f"The resource already exists: {bucket}/{key}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise DependencyError(str(e), cause=e) from e

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self.url_prefix}/{bucket}/{key}"


class LocalAuthClient(AuthClient):
    """Single admin account from settings; tokens live in process memory"""

    def __init__(self, admin_email: str, admin_password: str):
        self.admin = User(id="local-admin", email=admin_email)
        self.admin_password = admin_password
        self._tokens: dict[str, User] = {}

    async def sign_in(self, email: str, password: str) -> AuthSession:
        if not self.admin_password:
            raise DependencyError("ADMIN_PASSWORD belum diatur.")
        email_ok = hmac.compare_digest(email.strip().lower(), self.admin.email.lower())
        password_ok = hmac.compare_digest(password, self.admin_password)
        if not (email_ok and password_ok):
            raise DependencyError("Invalid login credentials")
        token = secrets.token_urlsafe(32)
        self._tokens[token] = self.admin
        return AuthSession(access_token=token, user=self.admin)

    async def sign_out(self, access_token: str) -> None:
        self._tokens.pop(access_token, None)

    async def get_user(self, access_token: Optional[str]) -> Optional[User]:
        if not access_token:
            return None
        return self._tokens.get(access_token)


def create_local_backend(
    db_path: str,
    upload_dir: str,
    admin_email: str,
    admin_password: str,
    echo: bool = False,
) -> Backend:
    db = Database(db_path=db_path, echo=echo)
    return Backend(
        name="local",
        query=LocalQueryClient(db),
        storage=LocalStorageClient(upload_dir),
        auth=LocalAuthClient(admin_email, admin_password),
        extras={"db": db, "upload_dir": upload_dir},
    )
