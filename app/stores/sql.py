"""SQLAlchemy-backed store (PostgreSQL via asyncpg, or a SQLite file via aiosqlite)."""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import DuplicateEntryError
from app.db.base import Base, Admin, PasswordResetToken, BlogArticle, PortfolioItem
from app.db.session import make_engine, make_sessionmaker
from app.models.admin import utcnow
from app.stores.base import (
    AdminRecord,
    AdminStore,
    ArticleRecord,
    ContentStore,
    PortfolioRecord,
    ResetTokenRecord,
    ResetTokenStore,
    Store,
)

logger = logging.getLogger(__name__)


def _pk(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is written in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def _row_dict(row: Any, fields) -> Dict[str, Any]:
    data = {}
    for name in fields:
        value = getattr(row, name)
        if isinstance(value, datetime):
            value = _aware(value)
        data[name] = value
    data["id"] = str(row.id)
    if "created_by" in data and data["created_by"] is not None:
        data["created_by"] = str(data["created_by"])
    if "admin_id" in data:
        data["admin_id"] = str(data["admin_id"])
    return data

_UNIQUE_FIELDS = {
    "uq_admins_username": "username",
    "admins.username": "username",
    "uq_admins_email": "email",
    "admins.email": "email",
    "ix_password_reset_tokens_token": "token",
    "password_reset_tokens.token": "token",
}

# the offending value is part of the message, so only the constraint name is trusted
_CONSTRAINT_PATTERNS = (
    re.compile(r'unique constraint "([^"]+)"'),     # postgres
    re.compile(r"UNIQUE constraint failed: ([\w.]+)"),  # sqlite
)

def _constraint_name(exc: IntegrityError) -> Optional[str]:
    orig = exc.orig
    # asyncpg errors carry it directly, behind the DBAPI adapter
    for err in (orig, getattr(orig, "__cause__", None)):
        name = getattr(err, "constraint_name", None)
        # 23505 is unique_violation; foreign key failures carry a name too
        if name and getattr(err, "sqlstate", "23505") == "23505":
            return name
    msg = str(orig) if orig is not None else str(exc)
    for pattern in _CONSTRAINT_PATTERNS:
        match = pattern.search(msg)
        if match:
            return match.group(1)
    return None

def _duplicate(exc: IntegrityError) -> Optional[DuplicateEntryError]:
    name = _constraint_name(exc)
    if name is None:
        return None
    return DuplicateEntryError(_UNIQUE_FIELDS.get(name, "unknown"), str(exc.orig))


class SqlAdminStore(AdminStore):
    def __init__(self, sessions):
        self._sessions = sessions

    @staticmethod
    def _record(row: Admin) -> AdminRecord:
        return AdminRecord(**_row_dict(row, AdminRecord.model_fields))

    async def find_by_username(self, username: str, case_insensitive: bool = False) -> Optional[AdminRecord]:
        if case_insensitive:
            cond = func.lower(Admin.username) == username.lower()
        else:
            cond = Admin.username == username
        async with self._sessions() as db:
            res = await db.execute(select(Admin).where(cond).order_by(Admin.created_at, Admin.id).limit(1))
            row = res.scalar()
            return self._record(row) if row else None

    async def find_by_email(self, email: str) -> Optional[AdminRecord]:
        async with self._sessions() as db:
            res = await db.execute(select(Admin).where(Admin.email == email).limit(1))
            row = res.scalar()
            return self._record(row) if row else None

    async def find_by_id(self, admin_id: str) -> Optional[AdminRecord]:
        pk = _pk(admin_id)
        if pk is None:
            return None
        async with self._sessions() as db:
            row = await db.get(Admin, pk)
            return self._record(row) if row else None

    async def find_super_admin(self) -> Optional[AdminRecord]:
        async with self._sessions() as db:
            res = await db.execute(
                select(Admin).where(Admin.is_super_admin.is_(True)).order_by(Admin.created_at).limit(1)
            )
            row = res.scalar()
            return self._record(row) if row else None

    async def create(self, fields: Dict[str, Any]) -> AdminRecord:
        async with self._sessions() as db:
            admin = Admin(**fields)
            db.add(admin)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                dup = _duplicate(exc)
                if dup:
                    raise dup from exc
                raise
            await db.refresh(admin)
            return self._record(admin)

    async def update(self, admin_id: str, fields: Dict[str, Any]) -> bool:
        pk = _pk(admin_id)
        if pk is None:
            return False
        async with self._sessions() as db:
            admin = await db.get(Admin, pk)
            if not admin:
                return False
            for k, v in fields.items():
                setattr(admin, k, v)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                dup = _duplicate(exc)
                if dup:
                    raise dup from exc
                raise
            return True

    async def delete(self, admin_id: str) -> bool:
        pk = _pk(admin_id)
        if pk is None:
            return False
        async with self._sessions() as db:
            admin = await db.get(Admin, pk)
            if not admin:
                return False
            await db.execute(delete(PasswordResetToken).where(PasswordResetToken.admin_id == pk))
            await db.delete(admin)
            await db.commit()
            return True

    async def list_all(self) -> List[AdminRecord]:
        async with self._sessions() as db:
            res = await db.execute(select(Admin).order_by(Admin.created_at.desc(), Admin.id.desc()))
            return [self._record(row) for row in res.scalars()]


class SqlResetTokenStore(ResetTokenStore):
    def __init__(self, sessions):
        self._sessions = sessions

    @staticmethod
    def _record(row: PasswordResetToken) -> ResetTokenRecord:
        return ResetTokenRecord(**_row_dict(row, ResetTokenRecord.model_fields))

    async def delete_unused_for_admin(self, admin_id: str) -> int:
        pk = _pk(admin_id)
        if pk is None:
            return 0
        async with self._sessions() as db:
            res = await db.execute(
                delete(PasswordResetToken).where(
                    PasswordResetToken.admin_id == pk,
                    PasswordResetToken.used.is_(False),
                )
            )
            await db.commit()
            return res.rowcount or 0

    async def create(self, admin_id: str, token: str, expires_at: datetime) -> ResetTokenRecord:
        async with self._sessions() as db:
            row = PasswordResetToken(admin_id=_pk(admin_id), token=token, expires_at=expires_at, used=False)
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return self._record(row)

    async def find_valid(self, token: str, now: datetime) -> Optional[ResetTokenRecord]:
        async with self._sessions() as db:
            res = await db.execute(
                select(PasswordResetToken).where(
                    PasswordResetToken.token == token,
                    PasswordResetToken.used.is_(False),
                    PasswordResetToken.expires_at > now,
                )
            )
            row = res.scalar()
            return self._record(row) if row else None

    async def mark_used(self, token_id: str, now: datetime) -> bool:
        pk = _pk(token_id)
        if pk is None:
            return False
        async with self._sessions() as db:
            res = await db.execute(
                update(PasswordResetToken)
                .where(
                    PasswordResetToken.id == pk,
                    PasswordResetToken.used.is_(False),
                    PasswordResetToken.expires_at > now,
                )
                .values(used=True)
            )
            await db.commit()
            return res.rowcount == 1

    async def purge_expired(self, now: datetime) -> int:
        async with self._sessions() as db:
            res = await db.execute(delete(PasswordResetToken).where(PasswordResetToken.expires_at <= now))
            await db.commit()
            return res.rowcount or 0

    async def list_for_admin(self, admin_id: str) -> List[ResetTokenRecord]:
        async with self._sessions() as db:
            res = await db.execute(
                select(PasswordResetToken)
                .where(PasswordResetToken.admin_id == _pk(admin_id))
                .order_by(PasswordResetToken.created_at)
            )
            return [self._record(row) for row in res.scalars()]


class SqlContentStore(ContentStore):
    def __init__(self, sessions, model: Type[Base], record_cls):
        self._sessions = sessions
        self._model = model
        self._record_cls = record_cls

    def _record(self, row):
        return self._record_cls(**_row_dict(row, self._record_cls.model_fields))

    @staticmethod
    def _columns(fields: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in fields.items() if k != "id"}
        if "created_by" in data:
            data["created_by"] = _pk(data["created_by"])
        return data

    async def list(self, *, published: bool | None = None, featured: bool | None = None):
        m = self._model
        stmt = select(m)
        if published is not None:
            stmt = stmt.where(m.published.is_(published))
        if featured is not None:
            stmt = stmt.where(m.featured.is_(featured))
        stmt = stmt.order_by(m.created_at.desc(), m.id.desc())
        async with self._sessions() as db:
            res = await db.execute(stmt)
            return [self._record(row) for row in res.scalars()]

    async def get(self, item_id: str):
        pk = _pk(item_id)
        if pk is None:
            return None
        async with self._sessions() as db:
            row = await db.get(self._model, pk)
            return self._record(row) if row else None

    async def create(self, fields: Dict[str, Any]):
        async with self._sessions() as db:
            row = self._model(**self._columns(fields))
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return self._record(row)

    async def update(self, item_id: str, fields: Dict[str, Any]):
        pk = _pk(item_id)
        if pk is None:
            return None
        async with self._sessions() as db:
            row = await db.get(self._model, pk)
            if not row:
                return None
            for k, v in self._columns(fields).items():
                setattr(row, k, v)
            row.updated_at = utcnow()
            await db.commit()
            await db.refresh(row)
            return self._record(row)

    async def delete(self, item_id: str) -> bool:
        pk = _pk(item_id)
        if pk is None:
            return False
        async with self._sessions() as db:
            row = await db.get(self._model, pk)
            if not row:
                return False
            await db.delete(row)
            await db.commit()
            return True


class SqlStore(Store):
    def __init__(self, database_url: str, create_schema: bool = True):
        self.database_url = database_url
        self.create_schema = create_schema
        self.engine = make_engine(database_url)
        self._sessions = make_sessionmaker(self.engine)
        self._is_initialized = False

        self.admins = SqlAdminStore(self._sessions)
        self.reset_tokens = SqlResetTokenStore(self._sessions)
        self.articles = SqlContentStore(self._sessions, BlogArticle, ArticleRecord)
        self.portfolio = SqlContentStore(self._sessions, PortfolioItem, PortfolioRecord)

    async def init(self) -> None:
        if self._is_initialized:
            return
        if self.create_schema:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        self._is_initialized = True
        logger.info("SQL store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self.engine.dispose()
        self._is_initialized = False
