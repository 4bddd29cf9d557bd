"""Persistence contracts shared by the relational and document backends.

Services only ever see the record models defined here, so the concrete engine
(SQLAlchemy or Beanie) stays swappable behind :class:`Store`.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field


class AdminRecord(BaseModel):
    id: str
    username: str
    email: str | None = None
    password_hash: str
    is_super_admin: bool = False
    created_at: datetime | None = None


class ResetTokenRecord(BaseModel):
    id: str
    admin_id: str
    token: str
    expires_at: datetime
    used: bool = False
    created_at: datetime | None = None


class ArticleRecord(BaseModel):
    id: str
    title: str
    excerpt: str | None = None
    content: str | None = None
    author: str | None = None
    category: str | None = None
    image_url: str | None = None
    images: List[str] = Field(default_factory=list)
    featured: bool = False
    read_time: str | None = None
    published: bool = False
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PortfolioRecord(BaseModel):
    id: str
    title: str
    description: str | None = None
    content: str | None = None
    category: str | None = None
    image_url: str | None = None
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    stats: str | None = None
    featured: bool = False
    published: bool = False
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminStore(ABC):
    @abstractmethod
    async def find_by_username(self, username: str, case_insensitive: bool = False) -> Optional[AdminRecord]:
        """Case-insensitive lookups return the oldest match when several accounts collide."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[AdminRecord]: ...

    @abstractmethod
    async def find_by_id(self, admin_id: str) -> Optional[AdminRecord]: ...

    @abstractmethod
    async def find_super_admin(self) -> Optional[AdminRecord]: ...

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> AdminRecord:
        """Raises DuplicateEntryError("username" | "email") on a unique index hit."""

    @abstractmethod
    async def update(self, admin_id: str, fields: Dict[str, Any]) -> bool:
        """Returns False when the admin does not exist. May raise DuplicateEntryError."""

    @abstractmethod
    async def delete(self, admin_id: str) -> bool:
        """Removes the admin and its reset tokens. Content is left alone."""

    @abstractmethod
    async def list_all(self) -> List[AdminRecord]: ...


class ResetTokenStore(ABC):
    @abstractmethod
    async def delete_unused_for_admin(self, admin_id: str) -> int: ...

    @abstractmethod
    async def create(self, admin_id: str, token: str, expires_at: datetime) -> ResetTokenRecord: ...

    @abstractmethod
    async def find_valid(self, token: str, now: datetime) -> Optional[ResetTokenRecord]:
        """Only tokens with ``used == False and expires_at > now`` are returned."""

    @abstractmethod
    async def mark_used(self, token_id: str, now: datetime) -> bool:
        """Atomically flips an unused, unexpired token to used. False when another caller got there first."""

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int: ...

    @abstractmethod
    async def list_for_admin(self, admin_id: str) -> List[ResetTokenRecord]: ...


R = TypeVar("R", ArticleRecord, PortfolioRecord)


class ContentStore(ABC, Generic[R]):
    @abstractmethod
    async def list(self, *, published: bool | None = None, featured: bool | None = None) -> List[R]:
        """Newest first. A ``None`` filter is not applied."""

    @abstractmethod
    async def get(self, item_id: str) -> Optional[R]: ...

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> R: ...

    @abstractmethod
    async def update(self, item_id: str, fields: Dict[str, Any]) -> Optional[R]: ...

    @abstractmethod
    async def delete(self, item_id: str) -> bool: ...


class Store(ABC):
    """Process-wide persistence handle."""

    admins: AdminStore
    reset_tokens: ResetTokenStore
    articles: ContentStore[ArticleRecord]
    portfolio: ContentStore[PortfolioRecord]

    @abstractmethod
    async def init(self) -> None:
        """Connect and prepare indexes/schema. Safe to call more than once."""

    @abstractmethod
    async def close(self) -> None: ...
