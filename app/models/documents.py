from datetime import datetime
from typing import List, Optional

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel

from app.models.admin import utcnow


class AdminDocument(Document):
    username: str
    email: Optional[str] = None
    password_hash: str
    is_super_admin: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "admins"
        indexes = [
            IndexModel([("username", ASCENDING)], unique=True, name="uq_admins_username"),
            # only string emails take part in uniqueness, missing/null ones may repeat
            IndexModel(
                [("email", ASCENDING)],
                unique=True,
                name="uq_admins_email",
                partialFilterExpression={"email": {"$type": "string"}},
            ),
            IndexModel([("created_at", DESCENDING)]),
        ]


class ResetTokenDocument(Document):
    admin_id: PydanticObjectId
    token: str
    expires_at: datetime
    used: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "password_reset_tokens"
        indexes = [
            IndexModel([("token", ASCENDING)], unique=True, name="uq_reset_token"),
            IndexModel([("admin_id", ASCENDING)]),
            # TTL eviction; expiry is still checked on every lookup
            IndexModel([("expires_at", ASCENDING)], expireAfterSeconds=0, name="ttl_reset_expires_at"),
        ]


class ArticleDocument(Document):
    title: str
    excerpt: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    featured: bool = False
    read_time: Optional[str] = None
    published: bool = False
    created_by: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "blog_articles"
        indexes = [IndexModel([("created_at", DESCENDING)])]


class PortfolioDocument(Document):
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    stats: Optional[str] = None
    featured: bool = False
    published: bool = False
    created_by: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "portfolio_items"
        indexes = [IndexModel([("created_at", DESCENDING)])]
