"""Field sets for blog articles and portfolio items.

Every optional field is spelled out with its default so a request that omits it
is unambiguous:

* text fields (``excerpt``, ``content``, ``category``, ``read_time``,
  ``description``, ``stats``) default to ``None``;
* ``images`` and ``tags`` default to an empty list;
* ``image_url`` defaults to the first entry of ``images`` (or ``None``);
* ``featured`` and ``published`` default to ``False``.

On update only the fields present in the body are touched.
"""
from datetime import datetime
from typing import List

from pydantic import Field

from app.schemas.common import CamelModel


class ArticleFields(CamelModel):
    title: str | None = None
    excerpt: str | None = None
    content: str | None = None
    category: str | None = None
    image_url: str | None = None
    images: List[str] = Field(default_factory=list)
    featured: bool = False
    read_time: str | None = None
    published: bool = False


class PortfolioFields(CamelModel):
    title: str | None = None
    description: str | None = None
    content: str | None = None
    category: str | None = None
    image_url: str | None = None
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    stats: str | None = None
    featured: bool = False
    published: bool = False


class _ContentOut(CamelModel):
    id: str
    title: str
    content: str | None = None
    category: str | None = None
    image_url: str | None = None
    images: List[str] = Field(default_factory=list)
    featured: bool = False
    published: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # only filled for authenticated callers
    created_by_id: str | None = None
    created_by_username: str | None = None


class ArticleOut(_ContentOut):
    excerpt: str | None = None
    author: str
    read_time: str | None = None


class PortfolioOut(_ContentOut):
    description: str | None = None
    tags: List[str] = Field(default_factory=list)
    stats: str | None = None
