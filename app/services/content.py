import asyncio
import logging
from typing import Dict, List, Optional, Type

from fastapi import status

from app.core.error_codes import ErrorCode
from app.core.exceptions import raise_error
from app.schemas.auth import Principal
from app.schemas.content import ArticleOut, PortfolioOut
from app.stores.base import AdminRecord, ContentStore, Store

logger = logging.getLogger(__name__)

FALLBACK_AUTHOR = "Admin"


class ContentService:
    """CRUD shared by blog articles and portfolio items."""

    not_found_code: ErrorCode = ErrorCode.NOT_FOUND
    not_found_message: str = "Not found"
    out_cls: Type = None

    def __init__(self, store: Store, items: ContentStore):
        self.store = store
        self.items = items

    async def _creators(self, records) -> Dict[str, Optional[AdminRecord]]:
        ids = sorted({r.created_by for r in records if r.created_by})
        found = await asyncio.gather(*(self.store.admins.find_by_id(i) for i in ids))
        return dict(zip(ids, found))

    def _present(self, record, creators: Dict[str, Optional[AdminRecord]], viewer: Principal | None):
        data = record.model_dump()
        creator = creators.get(record.created_by) if record.created_by else None
        if viewer and creator:
            data["created_by_id"] = creator.id
            data["created_by_username"] = creator.username
        data.pop("created_by", None)
        self._decorate(data, record, creator)
        return self.out_cls.model_validate(data)

    def _decorate(self, data: Dict, record, creator: Optional[AdminRecord]) -> None:
        pass

    async def _present_many(self, records, viewer: Principal | None) -> List:
        creators = await self._creators(records)
        return [self._present(r, creators, viewer) for r in records]

    def _create_extras(self, principal: Principal, creator: Optional[AdminRecord]) -> Dict:
        return {}

    async def list(self, viewer: Principal | None, published: bool = False, featured: bool = False) -> List:
        records = await self.items.list(
            published=True if published else None,
            featured=True if featured else None,
        )
        return await self._present_many(records, viewer)

    async def get(self, item_id: str, viewer: Principal | None):
        record = await self.items.get(item_id)
        if not record:
            raise_error(self.not_found_code, status.HTTP_404_NOT_FOUND, self.not_found_message)
        return (await self._present_many([record], viewer))[0]

    async def create(self, principal: Principal, data):
        title = (data.title or "").strip()
        if not title:
            raise_error(ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, "Title is required")

        fields = data.model_dump()
        fields["title"] = title
        fields["image_url"] = data.image_url or (data.images[0] if data.images else None)
        fields["created_by"] = principal.id

        creator = await self.store.admins.find_by_id(principal.id)
        fields.update(self._create_extras(principal, creator))

        record = await self.items.create(fields)
        logger.info("%s %s created by %s", type(self).__name__, record.id, principal.id)
        return (await self._present_many([record], principal))[0]

    async def update(self, principal: Principal, item_id: str, data):
        existing = await self.items.get(item_id)
        if not existing:
            raise_error(self.not_found_code, status.HTTP_404_NOT_FOUND, self.not_found_message)

        changes = data.model_dump(exclude_unset=True)
        # an empty title keeps the current one
        if "title" in changes:
            title = (changes["title"] or "").strip()
            if title:
                changes["title"] = title
            else:
                changes.pop("title")
        if "images" in changes and "image_url" not in changes:
            changes["image_url"] = changes["images"][0] if changes["images"] else None

        record = await self.items.update(existing.id, changes)
        return (await self._present_many([record], principal))[0]

    async def delete(self, principal: Principal, item_id: str) -> None:
        if not await self.items.delete(item_id):
            raise_error(self.not_found_code, status.HTTP_404_NOT_FOUND, self.not_found_message)
        logger.info("%s %s deleted by %s", type(self).__name__, item_id, principal.id)


class BlogService(ContentService):
    not_found_code = ErrorCode.ARTICLE_NOT_FOUND
    not_found_message = "Article not found"
    out_cls = ArticleOut

    def __init__(self, store: Store):
        super().__init__(store, store.articles)

    def _create_extras(self, principal: Principal, creator: Optional[AdminRecord]) -> Dict:
        return {"author": creator.username if creator else principal.username}

    def _decorate(self, data: Dict, record, creator: Optional[AdminRecord]) -> None:
        # attribution survives the admin being deleted
        data["author"] = (creator.username if creator else None) or record.author or FALLBACK_AUTHOR


class PortfolioService(ContentService):
    not_found_code = ErrorCode.PORTFOLIO_ITEM_NOT_FOUND
    not_found_message = "Portfolio item not found"
    out_cls = PortfolioOut

    def __init__(self, store: Store):
        super().__init__(store, store.portfolio)
