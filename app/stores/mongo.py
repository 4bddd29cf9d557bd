"""MongoDB-backed store built on Beanie/Motor."""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from beanie import Document, PydanticObjectId, init_beanie
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import DuplicateEntryError
from app.models.admin import utcnow
from app.models.documents import AdminDocument, ArticleDocument, PortfolioDocument, ResetTokenDocument
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


def _oid(value: Any) -> Optional[PydanticObjectId]:
    if isinstance(value, ObjectId):
        return PydanticObjectId(value)
    if isinstance(value, str) and ObjectId.is_valid(value):
        return PydanticObjectId(value)
    return None

def _doc_dict(doc: Document) -> Dict[str, Any]:
    data = doc.model_dump(exclude={"id", "revision_id"})
    data["id"] = str(doc.id)
    for key in ("admin_id", "created_by"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return data

def _duplicate(exc: DuplicateKeyError) -> DuplicateEntryError:
    pattern = (exc.details or {}).get("keyPattern") or {}
    field = next(iter(pattern), None)
    if field is None:
        msg = str(exc).lower()
        field = next((f for f in ("email", "username", "token") if f in msg), "unknown")
    return DuplicateEntryError(field, str(exc))


class MongoAdminStore(AdminStore):
    @staticmethod
    def _record(doc: AdminDocument) -> AdminRecord:
        return AdminRecord(**_doc_dict(doc))

    async def find_by_username(self, username: str, case_insensitive: bool = False) -> Optional[AdminRecord]:
        if case_insensitive:
            query = {"username": {"$regex": f"^{re.escape(username)}$", "$options": "i"}}
        else:
            query = {"username": username}
        doc = await AdminDocument.find(query).sort("+created_at").first_or_none()
        return self._record(doc) if doc else None

    async def find_by_email(self, email: str) -> Optional[AdminRecord]:
        doc = await AdminDocument.find_one({"email": email})
        return self._record(doc) if doc else None

    async def find_by_id(self, admin_id: str) -> Optional[AdminRecord]:
        oid = _oid(admin_id)
        if oid is None:
            return None
        doc = await AdminDocument.get(oid)
        return self._record(doc) if doc else None

    async def find_super_admin(self) -> Optional[AdminRecord]:
        doc = await AdminDocument.find_one({"is_super_admin": True})
        return self._record(doc) if doc else None

    async def create(self, fields: Dict[str, Any]) -> AdminRecord:
        doc = AdminDocument(**fields)
        try:
            await doc.insert()
        except DuplicateKeyError as exc:
            raise _duplicate(exc) from exc
        return self._record(doc)

    async def update(self, admin_id: str, fields: Dict[str, Any]) -> bool:
        oid = _oid(admin_id)
        if oid is None:
            return False
        doc = await AdminDocument.get(oid)
        if not doc:
            return False
        for k, v in fields.items():
            setattr(doc, k, v)
        try:
            await doc.save()
        except DuplicateKeyError as exc:
            raise _duplicate(exc) from exc
        return True

    async def delete(self, admin_id: str) -> bool:
        oid = _oid(admin_id)
        if oid is None:
            return False
        doc = await AdminDocument.get(oid)
        if not doc:
            return False
        # no cascading in MongoDB, tokens go explicitly
        await ResetTokenDocument.find({"admin_id": oid}).delete()
        await doc.delete()
        return True

    async def list_all(self) -> List[AdminRecord]:
        docs = await AdminDocument.find_all().sort("-created_at").to_list()
        return [self._record(d) for d in docs]


class MongoResetTokenStore(ResetTokenStore):
    @staticmethod
    def _record(doc: ResetTokenDocument) -> ResetTokenRecord:
        return ResetTokenRecord(**_doc_dict(doc))

    async def delete_unused_for_admin(self, admin_id: str) -> int:
        oid = _oid(admin_id)
        if oid is None:
            return 0
        res = await ResetTokenDocument.find({"admin_id": oid, "used": False}).delete()
        return res.deleted_count if res else 0

    async def create(self, admin_id: str, token: str, expires_at: datetime) -> ResetTokenRecord:
        doc = ResetTokenDocument(admin_id=_oid(admin_id), token=token, expires_at=expires_at, used=False)
        await doc.insert()
        return self._record(doc)

    async def find_valid(self, token: str, now: datetime) -> Optional[ResetTokenRecord]:
        doc = await ResetTokenDocument.find_one({"token": token, "used": False, "expires_at": {"$gt": now}})
        return self._record(doc) if doc else None

    async def mark_used(self, token_id: str, now: datetime) -> bool:
        oid = _oid(token_id)
        if oid is None:
            return False
        # single-document update is atomic, the filter decides who wins
        claimed = await ResetTokenDocument.get_motor_collection().find_one_and_update(
            {"_id": oid, "used": False, "expires_at": {"$gt": now}},
            {"$set": {"used": True}},
        )
        return claimed is not None

    async def purge_expired(self, now: datetime) -> int:
        res = await ResetTokenDocument.find({"expires_at": {"$lte": now}}).delete()
        return res.deleted_count if res else 0

    async def list_for_admin(self, admin_id: str) -> List[ResetTokenRecord]:
        docs = await ResetTokenDocument.find({"admin_id": _oid(admin_id)}).sort("+created_at").to_list()
        return [self._record(d) for d in docs]


class MongoContentStore(ContentStore):
    def __init__(self, document_cls: Type[Document], record_cls):
        self._doc = document_cls
        self._record_cls = record_cls

    def _record(self, doc):
        return self._record_cls(**_doc_dict(doc))

    @staticmethod
    def _values(fields: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in fields.items() if k != "id"}
        if "created_by" in data:
            data["created_by"] = _oid(data["created_by"])
        return data

    async def list(self, *, published: bool | None = None, featured: bool | None = None):
        query: Dict[str, Any] = {}
        if published is not None:
            query["published"] = published
        if featured is not None:
            query["featured"] = featured
        docs = await self._doc.find(query).sort("-created_at").to_list()
        return [self._record(d) for d in docs]

    async def get(self, item_id: str):
        oid = _oid(item_id)
        if oid is None:
            return None
        doc = await self._doc.get(oid)
        return self._record(doc) if doc else None

    async def create(self, fields: Dict[str, Any]):
        doc = self._doc(**self._values(fields))
        await doc.insert()
        return self._record(doc)

    async def update(self, item_id: str, fields: Dict[str, Any]):
        oid = _oid(item_id)
        if oid is None:
            return None
        doc = await self._doc.get(oid)
        if not doc:
            return None
        for k, v in self._values(fields).items():
            setattr(doc, k, v)
        doc.updated_at = utcnow()
        await doc.save()
        return self._record(doc)

    async def delete(self, item_id: str) -> bool:
        oid = _oid(item_id)
        if oid is None:
            return False
        doc = await self._doc.get(oid)
        if not doc:
            return False
        await doc.delete()
        return True


class MongoStore(Store):
    def __init__(self, db_uri: str, db_name: str):
        self.client = AsyncIOMotorClient(db_uri, tz_aware=True)
        self.db_name = db_name
        self._is_initialized = False

        self.admins = MongoAdminStore()
        self.reset_tokens = MongoResetTokenStore()
        self.articles = MongoContentStore(ArticleDocument, ArticleRecord)
        self.portfolio = MongoContentStore(PortfolioDocument, PortfolioRecord)

    async def init(self) -> None:
        if self._is_initialized:
            return
        await init_beanie(
            database=self.client[self.db_name],
            document_models=[AdminDocument, ResetTokenDocument, ArticleDocument, PortfolioDocument],
        )
        self._is_initialized = True
        logger.info("Mongo store ready (db=%s)", self.db_name)

    async def close(self) -> None:
        self.client.close()
        self._is_initialized = False
