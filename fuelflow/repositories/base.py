from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from fuelflow.db.mongo import current_session
from fuelflow.models.base import MongoModel

ModelT = TypeVar("ModelT", bound=MongoModel)


def object_id(value: str) -> Optional[ObjectId]:
    """Parse a hex id; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class MongoRepository(Generic[ModelT]):
    """Shared CRUD for one collection of MongoModel documents."""

    collection_name: str
    model: Type[ModelT]

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[self.collection_name]

    def _to_model(self, doc: Dict[str, Any]) -> ModelT:
        doc["_id"] = str(doc["_id"])
        return self.model(**doc)

    async def insert(self, obj: ModelT) -> ModelT:
        result = await self.collection.insert_one(obj.to_document(), session=current_session())
        obj.id = str(result.inserted_id)
        return obj

    async def get(self, obj_id: str) -> Optional[ModelT]:
        oid = object_id(obj_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid}, session=current_session())
        if doc:
            return self._to_model(doc)
        return None

    async def find(
        self,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
    ) -> List[ModelT]:
        cursor = self.collection.find(query or {}, sort=sort, session=current_session())
        docs = await cursor.to_list(None)
        return [self._to_model(doc) for doc in docs]

    async def find_one(self, query: Dict[str, Any]) -> Optional[ModelT]:
        doc = await self.collection.find_one(query, session=current_session())
        if doc:
            return self._to_model(doc)
        return None

    async def count(self, query: Dict[str, Any]) -> int:
        return await self.collection.count_documents(query, session=current_session())

    async def update_fields(self, obj_id: str, updates: Dict[str, Any]) -> Optional[ModelT]:
        """
        $set already-serialized fields and return the updated model.

        Money values must be passed as strings (see format_money).
        """
        oid = object_id(obj_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
            session=current_session()
        )
        if doc:
            return self._to_model(doc)
        return None

    async def replace(self, obj: ModelT) -> ModelT:
        await self.collection.replace_one(
            {"_id": object_id(obj.id)},
            obj.to_document(),
            session=current_session()
        )
        return obj

    async def delete(self, obj_id: str) -> bool:
        oid = object_id(obj_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid}, session=current_session())
        return result.deleted_count > 0

    async def delete_many(self, query: Dict[str, Any]) -> int:
        result = await self.collection.delete_many(query, session=current_session())
        return result.deleted_count
