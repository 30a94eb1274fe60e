import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger("collegemate.db")

FRIEND = "friend"
FRIEND_REQUEST = "friendRequest"


class RecordStoreError(Exception):
    pass


class RecordNotFound(RecordStoreError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}/{record_id} not found")
        self.collection = collection
        self.record_id = record_id


class RecordConflict(RecordStoreError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}/{record_id} violates a uniqueness constraint")
        self.collection = collection
        self.record_id = record_id


class RecordStore(ABC):
    """Keyed-record storage used by the friend feature.

    Records are plain dicts carrying their key under ``"id"``. Filters are
    Mongo-style documents limited to field equality and ``$or``.
    """

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Dict[str, Any]:
        """Return the record or raise ``RecordNotFound``."""

    @abstractmethod
    async def put(self, collection: str, record: Dict[str, Any]) -> None:
        """Insert a new record; raise ``RecordConflict`` on a key collision."""

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Remove a record or raise ``RecordNotFound``."""

    @abstractmethod
    async def query(self, collection: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return every record matching ``filter``."""


def to_document(record: Dict[str, Any]) -> Dict[str, Any]:
    document = {key: value for key, value in record.items() if key != "id"}
    document["_id"] = record["id"]
    return document


def from_document(document: Dict[str, Any]) -> Dict[str, Any]:
    record = {key: value for key, value in document.items() if key != "_id"}
    record["id"] = document["_id"]
    return record


class MongoRecordStore(RecordStore):
    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database

    async def ensure_indexes(self):
        await self.database[FRIEND].create_index(
            [("userA", ASCENDING), ("userB", ASCENDING)], unique=True
        )
        # Only pending requests are stored, so one pair key per pair
        await self.database[FRIEND_REQUEST].create_index("pairKey", unique=True)
        await self.database[FRIEND_REQUEST].create_index("from")
        await self.database[FRIEND_REQUEST].create_index("to")

    async def get(self, collection, record_id):
        document = await self.database[collection].find_one({"_id": record_id})
        if document is None:
            raise RecordNotFound(collection, record_id)
        return from_document(document)

    async def put(self, collection, record):
        try:
            await self.database[collection].insert_one(to_document(record))
        except DuplicateKeyError as exc:
            raise RecordConflict(collection, record["id"]) from exc

    async def delete(self, collection, record_id):
        result = await self.database[collection].delete_one({"_id": record_id})
        if result.deleted_count == 0:
            raise RecordNotFound(collection, record_id)

    async def query(self, collection, filter):
        cursor = self.database[collection].find(filter)
        return [from_document(document) for document in await cursor.to_list(length=None)]


async def startup_db_client(app):
    settings = app.state.settings
    app.mongodb_client = AsyncIOMotorClient(settings.mongo_url)
    store = MongoRecordStore(app.mongodb_client.get_database(settings.database_name))
    await store.ensure_indexes()
    app.state.record_store = store
    logger.info("Connected to MongoDB database %s", settings.database_name)


async def shutdown_db_client(app):
    app.mongodb_client.close()
    logger.info("MongoDB connection closed")
