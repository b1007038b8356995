"""
Database Helpers

Document store used by the API. MongoStore talks to MongoDB; MemoryStore keeps
everything in process and backs the test suite and local runs without a
database. Both hand out documents with `_id` as a string and a server-assigned
`created_at`.
"""

import copy
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Union, Optional, Dict, Any, List

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient, DESCENDING
from pymongo.errors import BulkWriteError, PyMongoError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing store cannot complete an operation."""


class _Clock:
    """Hands out creation timestamps that never go backwards."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
            return current


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d


class DocumentStore(ABC):
    """Insert, list newest first, and delete by id, per collection."""

    def __init__(self):
        self._clock = _Clock()

    @abstractmethod
    def create_documents(self, collection_name: str, records: List[Union[BaseModel, dict]]) -> List[str]:
        raise NotImplementedError

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        return self.create_documents(collection_name, [data])[0]

    @abstractmethod
    def get_recent_documents(self, collection_name: str) -> List[dict]:
        raise NotImplementedError

    @abstractmethod
    def delete_document(self, collection_name: str, _id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _prepare(self, records: List[Union[BaseModel, dict]]) -> List[dict]:
        now = self._clock.now()
        payloads = []
        for record in records:
            payload = _to_dict(record)
            payload.pop("_id", None)
            payload["created_at"] = now
            payloads.append(payload)
        return payloads


class MongoStore(DocumentStore):
    def __init__(self, database_url: Optional[str] = None, database_name: Optional[str] = None,
                 timeout_ms: int = 5000, client: Optional[MongoClient] = None):
        super().__init__()
        self._client = None
        self.db = None
        if client is None and database_url and database_name:
            client = MongoClient(
                database_url,
                tz_aware=True,
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
                socketTimeoutMS=timeout_ms,
            )
        if client is not None and database_name:
            self._client = client
            self.db = client[database_name]

    def _ensure_db(self):
        if self.db is None:
            raise StoreError("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")

    def create_documents(self, collection_name: str, records: List[Union[BaseModel, dict]]) -> List[str]:
        self._ensure_db()
        if not records:
            return []
        payloads = self._prepare(records)
        try:
            # ordered=True stops at the first failure; earlier documents stay written
            result = self.db[collection_name].insert_many(payloads, ordered=True)
        except BulkWriteError as e:
            inserted = e.details.get("nInserted", 0)
            raise StoreError(f"{collection_name}: inserted {inserted} of {len(payloads)} documents") from e
        except PyMongoError as e:
            raise StoreError(f"{collection_name}: insert failed") from e
        return [str(i) for i in result.inserted_ids]

    def get_recent_documents(self, collection_name: str) -> List[dict]:
        self._ensure_db()
        try:
            cursor = self.db[collection_name].find({}).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            return [serialize_doc(doc) for doc in cursor]
        except PyMongoError as e:
            raise StoreError(f"{collection_name}: query failed") from e

    def delete_document(self, collection_name: str, _id: str) -> bool:
        self._ensure_db()
        try:
            oid = ObjectId(_id)
        except (InvalidId, TypeError):
            return False
        try:
            result = self.db[collection_name].delete_one({"_id": oid})
        except PyMongoError as e:
            raise StoreError(f"{collection_name}: delete failed") from e
        return result.deleted_count > 0

    def describe(self) -> Dict[str, Any]:
        response = {
            "database": "❌ Not Available",
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": [],
        }
        if self.db is None:
            return response
        response["database_name"] = self.db.name
        try:
            response["collections"] = self.db.list_collection_names()
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
        except PyMongoError as e:
            response["database"] = f"❌ Error: {str(e)[:80]}"
        return response


class MemoryStore(DocumentStore):
    """In-process store; a batch is written completely or not at all."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._collections: Dict[str, List[dict]] = {}

    def create_documents(self, collection_name: str, records: List[Union[BaseModel, dict]]) -> List[str]:
        payloads = self._prepare(records)
        ids = []
        with self._lock:
            for payload in payloads:
                payload["_id"] = str(ObjectId())
                payload["_seq"] = next(self._seq)
                ids.append(payload["_id"])
            self._collections.setdefault(collection_name, []).extend(payloads)
        return ids

    def get_recent_documents(self, collection_name: str) -> List[dict]:
        with self._lock:
            docs = sorted(self._collections.get(collection_name, []),
                          key=lambda d: (d["created_at"], d["_seq"]), reverse=True)
            docs = copy.deepcopy(docs)
        for doc in docs:
            doc.pop("_seq")
        return docs

    def delete_document(self, collection_name: str, _id: str) -> bool:
        with self._lock:
            docs = self._collections.get(collection_name, [])
            for index, doc in enumerate(docs):
                if doc["_id"] == _id:
                    del docs[index]
                    return True
        return False

    def describe(self) -> Dict[str, Any]:
        with self._lock:
            collections = sorted(self._collections)
        return {
            "database": "✅ In-memory",
            "database_name": None,
            "connection_status": "Connected",
            "collections": collections,
        }
