"""
MongoDB repository for phrase content.

Provides the phrase catalog used to join due items and tasks with their
content and to pick new phrases for the daily batch.
"""

from __future__ import annotations

from typing import Iterable, Optional

from loguru import logger
from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from learning_core.config import Settings, get_mongo_uri
from learning_core.errors import StoreUnavailable
from learning_core.schemas import Phrase

# Only these fields are read from catalog documents
PROJECTION = {
    "_id": 0,
    "phrase_id": 1,
    "german": 1,
    "english": 1,
    "pronunciation": 1,
    "category": 1,
    "difficulty": 1,
}


def document_to_phrase(doc: dict) -> Optional[Phrase]:
    """
    Convert a catalog document to a Phrase.

    Malformed documents are logged and skipped rather than failing the
    whole query.
    """
    try:
        return Phrase(
            phrase_id=doc["phrase_id"],
            prompt=doc["german"],
            answer=doc["english"],
            pronunciation=doc.get("pronunciation") or "",
            category=doc.get("category") or "general",
            difficulty=doc.get("difficulty") or "intermediate",
        )
    except (KeyError, ValidationError) as exc:
        logger.warning("Skipping malformed catalog document {}: {}", doc.get("phrase_id"), exc)
        return None


def phrase_to_document(phrase: Phrase) -> dict:
    return {
        "phrase_id": phrase.phrase_id,
        "german": phrase.prompt,
        "english": phrase.answer,
        "pronunciation": phrase.pronunciation,
        "category": phrase.category,
        "difficulty": phrase.difficulty.value,
    }


class MongoPhraseCatalog:
    """Phrase catalog backed by a MongoDB collection."""

    def __init__(self, collection: Collection):
        self.collection = collection

    @classmethod
    def connect(cls, settings: Settings) -> "MongoPhraseCatalog":
        """
        Open a pooled client for the configured catalog collection.

        The client is meant to be created once per process and reused.
        """
        client = MongoClient(
            settings.mongo_uri or get_mongo_uri(),
            maxPoolSize=10,  # Connection pool size
            minPoolSize=1,   # Keep at least 1 connection alive
            maxIdleTimeMS=60000  # Keep connections alive for 60 seconds
        )
        return cls(client[settings.catalog_db_name][settings.catalog_collection])

    def ensure_indexes(self) -> None:
        self._run(lambda: self.collection.create_index([("phrase_id", 1)], unique=True))

    def get_phrase(self, phrase_id: str) -> Optional[Phrase]:
        doc = self._run(lambda: self.collection.find_one({"phrase_id": phrase_id}, PROJECTION))
        return document_to_phrase(doc) if doc else None

    def get_phrases(self, phrase_ids: Iterable[str]) -> dict[str, Phrase]:
        ids = list(dict.fromkeys(phrase_ids))
        if not ids:
            return {}
        docs = self._run(lambda: list(self.collection.find({"phrase_id": {"$in": ids}}, PROJECTION)))
        phrases = (document_to_phrase(doc) for doc in docs)
        return {p.phrase_id: p for p in phrases if p is not None}

    def sample_phrases(self, size: int, exclude_ids: Iterable[str] = ()) -> list[Phrase]:
        """
        Random phrases not in exclude_ids.

        Uses MongoDB's $sample aggregation for random selection.
        """
        if size <= 0:
            return []
        query = {}
        exclude = list(exclude_ids)
        if exclude:
            query["phrase_id"] = {"$nin": exclude}
        pipeline = [
            {"$match": query},
            {"$sample": {"size": size}},
            {"$project": PROJECTION},
        ]
        docs = self._run(lambda: list(self.collection.aggregate(pipeline)))
        phrases = (document_to_phrase(doc) for doc in docs)
        return [p for p in phrases if p is not None]

    def upsert_phrase(self, phrase: Phrase) -> None:
        self._run(lambda: self.collection.replace_one(
            {"phrase_id": phrase.phrase_id}, phrase_to_document(phrase), upsert=True
        ))

    @staticmethod
    def _run(operation):
        try:
            return operation()
        except PyMongoError as exc:
            raise StoreUnavailable(f"Phrase catalog unavailable: {exc}") from exc
