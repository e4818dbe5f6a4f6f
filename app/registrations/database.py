import logging
from typing import Dict, List, Optional

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from app.registrations.errors import InvalidId, InvalidRequest
from app.registrations.resources import DESCRIPTORS, ResourceTypeDescriptor
from app.registrations.sanitize import canonical_email, canonical_text

logger = logging.getLogger(__name__)

# ==================== SERIALIZATION ====================

def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    """JSON-safe copy of a stored record; inline file bytes are never echoed"""
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    for key, value in doc.items():
        if isinstance(value, dict) and "data" in value:
            doc[key] = {k: v for k, v in value.items() if k != "data"}
    return doc


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]


def to_json(doc: Optional[dict]):
    """serialize_mongo plus ISO dates, ready for a JSONResponse"""
    return jsonable_encoder(serialize_mongo(doc))


def to_json_many(docs: List[dict]) -> list:
    return jsonable_encoder(serialize_many(docs))


def parse_object_id(record_id: str) -> ObjectId:
    if not ObjectId.is_valid(record_id):
        raise InvalidId(f"Invalid record ID: {record_id}")
    return ObjectId(record_id)

# ==================== INDEXES ====================

async def create_registration_indexes(db: AsyncIOMotorDatabase):
    """
    Unique indexes are the authoritative duplicate guard; the pre-checks in
    DuplicateChecker only give friendlier errors.
    """
    for descriptor in DESCRIPTORS.values():
        final = db[descriptor.collection]
        for field in descriptor.unique_indexes:
            await final.create_index(
                [(field, ASCENDING)],
                unique=True,
                sparse=field in descriptor.sparse_indexes,
            )
        await final.create_index([(descriptor.sort_field, -1)])

        if descriptor.supports_drafts:
            drafts = db[descriptor.draft_collection]
            await drafts.create_index([("email", ASCENDING)], unique=True)
            await drafts.create_index([("phone", ASCENDING)], unique=True, sparse=True)
            await drafts.create_index([("createdAt", -1)])

    await db.intern_entries.create_index([("email", ASCENDING)])
    logger.info("Registration indexes created")

# ==================== DUPLICATE CHECK ====================

def canonical_candidates(candidates: Dict[str, Optional[str]], fields) -> Dict[str, str]:
    """Trim every candidate, lower-case email, drop blanks and unknown fields"""
    canonical = {}
    for field in fields:
        value = candidates.get(field)
        value = canonical_email(value) if field == "email" else canonical_text(value)
        if value:
            canonical[field] = value
    return canonical


class DuplicateChecker:
    """Reports which unique fields of a candidate already exist in a collection"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def check(
        self,
        descriptor: ResourceTypeDescriptor,
        candidates: Dict[str, Optional[str]],
        collection: Optional[str] = None,
    ) -> dict:
        supplied = canonical_candidates(candidates, descriptor.duplicate_fields)
        if not supplied:
            names = ", ".join(descriptor.duplicate_fields)
            raise InvalidRequest(f"At least one field ({names}) is required")

        query = {"$or": [{field: value} for field, value in supplied.items()]}
        existing = await self.db[collection or descriptor.collection].find_one(query)
        if existing is None:
            return {"exists": False, "matchedFields": [], "values": {}}

        matched = [field for field, value in supplied.items() if existing.get(field) == value]
        return {
            "exists": True,
            "matchedFields": matched,
            "values": {field: supplied[field] for field in matched},
        }
