import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.registrations.database import parse_object_id, to_json_many
from app.registrations.dependencies import get_db
from app.registrations.errors import InvalidRequest, NotFound
from app.registrations.models import InternEntryBatch

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Intern Entries"])


@router.post("/entries")
async def save_entries(batch: InternEntryBatch, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not batch.entries:
        raise InvalidRequest("No entries provided")

    now = datetime.utcnow()
    docs = [
        {**entry.model_dump(mode="json"), "createdAt": now, "updatedAt": now}
        for entry in batch.entries
    ]
    await db.intern_entries.insert_many(docs)
    logger.info("Saved %d intern entries", len(docs))
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": "Entries saved successfully", "data": to_json_many(docs)},
    )


@router.get("/entries")
async def list_entries(db: AsyncIOMotorDatabase = Depends(get_db)):
    docs = await db.intern_entries.find().sort("createdAt", -1).to_list(length=None)
    return {"success": True, "count": len(docs), "data": to_json_many(docs)}


@router.delete("/entries/{entry_id}")
async def delete_entry(entry_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    deleted = await db.intern_entries.find_one_and_delete({"_id": parse_object_id(entry_id)})
    if deleted is None:
        raise NotFound("Entry not found")
    logger.info("Deleted intern entry %s", entry_id)
    return {"success": True, "message": "Entry deleted successfully"}
