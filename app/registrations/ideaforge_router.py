from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.registrations.database import to_json, to_json_many
from app.registrations.dependencies import get_db, get_storage
from app.registrations.finalizer import RegistrationFinalizer
from app.registrations.forms import read_payload
from app.registrations.records import RecordService
from app.registrations.referral import REFERRAL_FIELD, ReferralCodeGenerator
from app.registrations.resources import ResourceType, get_descriptor
from app.registrations.storage import FileAttachmentStore

router = APIRouter(tags=["IdeaForge"])

IDEAFORGE = get_descriptor(ResourceType.IDEAFORGE)


def participants(db: AsyncIOMotorDatabase, storage: FileAttachmentStore) -> RecordService:
    return RecordService(db, storage, IDEAFORGE)

# ==================== REGISTRATION ====================

@router.post("/register")
async def register_participant(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: FileAttachmentStore = Depends(get_storage),
):
    fields, _ = await read_payload(request)
    doc = await RegistrationFinalizer(db, storage, IDEAFORGE).submit(fields)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Registration successful",
            "referralCode": doc[REFERRAL_FIELD],
            "participantId": str(doc["_id"]),
        },
    )


@router.get("/verify-referral/{code}")
async def verify_referral(code: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Malformed and unknown codes are answered with valid=false, never an error"""
    return await ReferralCodeGenerator(db[IDEAFORGE.collection]).verify(code)

# ==================== PARTICIPANTS ====================

@router.get("/participants")
async def list_participants(
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: FileAttachmentStore = Depends(get_storage),
):
    docs = await participants(db, storage).list()
    return {"success": True, "count": len(docs), "participants": to_json_many(docs)}


@router.get("/participant/{participant_id}")
async def get_participant(
    participant_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: FileAttachmentStore = Depends(get_storage),
):
    doc = await participants(db, storage).get(participant_id)
    return {"success": True, "participant": to_json(doc)}


@router.put("/participants/{participant_id}")
async def update_participant(
    participant_id: str,
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: FileAttachmentStore = Depends(get_storage),
):
    fields, _ = await read_payload(request)
    doc = await participants(db, storage).update(participant_id, fields)
    return {"success": True, "message": "Participant updated successfully", "participant": to_json(doc)}


@router.delete("/participants/{participant_id}")
async def delete_participant(
    participant_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: FileAttachmentStore = Depends(get_storage),
):
    await participants(db, storage).delete(participant_id)
    return {"success": True, "message": "Participant deleted successfully"}
