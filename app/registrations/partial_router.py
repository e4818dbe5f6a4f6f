from typing import Optional

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.registrations.database import to_json, to_json_many
from app.registrations.dependencies import get_db, get_storage
from app.registrations.drafts import DraftUpsertEngine, acknowledgment
from app.registrations.forms import read_payload
from app.registrations.registration_router import attachment_response
from app.registrations.resources import ResourceTypeDescriptor
from app.registrations.storage import FileAttachmentStore


def build_partial_router(descriptor: ResourceTypeDescriptor) -> APIRouter:
    """Draft routes for one resource type, mounted under its draft prefix"""
    router = APIRouter(tags=[f"{descriptor.display_name} Drafts"])
    name = descriptor.display_name

    async def partial_save(
        request: Request,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        fields, upload = await read_payload(request, descriptor.file_field)
        email = fields.pop("email", None)
        draft = await DraftUpsertEngine(db, storage, descriptor).save(email, fields, upload)
        return {
            "success": True,
            "message": f"{name} progress saved",
            "data": acknowledgment(draft),
        }

    async def partial_data(
        email: Optional[str] = None,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        """One draft when an email is given, every draft otherwise"""
        engine = DraftUpsertEngine(db, storage, descriptor)
        if email and email.strip():
            draft = await engine.get_by_email(email)
            return {"success": True, "data": to_json(draft)}
        drafts = await engine.list()
        return {"success": True, "count": len(drafts), "data": to_json_many(drafts)}

    async def partial_update(
        record_id: str,
        request: Request,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        fields, upload = await read_payload(request, descriptor.file_field)
        draft = await DraftUpsertEngine(db, storage, descriptor).update(record_id, fields, upload)
        return {"success": True, "message": f"{name} draft updated successfully", "data": to_json(draft)}

    async def partial_delete(
        record_id: str,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        await DraftUpsertEngine(db, storage, descriptor).delete(record_id)
        return {"success": True, "message": f"{name} draft deleted successfully"}

    async def fetch_attachment(
        record_id: str,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        engine = DraftUpsertEngine(db, storage, descriptor)
        return attachment_response(storage, await engine.records.open_attachment(record_id))

    router.add_api_route("/partial-save", partial_save, methods=["POST"])
    router.add_api_route("/partial-data", partial_data, methods=["GET"])
    router.add_api_route("/partial-update/{record_id}", partial_update, methods=["PUT"])
    router.add_api_route("/partial-delete/{record_id}", partial_delete, methods=["DELETE"])
    if descriptor.file_field:
        router.add_api_route(f"/{descriptor.file_field}/{{record_id}}", fetch_attachment, methods=["GET"])

    return router
