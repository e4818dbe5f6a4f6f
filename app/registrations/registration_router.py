from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, JSONResponse, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.registrations.database import DuplicateChecker, to_json, to_json_many
from app.registrations.dependencies import get_db, get_storage
from app.registrations.finalizer import RegistrationFinalizer
from app.registrations.forms import read_payload
from app.registrations.records import RecordService
from app.registrations.resources import ResourceType, ResourceTypeDescriptor
from app.registrations.storage import FileAttachmentStore


def content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"inline; filename*=utf-8''{quoted}"
    return f'inline; filename="{filename}"'


def attachment_response(storage: FileAttachmentStore, attachment: dict) -> Response:
    """Serve a stored document inline under its original name"""
    media_type = attachment.get("contentType") or "application/octet-stream"
    filename = attachment.get("originalName") or attachment.get("filename") or "document"
    if attachment.get("data") is not None:
        return Response(
            content=bytes(attachment["data"]),
            media_type=media_type,
            headers={"Content-Disposition": content_disposition(filename)},
        )
    return FileResponse(
        storage.locate(attachment),
        media_type=media_type,
        filename=filename,
        content_disposition_type="inline",
    )


def build_registration_router(descriptor: ResourceTypeDescriptor) -> APIRouter:
    """Final-record routes for one resource type, mounted under its prefix"""
    router = APIRouter(tags=[f"{descriptor.display_name} Registration"])
    name = descriptor.display_name

    # ==================== FINALIZE ====================

    async def submit_registration(
        request: Request,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        fields, upload = await read_payload(request, descriptor.file_field)
        doc = await RegistrationFinalizer(db, storage, descriptor).submit(fields, upload)
        return JSONResponse(
            status_code=201,
            content={
                "success": True,
                "message": f"{name} registration submitted successfully",
                "data": to_json(doc),
            },
        )

    # ==================== CRUD ====================

    async def list_registrations(
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        docs = await RecordService(db, storage, descriptor).list()
        return {"success": True, "count": len(docs), "data": to_json_many(docs)}

    async def get_registration(
        record_id: str,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        doc = await RecordService(db, storage, descriptor).get(record_id)
        return {"success": True, "data": to_json(doc)}

    async def update_registration(
        record_id: str,
        request: Request,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        fields, upload = await read_payload(request, descriptor.file_field)
        doc = await RecordService(db, storage, descriptor).update(record_id, fields, upload)
        return {"success": True, "message": f"{name} record updated successfully", "data": to_json(doc)}

    async def delete_registration(
        record_id: str,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        await RecordService(db, storage, descriptor).delete(record_id)
        return {"success": True, "message": f"{name} record deleted successfully"}

    async def check_duplicate(
        request: Request,
        db: AsyncIOMotorDatabase = Depends(get_db),
    ):
        fields, _ = await read_payload(request)
        found = await DuplicateChecker(db).check(descriptor, fields)
        return {"success": True, "exists": found["exists"], "matchedFields": found["matchedFields"]}

    async def fetch_attachment(
        record_id: str,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: FileAttachmentStore = Depends(get_storage),
    ):
        attachment = await RecordService(db, storage, descriptor).open_attachment(record_id)
        return attachment_response(storage, attachment)

    router.add_api_route("/registration", submit_registration, methods=["POST"])
    router.add_api_route("/registration", list_registrations, methods=["GET"])
    router.add_api_route("/registration/{record_id}", get_registration, methods=["GET"])
    router.add_api_route("/registration/{record_id}", update_registration, methods=["PUT"])
    router.add_api_route("/registration/{record_id}", delete_registration, methods=["DELETE"])
    router.add_api_route("/check-duplicate", check_duplicate, methods=["POST"])
    if descriptor.file_field:
        router.add_api_route(f"/{descriptor.file_field}/{{record_id}}", fetch_attachment, methods=["GET"])

    if descriptor.type is ResourceType.CAREER:
        router.add_api_route("/applications", list_registrations, methods=["GET"])
        router.add_api_route("/applications/{record_id}", update_registration, methods=["PUT"])
        router.add_api_route("/applications/{record_id}", delete_registration, methods=["DELETE"])

    return router

