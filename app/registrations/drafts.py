"""
Save-as-you-go drafts

One draft per email. Every partial save merges into it: a field is only
overwritten when the new value is non-empty, so an empty save never erases
what the applicant already entered.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.registrations.errors import Conflict, InvalidRequest, NotFound
from app.registrations.records import RecordService
from app.registrations.resources import ADMIN_FIELDS, ResourceTypeDescriptor
from app.registrations.sanitize import canonical_email
from app.registrations.storage import FileAttachmentStore
from app.registrations.validation import normalize, validate_fields

logger = logging.getLogger(__name__)

ACKNOWLEDGED_FIELDS = ("email", "college", "degree", "department", "year", "rollNumber")


def acknowledgment(draft: dict) -> dict:
    """Identity and academic subset echoed back after a partial save"""
    ack = {"id": str(draft["_id"])}
    for name in ACKNOWLEDGED_FIELDS:
        ack[name] = draft.get(name)
    return ack


class DraftUpsertEngine:
    def __init__(self, db: AsyncIOMotorDatabase, storage: FileAttachmentStore, descriptor: ResourceTypeDescriptor):
        if not descriptor.supports_drafts:
            raise ValueError(f"{descriptor.display_name} has no drafts")
        self.descriptor = descriptor
        self.storage = storage
        self.records = RecordService(db, storage, descriptor, draft=True)
        self.collection = self.records.collection

    async def save(
        self,
        email: Optional[str],
        fields: Dict[str, Any],
        upload: Optional[UploadFile] = None,
    ) -> dict:
        email = canonical_email(email)
        if not email:
            raise InvalidRequest("Email is required")

        incoming = {k: v for k, v in fields.items() if k not in ADMIN_FIELDS and k != "email"}
        validate_fields(self.descriptor, incoming)
        changes = normalize(self.descriptor, incoming)

        existing = await self.collection.find_one({"email": email})

        attachment = None
        if upload is not None:
            attachment = await self.storage.store(upload, self.descriptor.upload)
            changes.update(self.records.attachment_fields(attachment))

        now = datetime.utcnow()
        try:
            if existing is None:
                draft = self._new_draft(email, changes, now)
                result = await self.collection.insert_one(draft)
                draft["_id"] = result.inserted_id
                logger.info("Created %s draft for %s", self.descriptor.display_name, email)
            else:
                changes["updatedAt"] = now
                draft = await self.collection.find_one_and_update(
                    {"_id": existing["_id"]},
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER,
                )
                if draft is None:
                    raise NotFound(f"{self.descriptor.display_name} draft not found")
                logger.info("Updated %s draft for %s", self.descriptor.display_name, email)
        except DuplicateKeyError as exc:
            await self.storage.release(attachment)
            raise Conflict.from_duplicate_key(exc)
        except BaseException:
            await self.storage.release(attachment)
            raise

        if attachment is not None and existing is not None:
            await self.storage.release(existing.get(self.descriptor.file_field))

        return draft

    def _new_draft(self, email: str, changes: Dict[str, Any], now: datetime) -> dict:
        draft = dict(self.descriptor.draft_defaults)
        draft.update(changes)
        draft["email"] = email
        draft["status"] = self.descriptor.initial_status
        draft.update(self.descriptor.admin_defaults)
        draft.setdefault(self.descriptor.file_field, None)
        draft["createdAt"] = now
        draft["updatedAt"] = now
        return draft

    async def get_by_email(self, email: Optional[str]) -> dict:
        draft = await self.collection.find_one({"email": canonical_email(email)})
        if draft is None:
            raise NotFound("No record found")
        return draft

    async def list(self):
        return await self.records.list()

    async def update(self, record_id: str, fields: Dict[str, Any], upload: Optional[UploadFile] = None) -> dict:
        return await self.records.update(record_id, fields, upload)

    async def delete(self, record_id: str) -> dict:
        return await self.records.delete(record_id)
