"""
Read, update and delete for stored registrants, final or draft.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.registrations.database import parse_object_id
from app.registrations.errors import Conflict, NotFound
from app.registrations.referral import REFERRAL_FIELD
from app.registrations.resources import ResourceTypeDescriptor
from app.registrations.storage import FileAttachmentStore
from app.registrations.validation import apply_aliases, normalize, validate_fields

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = ("_id", "createdAt", "registrationDate", REFERRAL_FIELD)


class RecordService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        storage: FileAttachmentStore,
        descriptor: ResourceTypeDescriptor,
        draft: bool = False,
    ):
        self.db = db
        self.storage = storage
        self.descriptor = descriptor
        self.draft = draft
        self.collection = db[descriptor.draft_collection if draft else descriptor.collection]
        self.label = f"{descriptor.display_name} {'draft' if draft else 'record'}"

    @property
    def sort_field(self) -> str:
        return "createdAt" if self.draft else self.descriptor.sort_field

    async def list(self) -> List[dict]:
        cursor = self.collection.find().sort(self.sort_field, -1)
        return await cursor.to_list(length=None)

    async def get(self, record_id: str) -> dict:
        doc = await self.collection.find_one({"_id": parse_object_id(record_id)})
        if doc is None:
            raise NotFound(f"{self.label} not found")
        return doc

    async def update(self, record_id: str, fields: Dict[str, Any], upload: Optional[UploadFile] = None) -> dict:
        """
        Merge the supplied fields into the record. A new file replaces the old
        one, which is released only after the store accepted the change.
        """
        oid = parse_object_id(record_id)
        validate_fields(self.descriptor, fields)
        changes = normalize(self.descriptor, fields)
        if not self.draft:
            apply_aliases(self.descriptor, changes)
        for name in IMMUTABLE_FIELDS:
            changes.pop(name, None)

        previous = None
        attachment = None
        if upload is not None and self.descriptor.upload:
            previous = await self.collection.find_one({"_id": oid}, {self.descriptor.file_field: 1})
            if previous is None:
                raise NotFound(f"{self.label} not found")
            attachment = await self.storage.store(upload, self.descriptor.upload)
            changes.update(self.attachment_fields(attachment))

        changes["updatedAt"] = datetime.utcnow()
        try:
            updated = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            await self.storage.release(attachment)
            raise Conflict.from_duplicate_key(exc)
        except BaseException:
            await self.storage.release(attachment)
            raise

        if updated is None:
            await self.storage.release(attachment)
            raise NotFound(f"{self.label} not found")

        if attachment is not None and previous is not None:
            await self.storage.release(previous.get(self.descriptor.file_field))

        logger.info("Updated %s %s", self.label, record_id)
        return updated

    async def delete(self, record_id: str) -> dict:
        doc = await self.collection.find_one_and_delete({"_id": parse_object_id(record_id)})
        if doc is None:
            raise NotFound(f"{self.label} not found")
        if self.descriptor.file_field:
            await self.storage.release(doc.get(self.descriptor.file_field))
        logger.info("Deleted %s %s", self.label, record_id)
        return doc

    async def open_attachment(self, record_id: str) -> dict:
        """The stored attachment dict, with bytes or a path that still exists"""
        doc = await self.get(record_id)
        field = self.descriptor.file_field
        attachment = doc.get(field) if field else None
        if not isinstance(attachment, dict):
            raise NotFound(f"{field or 'File'} not found")
        if attachment.get("data") is None:
            path = self.storage.locate(attachment)
            if path is None or not path.is_file():
                raise NotFound(f"{field} file not found on server")
        return attachment

    def attachment_fields(self, attachment: dict) -> dict:
        field = self.descriptor.file_field
        fields = {field: attachment}
        public = self.storage.public_path(attachment)
        if public:
            fields[f"{field}Path"] = public
        return fields
