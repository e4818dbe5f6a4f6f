"""
Final (non-draft) registrations for every resource type.

Order of work: required fields, formats, referral code, duplicate pre-check,
then file storage and insert. The upload is written only once everything
that can be checked up front has passed; after that, any failure releases it
before the error propagates.
"""

import logging
import secrets
import string
import time
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.registrations.database import DuplicateChecker
from app.registrations.errors import Conflict, ValidationFailed
from app.registrations.records import RecordService
from app.registrations.referral import (
    MAX_GENERATION_ATTEMPTS,
    REFERRAL_FIELD,
    ReferralCodeGenerator,
    validate_format,
)
from app.registrations.resources import ADMIN_FIELDS, ResourceTypeDescriptor
from app.registrations.storage import FileAttachmentStore
from app.registrations.validation import apply_aliases, field_errors, missing_required, normalize

logger = logging.getLogger(__name__)

BASE36 = string.digits + string.ascii_lowercase


def placeholder_roll_number() -> str:
    """
    temp_<epoch ms>_<9 base36 chars>. Keeps the unique rollNumber index from
    rejecting applicants who have no roll number.
    """
    suffix = "".join(secrets.choice(BASE36) for _ in range(9))
    return f"temp_{int(time.time() * 1000)}_{suffix}"


def _conflicting_fields(exc: DuplicateKeyError):
    details = exc.details or {}
    return set(details.get("keyValue") or details.get("keyPattern") or {})


class RegistrationFinalizer:
    def __init__(self, db: AsyncIOMotorDatabase, storage: FileAttachmentStore, descriptor: ResourceTypeDescriptor):
        self.descriptor = descriptor
        self.storage = storage
        self.records = RecordService(db, storage, descriptor)
        self.collection = self.records.collection
        self.duplicates = DuplicateChecker(db)
        self.referrals = ReferralCodeGenerator(self.collection)

    async def submit(self, fields: Dict[str, Any], upload: Optional[UploadFile] = None) -> dict:
        descriptor = self.descriptor
        fields = {k: v for k, v in fields.items() if k not in ADMIN_FIELDS}

        missing = missing_required(descriptor, fields, upload is not None)
        if descriptor.referral_bearing and fields.get("gotReferral") == "yes" and not fields.get("referralCode"):
            missing.append("referralCode")
        if missing:
            raise ValidationFailed.missing(missing)

        errors = field_errors(descriptor, fields)
        if descriptor.referral_bearing:
            errors.extend(await self._referral_errors(fields))
        if errors:
            raise ValidationFailed(errors)

        doc = normalize(descriptor, fields)
        if descriptor.referral_bearing and doc.get("gotReferral") != "yes":
            doc["referralCode"] = ""

        found = await self.duplicates.check(descriptor, {name: doc.get(name) for name in descriptor.duplicate_fields})
        if found["exists"]:
            logger.warning("Rejected duplicate %s registration on %s", descriptor.display_name, found["matchedFields"])
            raise Conflict(found["values"])

        if descriptor.synthesize_roll_number and not doc.get("rollNumber"):
            doc["rollNumber"] = placeholder_roll_number()

        apply_aliases(descriptor, doc)

        now = datetime.utcnow()
        doc.update(descriptor.admin_defaults)
        doc["status"] = descriptor.initial_status
        doc["createdAt"] = now
        doc["updatedAt"] = now
        if descriptor.referral_bearing:
            doc["registrationDate"] = now

        attachment = None
        if upload is not None and descriptor.upload:
            attachment = await self.storage.store(upload, descriptor.upload)
            doc.update(self.records.attachment_fields(attachment))

        try:
            await self._insert(doc)
        except DuplicateKeyError as exc:
            await self.storage.release(attachment)
            raise Conflict.from_duplicate_key(exc)
        except BaseException:
            await self.storage.release(attachment)
            raise

        logger.info("Created %s registration %s", descriptor.display_name, doc["_id"])
        return doc

    async def _referral_errors(self, fields: Dict[str, Any]) -> list:
        if fields.get("gotReferral") != "yes":
            return []
        code = fields.get("referralCode")
        if not validate_format(code):
            return ["Referral code must be in format: VR-XXXX-XXXX"]
        if not await self.referrals.exists(code):
            return ["Referral code not found"]
        return []

    async def _insert(self, doc: dict):
        """Insert, drawing a fresh referral code if the store reports a code collision"""
        attempts = MAX_GENERATION_ATTEMPTS if self.descriptor.referral_bearing else 1
        for attempt in range(1, attempts + 1):
            if self.descriptor.referral_bearing:
                doc[REFERRAL_FIELD] = await self.referrals.generate()
            try:
                result = await self.collection.insert_one(doc)
            except DuplicateKeyError as exc:
                doc.pop("_id", None)
                if attempt < attempts and _conflicting_fields(exc) == {REFERRAL_FIELD}:
                    logger.warning("Referral code taken during insert, retrying")
                    continue
                raise
            doc["_id"] = result.inserted_id
            return
