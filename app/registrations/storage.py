"""
Uploaded document storage (résumés and proposals).

Disk-backed policies write under StorageConfig.root/<directory>; in-memory
policies keep the bytes inside the owning document. Either way callers get
back a plain attachment dict to store on the record.
"""

import logging
import re
import secrets
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from app.registrations.config import StorageConfig
from app.registrations.errors import ValidationFailed
from app.registrations.resources import UploadPolicy

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_stored_name(original: str) -> str:
    """<stem>-<epoch ms>-<random><ext>, stripped of directories and leading dots"""
    base = re.split(r"[\\/]", original or "")[-1]
    dot = base.rfind(".")
    stem, ext = (base[:dot], base[dot:]) if dot > 0 else (base, "")
    stem = UNSAFE_CHARS.sub("_", stem).lstrip(".") or "upload"
    ext = UNSAFE_CHARS.sub("", ext).lower()
    return f"{stem}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class FileAttachmentStore:
    def __init__(self, config: StorageConfig):
        self.config = config

    def ensure_directories(self):
        for name in self.config.public_directories():
            self.config.directory(name).mkdir(parents=True, exist_ok=True)

    async def store(self, upload: UploadFile, policy: UploadPolicy) -> dict:
        """
        Validate and persist one upload.
        Raises ValidationFailed for a disallowed type or an oversized file;
        nothing is left behind in that case.
        """
        original = upload.filename or "upload"
        content_type = upload.content_type or "application/octet-stream"

        if not policy.accepts(original, content_type):
            raise ValidationFailed([policy.rejection_message], message=policy.rejection_message)

        if policy.in_memory:
            data = await self._read_limited(upload, policy)
            return {
                "filename": original,
                "originalName": original,
                "contentType": content_type,
                "size": len(data),
                "data": data,
            }

        directory = self.config.directory(policy.directory)
        directory.mkdir(parents=True, exist_ok=True)
        stored_name = safe_stored_name(original)
        path = directory / stored_name

        size = 0
        try:
            async with aiofiles.open(path, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > policy.max_bytes:
                        raise self._too_large(policy)
                    await out.write(chunk)
        except BaseException:
            await self._remove_quietly(path)
            raise

        logger.info("Stored upload %s (%d bytes) in %s", stored_name, size, policy.directory)
        return {
            "filename": stored_name,
            "originalName": original,
            "contentType": content_type,
            "size": size,
            "path": str(path),
            "uploadDirectory": policy.directory,
        }

    async def release(self, attachment: Optional[dict]) -> bool:
        """
        Best-effort removal of a stored file. Returns True when a file was
        deleted; failures are logged, never raised.
        """
        path = self.locate(attachment)
        if path is None:
            return False
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Could not release stored file %s: %s", path, exc)
            return False
        logger.info("Released stored file %s", path.name)
        return True

    def locate(self, attachment: Optional[dict]) -> Optional[Path]:
        if not isinstance(attachment, dict) or not attachment.get("path"):
            return None
        return Path(attachment["path"])

    @staticmethod
    def public_path(attachment: Optional[dict]) -> str:
        """URL path under the read-only static mount, or "" for in-memory files"""
        if not isinstance(attachment, dict) or not attachment.get("uploadDirectory"):
            return ""
        return f"/{attachment['uploadDirectory']}/{attachment['filename']}"

    async def _read_limited(self, upload: UploadFile, policy: UploadPolicy) -> bytes:
        buffer = bytearray()
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            buffer.extend(chunk)
            if len(buffer) > policy.max_bytes:
                raise self._too_large(policy)
        return bytes(buffer)

    @staticmethod
    def _too_large(policy: UploadPolicy) -> ValidationFailed:
        limit_mb = policy.max_bytes // (1024 * 1024)
        message = f"{policy.field_name} exceeds the {limit_mb}MB size limit"
        return ValidationFailed([message], message=message)

    async def _remove_quietly(self, path: Path):
        try:
            await aiofiles.os.remove(path)
        except OSError as exc:
            logger.debug("Partial upload %s already gone: %s", path, exc)
