from pydantic import BaseModel, field_validator
from typing import List, Optional
from enum import Enum

# ==================== ENUMS ====================

class EntryStatus(str, Enum):
    NOT_OPENED = "not opened"
    OPENED = "opened"
    CLOSED = "closed"
    EXPIRED = "expired"
    PENDING = "pending"

# ==================== INTERN ENTRY MODELS ====================

class InternEntry(BaseModel):
    """Access credentials handed to an accepted intern"""
    email: Optional[str] = None
    domain: Optional[str] = None
    course: Optional[str] = None
    days: Optional[str] = None
    referralCode: Optional[str] = None
    loginID: Optional[str] = None
    password: Optional[str] = None
    status: EntryStatus = EntryStatus.NOT_OPENED

    @field_validator("email")
    @classmethod
    def canonical_email(cls, value):
        if value is None:
            return None
        return value.strip().lower() or None

class InternEntryBatch(BaseModel):
    entries: List[InternEntry] = []
