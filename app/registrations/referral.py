"""
IdeaForge referral codes: VR-XXXX-XXXX over an uppercase alphanumeric alphabet.
"""

import logging
import re
import secrets
import string
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorCollection

from app.registrations.errors import Unavailable

logger = logging.getLogger(__name__)

REFERRAL_PREFIX = "VR"
REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_PATTERN = re.compile(rf"^{REFERRAL_PREFIX}-[A-Z0-9]{{4}}-[A-Z0-9]{{4}}$")
REFERRAL_FIELD = "generatedReferralCode"
MAX_GENERATION_ATTEMPTS = 10


def canonical_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def validate_format(code: Optional[str]) -> bool:
    """Structural check only; case-insensitive on input"""
    return bool(REFERRAL_PATTERN.match(canonical_code(code)))


def sample_code() -> str:
    groups = ["".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(4)) for _ in range(2)]
    return "-".join([REFERRAL_PREFIX, *groups])


class ReferralCodeGenerator:
    def __init__(self, collection: AsyncIOMotorCollection, max_attempts: int = MAX_GENERATION_ATTEMPTS):
        self.collection = collection
        self.max_attempts = max_attempts

    validate_format = staticmethod(validate_format)

    async def generate(self) -> str:
        """Sample until the store has no participant holding the candidate"""
        for attempt in range(1, self.max_attempts + 1):
            candidate = sample_code()
            if await self.collection.find_one({REFERRAL_FIELD: candidate}, {"_id": 1}) is None:
                return candidate
            logger.warning("Referral code collision on attempt %d, resampling", attempt)
        raise Unavailable("Could not allocate a unique referral code, please try again")

    async def exists(self, code: Optional[str]) -> bool:
        if not validate_format(code):
            return False
        found = await self.collection.find_one({REFERRAL_FIELD: canonical_code(code)}, {"_id": 1})
        return found is not None

    async def verify(self, code: Optional[str]) -> dict:
        """Never fails: malformed or unknown codes simply come back invalid"""
        if not validate_format(code):
            return {"valid": False, "message": "Invalid referral code format"}

        referrer = await self.collection.find_one(
            {REFERRAL_FIELD: canonical_code(code)}, {"name": 1}
        )
        if referrer is None:
            return {"valid": False, "message": "Referral code not found"}

        return {"valid": True, "message": "Valid referral code", "referrer": referrer.get("name")}
