"""
Registration Forms - Router Setup
Final registrations, drafts, IdeaForge and intern entries
"""

import logging

from fastapi import FastAPI

from app.registrations.database import create_registration_indexes
from app.registrations.dependencies import get_db_instance
from app.registrations.entries_router import router as entries_router
from app.registrations.ideaforge_router import router as ideaforge_router
from app.registrations.partial_router import build_partial_router
from app.registrations.registration_router import build_registration_router
from app.registrations.resources import DESCRIPTORS

logger = logging.getLogger(__name__)

# ==================== ROUTER SETUP ====================

def setup_registration_routes(app: FastAPI):
    """Register every resource family under its own prefix"""
    for descriptor in DESCRIPTORS.values():
        if descriptor.referral_bearing:
            app.include_router(ideaforge_router, prefix=descriptor.prefix)
            continue
        app.include_router(build_registration_router(descriptor), prefix=descriptor.prefix)
        if descriptor.supports_drafts:
            app.include_router(build_partial_router(descriptor), prefix=descriptor.draft_prefix)

    app.include_router(entries_router, prefix="/InternEntries")
    logger.info("Registration routes registered")

# ==================== STARTUP ====================

async def startup_registration_system():
    """Create store indexes"""
    await create_registration_indexes(get_db_instance())
    logger.info("Registration system initialized")
