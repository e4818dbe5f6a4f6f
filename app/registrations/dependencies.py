from motor.motor_asyncio import AsyncIOMotorDatabase

from app.registrations.storage import FileAttachmentStore


def get_db_instance():
    """Get database from main module"""
    from app.main import db
    return db


def get_storage_instance():
    from app.main import storage
    return storage

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()


async def get_storage() -> FileAttachmentStore:
    """Upload storage dependency"""
    return get_storage_instance()
