import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.registrations.dependencies import get_db, get_storage
from app.registrations.storage import FileAttachmentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


async def database_status(db: AsyncIOMotorDatabase) -> dict:
    start = datetime.utcnow()
    try:
        await db.command("ping")
    except PyMongoError as exc:
        logger.warning("Store ping failed: %s", exc)
        return {"database": "Disconnected"}
    latency = (datetime.utcnow() - start).total_seconds() * 1000
    return {"database": "Connected", "latency_ms": round(latency, 2)}


@router.get("/ping")
async def ping(
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: FileAttachmentStore = Depends(get_storage),
):
    """Liveness: store connectivity and presence of each upload directory"""
    services = await database_status(db)
    for name in storage.config.public_directories():
        services[name] = storage.config.directory(name).is_dir()
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "message": "Backend is awake and running",
        "services": services,
    }
