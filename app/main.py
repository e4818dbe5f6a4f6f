import logging
from datetime import datetime
from pathlib import PurePosixPath

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.registrations.app import setup_registration_routes, startup_registration_system
from app.registrations.config import MONGO_DB_NAME, MONGO_URL, VERSION, StorageConfig, get_cors_origins
from app.registrations.errors import install_error_handlers
from app.registrations.resources import DESCRIPTORS, ResourceType
from app.registrations.storage import FileAttachmentStore
from app.system.health_router import router as health_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Registration Forms API", version=VERSION)

# MongoDB Configuration
client = AsyncIOMotorClient(MONGO_URL)
db = client[MONGO_DB_NAME]

storage = FileAttachmentStore(StorageConfig())
storage.ensure_directories()


class UploadFiles(StaticFiles):
    """Read-only view of an upload directory that never serves dotfiles"""

    async def get_response(self, path: str, scope):
        if any(part.startswith(".") for part in PurePosixPath(path).parts):
            raise StarletteHTTPException(status_code=404)
        return await super().get_response(path, scope)


@app.on_event("startup")
async def startup_event():
    await startup_registration_system()


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

install_error_handlers(app)

# ==================== ROUTER REGISTRATION ====================
setup_registration_routes(app)
app.include_router(health_router)

for directory in storage.config.public_directories():
    app.mount(
        f"/{directory}",
        UploadFiles(directory=storage.config.directory(directory), check_dir=False),
        name=directory,
    )
# ============================================================


@app.get("/")
async def index():
    """Service index"""
    descriptors = DESCRIPTORS
    return {
        "message": "Registration Forms API is running",
        "version": VERSION,
        "endpoints": {
            "internship": {
                "register": descriptors[ResourceType.INTERNSHIP].prefix,
                "partial": descriptors[ResourceType.INTERNSHIP].draft_prefix,
            },
            "courses": {
                "register": descriptors[ResourceType.COURSE].prefix,
                "partial": descriptors[ResourceType.COURSE].draft_prefix,
            },
            "careers": {"register": descriptors[ResourceType.CAREER].prefix},
            "rnd": {
                "register": descriptors[ResourceType.RD_PROJECT].prefix,
                "partial": descriptors[ResourceType.RD_PROJECT].draft_prefix,
            },
            "ideaForge": descriptors[ResourceType.IDEAFORGE].prefix,
            "internEntries": "/InternEntries",
        },
        "timestamp": datetime.utcnow().isoformat(),
    }
