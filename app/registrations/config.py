"""
Registration Service Configuration
Store connection, upload storage and CORS settings
"""

import os
from pathlib import Path
from typing import List

from pydantic import BaseModel

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "registrations_db")

# Uploads
UPLOAD_ROOT = os.getenv("UPLOAD_ROOT", os.getcwd())
RESUME_MAX_BYTES = int(os.getenv("RESUME_MAX_BYTES", str(5 * 1024 * 1024)))  # 5MB
PROPOSAL_MAX_BYTES = int(os.getenv("PROPOSAL_MAX_BYTES", str(50 * 1024 * 1024)))  # 50MB

# Runtime
APP_ENV = os.getenv("APP_ENV", "production")
VERSION = os.getenv("VERSION", "1.0.0")

DEFAULT_CORS_ORIGINS = [
    "https://www.vetriantechnologysolutions.in",
    "https://vetriantechnologysolutions.in",
    "https://our-website-admin.vercel.app",
    "https://admin.vetriantechnologysolutions.in",
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:3000",
]


def get_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class StorageConfig(BaseModel):
    """Where uploaded documents live and how large they may be"""
    root: Path = Path(UPLOAD_ROOT)
    course_dir: str = "upload_courses"
    intern_dir: str = "upload_intern"
    career_dir: str = "upload_careers"
    resume_max_bytes: int = RESUME_MAX_BYTES
    proposal_max_bytes: int = PROPOSAL_MAX_BYTES

    def directory(self, name: str) -> Path:
        return self.root / name

    def public_directories(self) -> List[str]:
        return [self.course_dir, self.intern_dir, self.career_dir]
