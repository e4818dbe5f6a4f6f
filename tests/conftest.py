"""
Registration Forms - Test Configuration and Fixtures
"""
import io
import os
import tempfile
import uuid
from datetime import date, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient
from starlette.datastructures import Headers, UploadFile

# Set testing environment
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="registration-uploads-"))
os.environ["APP_ENV"] = "test"

from app.main import app
from app.registrations.config import StorageConfig
from app.registrations.database import create_registration_indexes
from app.registrations.dependencies import get_db, get_storage
from app.registrations.resources import build_descriptors
from app.registrations.storage import FileAttachmentStore

PDF_BYTES = b"%PDF-1.4\n1 0 obj <<>> endobj\ntrailer <<>>\n%%EOF\n"


@pytest.fixture
async def db():
    """Fresh in-memory database with the production indexes applied"""
    client = AsyncMongoMockClient()
    database = client[f"registrations_{uuid.uuid4().hex}"]
    await create_registration_indexes(database)
    return database


@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(root=tmp_path)


@pytest.fixture
def storage(storage_config) -> FileAttachmentStore:
    store = FileAttachmentStore(storage_config)
    store.ensure_directories()
    return store


@pytest.fixture
def descriptors(storage_config):
    return build_descriptors(storage_config)


@pytest.fixture
async def client(db, storage):
    """Test client wired to the in-memory database and tmp upload storage"""
    async def override_get_db():
        return db

    async def override_get_storage():
        return storage

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = override_get_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def make_upload(filename="resume.pdf", content=PDF_BYTES, content_type="application/pdf") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def applicant(**overrides) -> dict:
    """Identity and academic fields shared by course, internship and R&D forms"""
    fields = {
        "fullName": "Asha Raman",
        "email": "asha@example.com",
        "phone": "9876543210",
        "gender": "Female",
        "city": "Chennai",
        "dob": "2003-04-12",
        "college": "Anna University",
        "degree": "B.E",
        "department": "CSE",
        "year": "3",
        "agreement": "true",
        "accessPreference": "Full Access",
    }
    fields.update(overrides)
    return fields


def course_form(**overrides) -> dict:
    fields = applicant(
        rollNumber="21CS001",
        courseName="Full Stack Development",
        courseDuration="3 Months",
        learningMode="Online",
        preferredTimeSlot="Evening",
        courseLevel="Beginner",
        heardFrom="Instagram",
    )
    fields.update(overrides)
    return fields


def intern_form(**overrides) -> dict:
    fields = applicant(
        domain="Web Development",
        duration="1 Month",
        internshipType="Remote",
        startDate="2030-06-01",
        interestReason="Hands-on experience",
        skills="Python, React",
    )
    fields.update(overrides)
    return fields


def rd_form(**overrides) -> dict:
    fields = applicant(
        domain="IoT",
        projectTitle="Smart irrigation controller",
        teamType="Team",
    )
    fields.update(overrides)
    return fields


def career_form(**overrides) -> dict:
    fields = {
        "fullName": "Asha Raman",
        "email": "a@x.com",
        "phone": "9000000000",
        "city": "Chennai",
        "position": "Backend Developer",
        "experienceType": "fresher",
        "highestQualification": "B.E",
        "degree": "B.E",
        "heardFrom": "LinkedIn",
        "interestReason": "I enjoy building APIs",
    }
    fields.update(overrides)
    return fields


def ideaforge_form(**overrides) -> dict:
    fields = {
        "name": "Asha Raman",
        "email": "asha@example.com",
        "phone": "9876543210",
        "degree": "B.E",
        "department": "CSE",
        "year": "3rd Year",
        "domain": "IoT",
        "ideaType": "own",
        "ideaDescription": "Sensor network that schedules irrigation from soil data",
        "finalDate": (date.today() + timedelta(days=30)).strftime("%d/%m/%Y"),
        "gotReferral": "no",
    }
    fields.update(overrides)
    return fields
