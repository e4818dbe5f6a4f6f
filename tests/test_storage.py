import pytest

from conftest import PDF_BYTES, make_upload
from app.registrations.errors import ValidationFailed
from app.registrations.resources import PDF_TYPES, RESUME_EXTENSIONS, UploadPolicy
from app.registrations.storage import safe_stored_name


def resume_policy(**overrides) -> UploadPolicy:
    options = dict(field_name="resume", max_bytes=1024, directory="upload_courses", content_types=PDF_TYPES)
    options.update(overrides)
    return UploadPolicy(**options)


def test_safe_stored_name_strips_directories_and_dots():
    name = safe_stored_name("../../.secret/My CV.PDF")
    assert "/" not in name
    assert name.startswith("My_CV-")
    assert name.endswith(".pdf")
    assert not safe_stored_name(".env").startswith(".")


async def test_store_writes_under_policy_directory(storage, storage_config):
    attachment = await storage.store(make_upload("cv.pdf"), resume_policy())

    path = storage.locate(attachment)
    assert path.parent == storage_config.directory("upload_courses")
    assert path.read_bytes() == PDF_BYTES
    assert attachment["originalName"] == "cv.pdf"
    assert attachment["size"] == len(PDF_BYTES)
    assert storage.public_path(attachment) == f"/upload_courses/{attachment['filename']}"


async def test_store_rejects_wrong_content_type(storage, storage_config):
    with pytest.raises(ValidationFailed) as excinfo:
        await storage.store(make_upload("cv.png", b"png", "image/png"), resume_policy())
    assert excinfo.value.message == "Only PDF files are allowed"
    assert list(storage_config.directory("upload_courses").iterdir()) == []


async def test_extension_policy_ignores_content_type(storage):
    policy = resume_policy(content_types=frozenset(), extensions=RESUME_EXTENSIONS, directory="upload_careers")
    attachment = await storage.store(make_upload("cv.docx", b"doc", "application/octet-stream"), policy)
    assert attachment["filename"].endswith(".docx")


async def test_oversized_upload_leaves_nothing_behind(storage, storage_config):
    with pytest.raises(ValidationFailed) as excinfo:
        await storage.store(make_upload(content=b"x" * 2048), resume_policy())
    assert "size limit" in excinfo.value.message
    assert list(storage_config.directory("upload_courses").iterdir()) == []


async def test_in_memory_policy_keeps_bytes(storage, storage_config):
    policy = UploadPolicy(field_name="proposal", max_bytes=1024, extensions=frozenset({".pdf"}))
    attachment = await storage.store(make_upload("plan.pdf"), policy)

    assert attachment["data"] == PDF_BYTES
    assert storage.locate(attachment) is None
    assert storage.public_path(attachment) == ""


async def test_release_removes_file_once(storage):
    attachment = await storage.store(make_upload(), resume_policy())
    path = storage.locate(attachment)

    assert await storage.release(attachment) is True
    assert not path.exists()
    assert await storage.release(attachment) is False
    assert await storage.release(None) is False
