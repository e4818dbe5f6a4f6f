import re
from datetime import date, timedelta

import pytest

from conftest import career_form, course_form, ideaforge_form, intern_form, make_upload, rd_form
from app.registrations.database import DuplicateChecker
from app.registrations.errors import Conflict, ValidationFailed
from app.registrations.finalizer import RegistrationFinalizer, placeholder_roll_number
from app.registrations.records import RecordService
from app.registrations.referral import REFERRAL_FIELD, validate_format
from app.registrations.resources import ResourceType


@pytest.fixture
def finalizer(db, storage, descriptors):
    def build(resource_type):
        return RegistrationFinalizer(db, storage, descriptors[resource_type])
    return build


def test_placeholder_roll_number_shape():
    assert re.match(r"^temp_\d+_[0-9a-z]{9}$", placeholder_roll_number())


async def test_missing_fields_are_all_listed(finalizer):
    with pytest.raises(ValidationFailed) as excinfo:
        await finalizer(ResourceType.COURSE).submit({"email": "asha@example.com", "city": "Chennai"})

    errors = excinfo.value.errors
    assert "fullName is required" in errors
    assert "accessPreference is required" in errors
    assert "email is required" not in errors
    assert "city is required" not in errors
    assert excinfo.value.message.startswith("Missing required fields: fullName, phone")


async def test_career_requires_resume(finalizer):
    with pytest.raises(ValidationFailed) as excinfo:
        await finalizer(ResourceType.CAREER).submit(career_form())
    assert excinfo.value.errors == ["resume is required"]


async def test_career_with_resume(finalizer, storage):
    doc = await finalizer(ResourceType.CAREER).submit(career_form(), make_upload("cv.docx", b"doc"))

    assert doc["status"] == "New"
    assert doc["rating"] == 0
    assert doc["resumePath"].startswith("/upload_careers/")
    assert storage.locate(doc["resume"]).exists()


async def test_course_stores_canonical_values(finalizer):
    doc = await finalizer(ResourceType.COURSE).submit(
        course_form(email="  Asha@Example.COM", status="Viewed", totalCost="999")
    )

    assert doc["email"] == "asha@example.com"
    assert doc["agreement"] is True
    assert doc["status"] == "Not Viewed"
    assert doc["totalCost"] == 0
    assert doc["notes"] == ""
    assert "resume" not in doc


async def test_enum_violation_rejected(finalizer):
    with pytest.raises(ValidationFailed) as excinfo:
        await finalizer(ResourceType.COURSE).submit(course_form(gender="Unknown"))
    assert excinfo.value.errors == ["gender must be one of: Male, Female, Other"]


async def test_internship_synthesizes_roll_number(finalizer):
    doc = await finalizer(ResourceType.INTERNSHIP).submit(intern_form(), make_upload())

    assert doc["rollNumber"].startswith("temp_")
    assert doc["resumePath"].startswith("/upload_intern/")


async def test_internships_without_roll_numbers_do_not_collide(finalizer):
    await finalizer(ResourceType.INTERNSHIP).submit(intern_form(), make_upload())
    second = await finalizer(ResourceType.INTERNSHIP).submit(
        intern_form(email="ravi@example.com", phone="9123456780"), make_upload()
    )
    assert second["rollNumber"].startswith("temp_")


async def test_rd_project_aliases_domain_and_maps_access(finalizer):
    doc = await finalizer(ResourceType.RD_PROJECT).submit(
        rd_form(accessPreference="Flexible Access"), make_upload("plan.pptx", b"slides")
    )

    assert doc["projectDomain"] == "IoT"
    assert "domain" not in doc
    assert doc["projectAccess"] == "Flexible Access (Installment / Due-based option)"
    assert doc["proposal"]["data"] == b"slides"
    assert doc["rollNumber"].startswith("temp_")


async def test_duplicate_precheck_rejects_before_storing(finalizer, storage_config):
    await finalizer(ResourceType.COURSE).submit(course_form(), make_upload())

    with pytest.raises(Conflict) as excinfo:
        await finalizer(ResourceType.COURSE).submit(course_form(phone="9123456780"), make_upload())

    assert set(excinfo.value.fields) == {"email", "rollNumber"}
    assert len(list(storage_config.directory("upload_courses").iterdir())) == 1


async def test_store_conflict_releases_upload(finalizer, storage_config, monkeypatch):
    await finalizer(ResourceType.COURSE).submit(course_form())

    async def no_match(self, descriptor, candidates, collection=None):
        return {"exists": False, "matchedFields": [], "values": {}}

    monkeypatch.setattr(DuplicateChecker, "check", no_match)

    with pytest.raises(Conflict):
        await finalizer(ResourceType.COURSE).submit(course_form(), make_upload())

    assert list(storage_config.directory("upload_courses").iterdir()) == []


async def test_ideaforge_registration_issues_referral_code(finalizer):
    doc = await finalizer(ResourceType.IDEAFORGE).submit(ideaforge_form())

    assert validate_format(doc[REFERRAL_FIELD])
    assert doc["referralCode"] == ""
    assert doc["status"] == "pending"
    assert "registrationDate" in doc


async def test_ideaforge_accepts_existing_referral(finalizer):
    referrer = await finalizer(ResourceType.IDEAFORGE).submit(ideaforge_form())

    doc = await finalizer(ResourceType.IDEAFORGE).submit(ideaforge_form(
        email="ravi@example.com",
        phone="9123456780",
        gotReferral="yes",
        referralCode=referrer[REFERRAL_FIELD].lower(),
    ))

    assert doc["referralCode"] == referrer[REFERRAL_FIELD]
    assert doc[REFERRAL_FIELD] != referrer[REFERRAL_FIELD]


@pytest.mark.parametrize("overrides, error", [
    ({"gotReferral": "yes"}, "referralCode is required"),
    ({"gotReferral": "yes", "referralCode": "VR-123"}, "Referral code must be in format: VR-XXXX-XXXX"),
    ({"gotReferral": "yes", "referralCode": "VR-ZZZZ-ZZZZ"}, "Referral code not found"),
    ({"phone": "1234567890"}, "Please enter a valid 10-digit phone number starting with 6-9"),
    ({"name": "Asha99"}, "Name can only contain letters and spaces"),
    ({"ideaDescription": "too short"}, "ideaDescription must be between 20 and 500 characters"),
])
async def test_ideaforge_rejections(finalizer, overrides, error):
    with pytest.raises(ValidationFailed) as excinfo:
        await finalizer(ResourceType.IDEAFORGE).submit(ideaforge_form(**overrides))
    assert error in excinfo.value.errors


@pytest.mark.parametrize("offset", [-1, 400])
async def test_ideaforge_final_date_window(finalizer, offset):
    final_date = (date.today() + timedelta(days=offset)).strftime("%d/%m/%Y")
    with pytest.raises(ValidationFailed) as excinfo:
        await finalizer(ResourceType.IDEAFORGE).submit(ideaforge_form(finalDate=final_date))
    assert excinfo.value.errors == ["finalDate must be between today and 1 year(s) from now"]


@pytest.mark.parametrize("agreement", [False, "false", ""])
async def test_agreement_must_be_accepted(finalizer, agreement):
    with pytest.raises(ValidationFailed) as excinfo:
        await finalizer(ResourceType.RD_PROJECT).submit(rd_form(agreement=agreement))
    assert excinfo.value.errors == ["agreement is required"]


async def test_rd_update_stores_domain_under_project_domain(finalizer, db, storage, descriptors):
    doc = await finalizer(ResourceType.RD_PROJECT).submit(rd_form())
    updated = await RecordService(db, storage, descriptors[ResourceType.RD_PROJECT]).update(
        str(doc["_id"]), {"domain": "AI"}
    )

    assert updated["projectDomain"] == "AI"
    assert "domain" not in updated
