import pytest

from app.registrations.database import DuplicateChecker
from app.registrations.errors import InvalidRequest
from app.registrations.resources import ResourceType


@pytest.fixture
def course(descriptors):
    return descriptors[ResourceType.COURSE]


async def test_check_requires_at_least_one_field(db, course):
    with pytest.raises(InvalidRequest):
        await DuplicateChecker(db).check(course, {})
    with pytest.raises(InvalidRequest):
        await DuplicateChecker(db).check(course, {"email": "  ", "phone": None})


async def test_check_reports_no_match(db, course):
    result = await DuplicateChecker(db).check(course, {"email": "nobody@example.com"})
    assert result == {"exists": False, "matchedFields": [], "values": {}}


async def test_check_matches_canonical_email(db, course):
    await db[course.collection].insert_one({"email": "asha@example.com", "phone": "9876543210"})

    result = await DuplicateChecker(db).check(course, {"email": "  Asha@Example.COM "})

    assert result["exists"] is True
    assert result["matchedFields"] == ["email"]
    assert result["values"] == {"email": "asha@example.com"}


async def test_check_names_every_matching_field(db, course):
    await db[course.collection].insert_one(
        {"email": "asha@example.com", "phone": "9876543210", "rollNumber": "21CS001"}
    )

    result = await DuplicateChecker(db).check(
        course, {"email": "other@example.com", "phone": "9876543210", "rollNumber": "21CS001"}
    )

    assert result["exists"] is True
    assert result["matchedFields"] == ["phone", "rollNumber"]


async def test_check_ignores_fields_outside_the_type(db, descriptors):
    career = descriptors[ResourceType.CAREER]
    await db[career.collection].insert_one({"email": "a@x.com", "rollNumber": "21CS001"})

    result = await DuplicateChecker(db).check(career, {"rollNumber": "21CS001", "phone": "9000000001"})

    assert result["exists"] is False
