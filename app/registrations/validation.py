import re
from datetime import date
from typing import Any, Dict, List, Optional

from app.registrations.errors import ValidationFailed
from app.registrations.referral import canonical_code
from app.registrations.resources import ResourceTypeDescriptor
from app.registrations.sanitize import (
    canonical_email,
    coerce_bool,
    coerce_number,
    map_access_preference,
    parse_date,
)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def missing_required(descriptor: ResourceTypeDescriptor, fields: Dict[str, Any], has_file: bool) -> List[str]:
    """
    Every required field that is absent or blank after trim, in declaration
    order. A required boolean (the agreement tick box) counts only when true.
    """
    missing = []
    for name in descriptor.required_fields:
        value = fields.get(name)
        if name in descriptor.boolean_fields:
            if not coerce_bool(value):
                missing.append(name)
        elif _is_missing(value):
            missing.append(name)
    if descriptor.upload and descriptor.upload.required and not has_file:
        missing.append(descriptor.upload.field_name)
    return missing


def _years_ahead(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year + years)
    except ValueError:  # 29 Feb
        return today.replace(year=today.year + years, day=28)


def field_errors(
    descriptor: ResourceTypeDescriptor,
    fields: Dict[str, Any],
    today: Optional[date] = None,
) -> List[str]:
    """Format problems for the fields that are present; absent fields are not checked"""
    today = today or date.today()
    errors = []

    for name, allowed in descriptor.enums.items():
        value = fields.get(name)
        if value is not None and value not in allowed:
            errors.append(f"{name} must be one of: {', '.join(allowed)}")

    for name, (pattern, message) in descriptor.patterns.items():
        value = fields.get(name)
        if value is not None and not re.match(pattern, str(value)):
            errors.append(message)

    for name, (low, high) in descriptor.lengths.items():
        value = fields.get(name)
        if isinstance(value, str) and not low <= len(value.strip()) <= high:
            errors.append(f"{name} must be between {low} and {high} characters")

    for name in descriptor.date_fields:
        if name not in fields or fields[name] is None:
            continue
        try:
            parsed = parse_date(fields[name])
        except ValueError:
            errors.append(f"{name} is not a valid date")
            continue
        years = descriptor.date_windows.get(name)
        if parsed is not None and years is not None:
            if not today <= parsed.date() <= _years_ahead(today, years):
                errors.append(f"{name} must be between today and {years} year(s) from now")

    for name in descriptor.numeric_fields:
        if fields.get(name) is None:
            continue
        try:
            coerce_number(fields[name])
        except ValueError:
            errors.append(f"{name} must be a number")

    status = fields.get("status")
    if status is not None and status not in descriptor.statuses:
        errors.append(f"status must be one of: {', '.join(descriptor.statuses)}")

    return errors


def validate_fields(descriptor: ResourceTypeDescriptor, fields: Dict[str, Any], today: Optional[date] = None):
    errors = field_errors(descriptor, fields, today)
    if errors:
        raise ValidationFailed(errors)


def normalize(descriptor: ResourceTypeDescriptor, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Store-facing copy of already validated fields. Applied identically on
    create and on update.
    """
    doc = dict(fields)
    doc.pop("_id", None)

    if "email" in doc:
        doc["email"] = canonical_email(doc["email"])
    for name in descriptor.boolean_fields:
        if name in doc:
            doc[name] = coerce_bool(doc[name])
    for name in descriptor.numeric_fields:
        if doc.get(name) is not None:
            doc[name] = coerce_number(doc[name])
    for name in descriptor.date_fields:
        if doc.get(name) is not None:
            doc[name] = parse_date(doc[name])
    if descriptor.access_field and doc.get("accessPreference"):
        doc[descriptor.access_field] = map_access_preference(doc["accessPreference"])
    if descriptor.referral_bearing and "referralCode" in doc:
        doc["referralCode"] = canonical_code(doc["referralCode"])
    return doc


def apply_aliases(descriptor: ResourceTypeDescriptor, doc: Dict[str, Any]) -> Dict[str, Any]:
    """Rename submitted fields to their stored names on final records"""
    for submitted, stored in descriptor.field_aliases.items():
        if submitted in doc:
            doc[stored] = doc.pop(submitted)
    return doc
