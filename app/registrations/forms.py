"""
Reads a submitted payload (multipart, urlencoded or JSON) into clean fields
plus the optional uploaded file.
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile

from app.registrations.errors import InvalidRequest
from app.registrations.sanitize import clean_fields

FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def read_payload(
    request: Request,
    file_field: Optional[str] = None,
) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        raw = {}
        upload = None
        for key in form.keys():
            values = form.getlist(key)
            if key == file_field:
                files = [v for v in values if isinstance(v, UploadFile) and v.filename]
                upload = files[-1] if files else None
                continue
            text = [v for v in values if isinstance(v, str)]
            if not text:
                continue
            raw[key] = text if len(text) > 1 else text[0]
        return clean_fields(raw), upload

    body = await request.body()
    if not body:
        return {}, None
    try:
        payload = await request.json()
    except ValueError:
        raise InvalidRequest("Request body must be JSON or form data")
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be an object")
    return clean_fields(payload), None
