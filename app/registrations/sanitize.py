"""
Input adapter for submitted form payloads.

Browsers post select-box defaults ("Select Gender") and re-rendered controls
post the same key more than once. This module turns that into plain values
before anything reaches the engines.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

FormValue = Union[str, List[str], None]

SENTINEL_PLACEHOLDERS = (
    "Select Gender",
    "Select City",
    "Select Degree",
    "Select Year",
    "Select Course",
    "Select Duration",
    "Select Mode",
    "Select Time Slot",
    "Select Level",
    "Select Domain",
    "Select Type",
)

ACCESS_PREFERENCE_MAP = {
    "Full Access": "Full Access (One-time payment)",
    "Flexible Access": "Flexible Access (Installment / Due-based option)",
}

# Any other "Select <Something>" default a form control may post
PLACEHOLDER_PREFIX = re.compile(r"^\s*Select\s+[A-Z]")

DATE_DMY = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$")
DATE_YMD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def is_sentinel(value: str) -> bool:
    if PLACEHOLDER_PREFIX.match(value):
        return True
    return any(placeholder in value for placeholder in SENTINEL_PLACEHOLDERS)


def is_blank(value: Any) -> bool:
    """True for values that must never overwrite or satisfy anything"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == "" or is_sentinel(value)
    return False


def collapse(value: FormValue) -> Optional[Any]:
    """
    Reduce one submitted value to what should be stored.

    Lists (repeated form controls) collapse to their last non-blank entry.
    Blank strings and sentinel placeholders become None (absent).
    """
    if isinstance(value, (list, tuple)):
        kept = [item for item in value if not is_blank(item)]
        return collapse(kept[-1]) if kept else None
    if is_blank(value):
        return None
    if isinstance(value, str):
        return value.strip()
    return value


def clean_fields(raw: Dict[str, FormValue], drop: Iterable[str] = ()) -> Dict[str, Any]:
    """Collapse every field, dropping absent ones and any key listed in `drop`"""
    dropped = set(drop)
    cleaned = {}
    for key, value in raw.items():
        if key in dropped or key.startswith("_"):
            continue
        collapsed = collapse(value)
        if collapsed is not None:
            cleaned[key] = collapsed
    return cleaned


def canonical_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


def canonical_text(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def map_access_preference(value: Optional[str]) -> Optional[str]:
    """Translate the two-valued UI choice into the stored descriptive form"""
    if value is None:
        return None
    return ACCESS_PREFERENCE_MAP.get(value, value)


def coerce_bool(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def coerce_number(value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        raise ValueError("not a number")
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    if text == "":
        return 0
    number = float(text)
    return int(number) if number.is_integer() else number


def parse_date(value: Any) -> Optional[datetime]:
    """Accepts DD/MM/YYYY, YYYY-MM-DD or any ISO-8601 timestamp"""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    match = DATE_DMY.match(text)
    if match:
        d, m, y = map(int, match.groups())
        return datetime(y, m, d)
    match = DATE_YMD.match(text)
    if match:
        y, m, d = map(int, match.groups())
        return datetime(y, m, d)
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
