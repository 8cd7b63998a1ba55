"""Field-level cleanup helpers shared by the job and resume normalizers.

All helpers are total: unparseable input becomes None, never an exception.
"""

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

# Explicit "deliberately blank" marker, distinct from None ("not extracted").
BLANK = ""

MONTHS: Mapping[str, str] = MappingProxyType(
    {
        "january": "01",
        "february": "02",
        "march": "03",
        "april": "04",
        "may": "05",
        "june": "06",
        "july": "07",
        "august": "08",
        "september": "09",
        "october": "10",
        "november": "11",
        "december": "12",
        "jan": "01",
        "feb": "02",
        "mar": "03",
        "apr": "04",
        "jun": "06",
        "jul": "07",
        "aug": "08",
        "sep": "09",
        "oct": "10",
        "nov": "11",
        "dec": "12",
    }
)

ONGOING_MARKERS = frozenset({"present", "current"})

PROFICIENCY_LEVELS: Mapping[str, str] = MappingProxyType(
    {
        "native": "native",
        "native speaker": "native",
        "mother tongue": "native",
        "fluent": "fluent",
        "professional": "fluent",
        "full professional": "fluent",
        "advanced": "advanced",
        "professional working": "advanced",
        "intermediate": "intermediate",
        "limited working": "intermediate",
        "beginner": "beginner",
        "elementary": "beginner",
        "basic": "beginner",
    }
)

_YEAR_MONTH = re.compile(r"^\d{4}-\d{2}$")
_YEAR = re.compile(r"^\d{4}$")


def clean_text(value: str | None) -> str | None:
    """Trim; blank becomes None."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_email(value: str | None) -> str | None:
    cleaned = clean_text(value)
    return cleaned.lower() if cleaned else None


def normalize_url(value: str | None) -> str | None:
    """Trim and prepend ``https://`` when no http(s) scheme is present."""
    cleaned = clean_text(value)
    if cleaned is None:
        return None
    if cleaned.startswith(("http://", "https://")):
        return cleaned
    return f"https://{cleaned}"


def normalize_string_list(values: Iterable[str] | None) -> list[str] | None:
    """Trim each item and drop blanks. An empty result is None."""
    if values is None:
        return None
    cleaned = [v.strip() for v in values if v and v.strip()]
    return cleaned or None


def dedupe_preserving_order(values: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates; the first occurrence (and its casing) wins."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        key = value.casefold()
        if key not in seen:
            seen.add(key)
            result.append(value)
    return result


def is_ongoing(value: str | None) -> bool:
    """True for "present" / "current" end dates, any case."""
    return value is not None and value.strip().lower() in ONGOING_MARKERS


def normalize_date(value: str | None) -> str | None:
    """Free-form date text to ``YYYY-MM``.

    Tried in order: already ``YYYY-MM``; bare year (gets ``-01``); "Month Year"
    or "Mon Year". Anything else, "present"/"current" included, gives None.
    """
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.lower() in ONGOING_MARKERS:
        return None
    if _YEAR_MONTH.match(trimmed):
        return trimmed
    if _YEAR.match(trimmed):
        return f"{trimmed}-01"

    parts = trimmed.split()
    if len(parts) < 2:
        return None
    month = MONTHS.get(parts[0].lower().rstrip(".,"))
    year = next((p for p in parts[1:] if _YEAR.match(p)), None)
    if month is None or year is None:
        return None
    return f"{year}-{month}"


def normalize_proficiency(value: str | None) -> str | None:
    """Map proficiency synonyms onto native/fluent/advanced/intermediate/beginner.

    Unrecognized text is returned trimmed but otherwise unchanged.
    """
    cleaned = clean_text(value)
    if cleaned is None:
        return None
    return PROFICIENCY_LEVELS.get(cleaned.lower(), cleaned)
