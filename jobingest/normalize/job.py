"""Job record normalization before storage."""

import re

from jobingest.core.schemas import ExtractedJobData
from jobingest.extraction.extractor import LIST_FIELDS, TEXT_FIELDS, UNKNOWN_TITLE
from jobingest.normalize.text import clean_text, normalize_string_list, normalize_url

_CURRENCY_CODE = re.compile(r"^[A-Za-z]{3}$")


def normalize_currency(value: str | None) -> str | None:
    cleaned = clean_text(value)
    if cleaned is not None and _CURRENCY_CODE.match(cleaned):
        return cleaned.upper()
    return cleaned


def normalize_job(data: ExtractedJobData) -> ExtractedJobData:
    """Trim strings, clean lists, canonicalize the application URL and currency."""
    values = data.model_dump(by_alias=True)
    update = {name: clean_text(values[name]) for name in TEXT_FIELDS}
    update.update({name: normalize_string_list(values[name]) for name in LIST_FIELDS})
    update["title"] = clean_text(data.title) or UNKNOWN_TITLE
    update["applicationUrl"] = normalize_url(data.application_url)
    update["salaryCurrency"] = normalize_currency(data.salary_currency)
    return ExtractedJobData.model_validate({**values, **update})
