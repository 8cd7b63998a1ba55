"""Pure, idempotent cleanup of extracted job and resume records.

Usage:
    from jobingest.normalize import normalize

    clean = normalize(extracted)   # ExtractedJobData or ExtractedResumeData
"""

from typing import overload

from jobingest.core.schemas import ExtractedJobData
from jobingest.normalize.job import normalize_job
from jobingest.normalize.resume import normalize_resume
from jobingest.resume.schema import ExtractedResumeData

__all__ = ["normalize", "normalize_job", "normalize_resume"]


@overload
def normalize(data: ExtractedJobData) -> ExtractedJobData: ...
@overload
def normalize(data: ExtractedResumeData) -> ExtractedResumeData: ...


def normalize(data: ExtractedJobData | ExtractedResumeData) -> ExtractedJobData | ExtractedResumeData:
    """Dispatch to the job or resume normalizer.

    Raises:
        TypeError: If ``data`` is neither record type.
    """
    if isinstance(data, ExtractedJobData):
        return normalize_job(data)
    if isinstance(data, ExtractedResumeData):
        return normalize_resume(data)
    msg = f"Cannot normalize {type(data).__name__}; expected ExtractedJobData or ExtractedResumeData"
    raise TypeError(msg)
