"""Resume normalization: trim, canonicalize dates/URLs, derive flags, assign ids.

Pure and idempotent: ``normalize_resume(normalize_resume(x)) == normalize_resume(x)``
(generated ids aside, which are only created where none exist).
"""

import uuid
from collections.abc import Callable, Iterable
from typing import TypeVar

from jobingest.normalize.text import (
    BLANK,
    clean_text,
    dedupe_preserving_order,
    is_ongoing,
    normalize_date,
    normalize_email,
    normalize_proficiency,
    normalize_string_list,
    normalize_url,
)
from jobingest.resume.schema import (
    Award,
    Certification,
    ContactInfo,
    CustomSection,
    Education,
    ExtractedResumeData,
    LanguageEntry,
    LanguagesData,
    Project,
    SkillCategory,
    SkillsData,
    SummaryInfo,
    VolunteerExperience,
    WorkExperience,
)

T = TypeVar("T")

NO_EXPIRATION_MARKERS = frozenset({"none", "no expiration", "n/a"})


def ensure_id(value: str | None) -> str:
    """Keep a non-blank id, otherwise generate a new uuid4."""
    if value and value.strip():
        return value
    return str(uuid.uuid4())


def end_date_and_current(end_date: str | None, current: bool | None) -> tuple[str | None, bool]:
    """Resolve (normalized end date, current flag) for a dated entry.

    "present"/"current" means ongoing: the end date becomes BLANK, not None.
    An entry already normalized that way (BLANK end date, current set) stays
    ongoing.
    """
    if is_ongoing(end_date):
        return BLANK, True
    if current and end_date is not None and not end_date.strip():
        return BLANK, True
    return normalize_date(end_date), False


def _normalize_entries(
    entries: list[T] | None,
    normalize_entry: Callable[[T], T],
    keep: Callable[[T], bool],
) -> list[T] | None:
    if entries is None:
        return None
    normalized = (normalize_entry(entry) for entry in entries)
    return [entry for entry in normalized if keep(entry)]


def normalize_skills(skills: Iterable[str] | None) -> list[str] | None:
    cleaned = normalize_string_list(skills)
    return dedupe_preserving_order(cleaned) if cleaned else None


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def normalize_contact(contact: ContactInfo) -> ContactInfo:
    return contact.model_copy(
        update={
            "name": clean_text(contact.name),
            "email": normalize_email(contact.email),
            "phone": clean_text(contact.phone),
            "location": clean_text(contact.location),
            "linked_in": normalize_url(contact.linked_in),
            "github": normalize_url(contact.github),
            "portfolio": normalize_url(contact.portfolio),
        }
    )


def normalize_summary(summary: SummaryInfo) -> SummaryInfo:
    return summary.model_copy(
        update={
            "headline": clean_text(summary.headline),
            "summary": clean_text(summary.summary),
        }
    )


def normalize_experience(exp: WorkExperience) -> WorkExperience:
    end_date, current = end_date_and_current(exp.end_date, exp.current)
    return exp.model_copy(
        update={
            "id": ensure_id(exp.id),
            "company": clean_text(exp.company),
            "title": clean_text(exp.title),
            "location": clean_text(exp.location),
            "start_date": normalize_date(exp.start_date),
            "end_date": end_date,
            "current": current,
            "highlights": normalize_string_list(exp.highlights),
        }
    )


def normalize_education(edu: Education) -> Education:
    end_date, current = end_date_and_current(edu.end_date, edu.current)
    return edu.model_copy(
        update={
            "id": ensure_id(edu.id),
            "institution": clean_text(edu.institution),
            "degree": clean_text(edu.degree),
            "field": clean_text(edu.field),
            "location": clean_text(edu.location),
            "start_date": normalize_date(edu.start_date),
            "end_date": end_date,
            "current": current,
            "gpa": clean_text(edu.gpa),
            "honors": clean_text(edu.honors),
            "coursework": normalize_string_list(edu.coursework),
        }
    )


def normalize_skill_category(category: SkillCategory) -> SkillCategory:
    return category.model_copy(
        update={
            "id": ensure_id(category.id),
            "name": clean_text(category.name),
            "skills": normalize_skills(category.skills),
        }
    )


def normalize_skills_data(skills: SkillsData) -> SkillsData:
    return skills.model_copy(
        update={
            "categories": _normalize_entries(
                skills.categories,
                normalize_skill_category,
                lambda c: bool(c.name or c.skills),
            )
        }
    )


def normalize_project(project: Project) -> Project:
    end_date, current = end_date_and_current(project.end_date, project.current)
    return project.model_copy(
        update={
            "id": ensure_id(project.id),
            "name": clean_text(project.name),
            "description": clean_text(project.description),
            "url": normalize_url(project.url),
            "start_date": normalize_date(project.start_date),
            "end_date": end_date,
            "current": current,
            "technologies": normalize_string_list(project.technologies),
            "highlights": normalize_string_list(project.highlights),
        }
    )


def normalize_certification(cert: Certification) -> Certification:
    expiration = clean_text(cert.expiration_date)
    no_expiration = bool(cert.no_expiration) or (
        expiration is not None and expiration.lower() in NO_EXPIRATION_MARKERS
    )
    return cert.model_copy(
        update={
            "id": ensure_id(cert.id),
            "name": clean_text(cert.name),
            "issuer": clean_text(cert.issuer),
            "issue_date": normalize_date(cert.issue_date),
            "expiration_date": BLANK if no_expiration else normalize_date(expiration),
            "credential_id": clean_text(cert.credential_id),
            "credential_url": normalize_url(cert.credential_url),
            "no_expiration": no_expiration,
        }
    )


def normalize_language(entry: LanguageEntry) -> LanguageEntry:
    return entry.model_copy(
        update={
            "id": ensure_id(entry.id),
            "language": clean_text(entry.language),
            "proficiency": normalize_proficiency(entry.proficiency),
        }
    )


def normalize_languages_data(languages: LanguagesData) -> LanguagesData:
    return languages.model_copy(
        update={
            "entries": _normalize_entries(
                languages.entries, normalize_language, lambda e: bool(e.language)
            )
        }
    )


def normalize_volunteer(vol: VolunteerExperience) -> VolunteerExperience:
    end_date, current = end_date_and_current(vol.end_date, vol.current)
    return vol.model_copy(
        update={
            "id": ensure_id(vol.id),
            "organization": clean_text(vol.organization),
            "role": clean_text(vol.role),
            "location": clean_text(vol.location),
            "start_date": normalize_date(vol.start_date),
            "end_date": end_date,
            "current": current,
            "highlights": normalize_string_list(vol.highlights),
        }
    )


def normalize_award(award: Award) -> Award:
    return award.model_copy(
        update={
            "id": ensure_id(award.id),
            "title": clean_text(award.title),
            "issuer": clean_text(award.issuer),
            "date": normalize_date(award.date),
            "description": clean_text(award.description),
        }
    )


def normalize_custom_section(section: CustomSection) -> CustomSection:
    return section.model_copy(
        update={
            "id": ensure_id(section.id),
            "title": clean_text(section.title),
            "content": clean_text(section.content),
            "items": normalize_string_list(section.items),
        }
    )


def normalize_resume(data: ExtractedResumeData) -> ExtractedResumeData:
    """Normalize every section; entries without identifying content are dropped."""
    return data.model_copy(
        update={
            "contact": normalize_contact(data.contact) if data.contact is not None else None,
            "summary": normalize_summary(data.summary) if data.summary is not None else None,
            "experience": _normalize_entries(
                data.experience, normalize_experience, lambda e: bool(e.company or e.title)
            ),
            "education": _normalize_entries(
                data.education, normalize_education, lambda e: bool(e.institution or e.degree)
            ),
            "skills": normalize_skills_data(data.skills) if data.skills is not None else None,
            "projects": _normalize_entries(data.projects, normalize_project, lambda p: bool(p.name)),
            "certifications": _normalize_entries(
                data.certifications, normalize_certification, lambda c: bool(c.name)
            ),
            "languages": normalize_languages_data(data.languages) if data.languages is not None else None,
            "volunteer": _normalize_entries(
                data.volunteer, normalize_volunteer, lambda v: bool(v.organization or v.role)
            ),
            "awards": _normalize_entries(data.awards, normalize_award, lambda a: bool(a.title)),
            "custom_sections": _normalize_entries(
                data.custom_sections,
                normalize_custom_section,
                lambda s: bool(s.title and (s.content or s.items)),
            ),
        }
    )
