"""Resume data models as returned by AI extraction and stored after normalization.

Every field is optional: the AI may omit anything. List entries carry an
``id`` that normalization fills in when missing.
"""

from jobingest.core.schemas import CamelModel


class ContactInfo(CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    linked_in: str | None = None
    github: str | None = None
    portfolio: str | None = None


class SummaryInfo(CamelModel):
    headline: str | None = None
    summary: str | None = None


class WorkExperience(CamelModel):
    id: str | None = None
    company: str | None = None
    title: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    current: bool | None = None
    highlights: list[str] | None = None


class Education(CamelModel):
    id: str | None = None
    institution: str | None = None
    degree: str | None = None
    field: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    current: bool | None = None
    gpa: str | None = None
    honors: str | None = None
    coursework: list[str] | None = None


class SkillCategory(CamelModel):
    id: str | None = None
    name: str | None = None
    skills: list[str] | None = None


class SkillsData(CamelModel):
    categories: list[SkillCategory] | None = None


class Project(CamelModel):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    url: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    current: bool | None = None
    technologies: list[str] | None = None
    highlights: list[str] | None = None


class Certification(CamelModel):
    id: str | None = None
    name: str | None = None
    issuer: str | None = None
    issue_date: str | None = None
    expiration_date: str | None = None
    credential_id: str | None = None
    credential_url: str | None = None
    no_expiration: bool | None = None


class LanguageEntry(CamelModel):
    id: str | None = None
    language: str | None = None
    proficiency: str | None = None


class LanguagesData(CamelModel):
    entries: list[LanguageEntry] | None = None


class VolunteerExperience(CamelModel):
    id: str | None = None
    organization: str | None = None
    role: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    current: bool | None = None
    highlights: list[str] | None = None


class Award(CamelModel):
    id: str | None = None
    title: str | None = None
    issuer: str | None = None
    date: str | None = None
    description: str | None = None


class CustomSection(CamelModel):
    id: str | None = None
    title: str | None = None
    content: str | None = None
    items: list[str] | None = None


class ExtractedResumeData(CamelModel):
    """Canonical resume record."""

    contact: ContactInfo | None = None
    summary: SummaryInfo | None = None
    experience: list[WorkExperience] | None = None
    education: list[Education] | None = None
    skills: SkillsData | None = None
    projects: list[Project] | None = None
    certifications: list[Certification] | None = None
    languages: LanguagesData | None = None
    volunteer: list[VolunteerExperience] | None = None
    awards: list[Award] | None = None
    custom_sections: list[CustomSection] | None = None
