"""Resume document type detection and text extraction.

PDF uses pymupdf and DOCX uses python-docx; both are optional dependencies
(``pip install 'jobingest[resume]'``) imported only when needed.
"""

import io
import logging
from enum import Enum
from pathlib import PurePath

from jobingest.core.errors import InputValidationError

logger = logging.getLogger(__name__)

_PDF_MAGIC = b"%PDF"
_ZIP_MAGIC = b"PK\x03\x04"
_TEXT_EXTENSIONS = frozenset({".txt", ".text", ".md"})


class DocumentType(str, Enum):
    """Known resume formats; UNKNOWN is the explicit fallback."""

    PDF = "application/pdf"
    DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    TEXT = "text/plain"
    UNKNOWN = "application/octet-stream"

    @property
    def label(self) -> str:
        return {
            DocumentType.PDF: "PDF",
            DocumentType.DOCX: "DOCX",
            DocumentType.TEXT: "Plain Text",
            DocumentType.UNKNOWN: "Unknown",
        }[self]


def detect_document_type(
    data: bytes,
    file_name: str,
    claimed_mime_type: str | None = None,
) -> DocumentType:
    """Detect the format from magic bytes, then extension, then the claimed MIME type.

    A ZIP archive only counts as DOCX when the name or claimed type says so.
    """
    extension = PurePath(file_name).suffix.lower()
    claimed = (claimed_mime_type or "").split(";")[0].strip().lower()

    if data.startswith(_PDF_MAGIC):
        return DocumentType.PDF
    if data.startswith(_ZIP_MAGIC):
        if extension == ".docx" or claimed == DocumentType.DOCX.value:
            return DocumentType.DOCX
        return DocumentType.UNKNOWN
    if extension in _TEXT_EXTENSIONS or claimed.startswith("text/"):
        return DocumentType.TEXT
    return DocumentType.UNKNOWN


def _pdf_text(data: bytes) -> str:
    try:
        import pymupdf
    except ImportError:
        msg = (
            "pymupdf is required for PDF extraction. "
            "Install with: pip install 'jobingest[resume]'"
        )
        raise ImportError(msg) from None

    doc = pymupdf.open(stream=data, filetype="pdf")
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


def _docx_text(data: bytes) -> str:
    try:
        from docx import Document
    except ImportError:
        msg = (
            "python-docx is required for DOCX extraction. "
            "Install with: pip install 'jobingest[resume]'"
        )
        raise ImportError(msg) from None

    doc = Document(io.BytesIO(data))
    return "\n".join(para.text for para in doc.paragraphs)


def extract_text(data: bytes, doc_type: DocumentType) -> str:
    """Plain text of a document, stripped.

    Raises:
        InputValidationError: For UNKNOWN documents.
        ImportError: If the optional extractor library is not installed.
    """
    if doc_type is DocumentType.PDF:
        text = _pdf_text(data)
    elif doc_type is DocumentType.DOCX:
        text = _docx_text(data)
    elif doc_type is DocumentType.TEXT:
        text = data.decode("utf-8", errors="replace")
    else:
        msg = "Unsupported document type. Accepted types: PDF, DOCX, TXT"
        raise InputValidationError(msg)
    logger.debug("Extracted %d characters from %s document", len(text), doc_type.label)
    return text.strip()
