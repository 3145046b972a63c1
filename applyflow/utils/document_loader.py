"""
Resume Document Loader

Turns an uploaded resume file into something the profile extractor can send
to the generative service:
- .pdf        -> raw bytes, media type application/pdf (the service reads PDFs natively)
- .docx       -> paragraph text via python-docx
- .txt / .md  -> UTF-8 text

Anything else raises UnsupportedInputError before any network call is made.
"""

import io
import zipfile
from pathlib import Path
from typing import Optional, Union

import docx
from docx.opc.exceptions import PackageNotFoundError
from pydantic import BaseModel, model_validator
from structlog.types import BindableLogger

from applyflow.utils.errors import UnsupportedInputError
from applyflow.utils.logger import get_logger

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)

MEDIA_TYPES = {
    ".pdf": PDF_MEDIA_TYPE,
    ".docx": DOCX_MEDIA_TYPE,
    ".txt": "text/plain",
    ".md": "text/markdown",
}


class ResumeDocument(BaseModel):
    """Loaded resume: extracted text, or raw bytes for binary formats."""

    file_name: str
    media_type: str
    text: Optional[str] = None
    data: Optional[bytes] = None

    @model_validator(mode="after")
    def check_payload(self) -> "ResumeDocument":
        if (self.text is None) == (self.data is None):
            raise ValueError("ResumeDocument needs exactly one of text or data")
        return self

    @property
    def is_binary(self) -> bool:
        return self.data is not None


def supported_extensions() -> list[str]:
    return sorted(MEDIA_TYPES)


def load_resume(
    path: Union[str, Path], correlation_id: Optional[str] = None
) -> ResumeDocument:
    """
    Load a resume from disk.

    Args:
        path: Resume file path
        correlation_id: Session correlation ID for logging

    Returns:
        ResumeDocument ready for profile extraction

    Raises:
        UnsupportedInputError: Unknown extension, unreadable file or empty text
    """
    path = Path(path)
    _media_type_for(path.name, _logger(correlation_id))

    try:
        data = path.read_bytes()
    except OSError as e:
        raise UnsupportedInputError(f"Could not read {path}: {e}") from e

    return load_resume_bytes(path.name, data, correlation_id=correlation_id)


def load_resume_bytes(
    file_name: str, data: bytes, correlation_id: Optional[str] = None
) -> ResumeDocument:
    """
    Load a resume from an in-memory upload.

    Args:
        file_name: Original file name (the extension selects the format)
        data: File contents
        correlation_id: Session correlation ID for logging

    Returns:
        ResumeDocument ready for profile extraction

    Raises:
        UnsupportedInputError: Unknown extension, corrupt document or empty text
    """
    logger = _logger(correlation_id)
    media_type = _media_type_for(file_name, logger)

    if media_type == PDF_MEDIA_TYPE:
        if not data:
            raise UnsupportedInputError(f"{file_name} is empty")
        logger.info("Resume loaded", file_name=file_name, format="pdf", size=len(data))
        return ResumeDocument(file_name=file_name, media_type=media_type, data=data)

    if media_type == DOCX_MEDIA_TYPE:
        text = _docx_text(file_name, data)
    else:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise UnsupportedInputError(f"{file_name} is not valid UTF-8 text") from e

    if not text.strip():
        raise UnsupportedInputError(f"No text found in {file_name}")

    logger.info(
        "Resume loaded",
        file_name=file_name,
        format=Path(file_name).suffix.lower().lstrip("."),
        text_length=len(text),
    )
    return ResumeDocument(file_name=file_name, media_type=media_type, text=text)


def _logger(correlation_id: Optional[str]) -> BindableLogger:
    return get_logger(
        correlation_id=correlation_id,
        phase="onboarding",
        component="document_loader",
    )


def _media_type_for(file_name: str, logger: BindableLogger) -> str:
    suffix = Path(file_name).suffix.lower()
    if suffix not in MEDIA_TYPES:
        logger.warning("Unsupported resume format", file_name=file_name)
        raise UnsupportedInputError(
            f"Unsupported file type '{suffix or file_name}'. "
            f"Upload one of: {', '.join(supported_extensions())}"
        )
    return MEDIA_TYPES[suffix]


def _docx_text(file_name: str, data: bytes) -> str:
    """Paragraph and table text of a Word document, skipping empty paragraphs."""
    try:
        document = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise UnsupportedInputError(f"{file_name} is not a readable Word document") from e

    lines = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines)
