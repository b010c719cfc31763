from __future__ import annotations

import logging
import re
import shutil
import uuid
from pathlib import Path

from jobbot.config import Settings, get_settings
from jobbot.db.models import Resume
from jobbot.db.repositories import Repository
from jobbot.errors import StorageError, ValidationError
from jobbot.types import ParsedResumeData

logger = logging.getLogger(__name__)

RESUME_EXTENSIONS = {".pdf": "pdf", ".docx": "docx", ".txt": "txt"}

_EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE_PATTERN = re.compile(r"\+?\d?[\s.-]?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}")


def resume_file_type(path: Path) -> str:
    file_type = RESUME_EXTENSIONS.get(path.suffix.lower())
    if file_type is None:
        raise ValidationError(f"Invalid file type: {path.suffix or '(none)'}. Supported types: PDF, DOCX, TXT")
    return file_type


def _extract_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_resume(path: Path, file_type: str) -> ParsedResumeData:
    """Best-effort contact extraction.

    Only plain text is read; PDF and DOCX need an extraction backend and come
    back empty.
    """
    if file_type != "txt":
        return ParsedResumeData()

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Could not read resume %s: %s", path, exc)
        return ParsedResumeData()

    lines = _extract_lines(text)
    email = _EMAIL_PATTERN.search(text)
    phone = _PHONE_PATTERN.search(text)
    full_name = None
    for line in lines:
        if _EMAIL_PATTERN.search(line) or _PHONE_PATTERN.search(line):
            continue
        full_name = line
        break

    return ParsedResumeData(
        full_name=full_name,
        email=email.group(0) if email else None,
        phone=phone.group(0).strip() if phone else None,
    )


def import_resume(
    repo: Repository,
    source_path: str | Path,
    *,
    name: str | None = None,
    settings: Settings | None = None,
) -> Resume:
    """Copy a resume into the managed directory and register it.

    The first resume on record becomes the default.
    """
    settings = settings or get_settings()
    source = Path(source_path).expanduser()
    if not source.is_file():
        raise ValidationError(f"File not found: {source}")
    file_type = resume_file_type(source)

    settings.resume_dir.mkdir(parents=True, exist_ok=True)
    destination = settings.resume_dir / f"{uuid.uuid4()}{source.suffix.lower()}"
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise StorageError(f"Failed to copy resume file: {exc}") from exc

    is_default = not repo.list_resumes()
    resume = repo.create_resume(
        name=name or source.stem or "My Resume",
        file_path=str(destination),
        file_type=file_type,
        parsed_data=parse_resume(destination, file_type),
        is_default=is_default,
    )
    logger.info("Imported resume %s as %s (default=%s)", source, resume.id, is_default)
    return resume
