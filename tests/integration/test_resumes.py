from __future__ import annotations

from pathlib import Path

import pytest

from jobbot.core.resumes import import_resume, parse_resume
from jobbot.errors import ValidationError


def test_parse_txt_resume_extracts_contact_details(tmp_path: Path) -> None:
    path = tmp_path / "resume.txt"
    path.write_text(
        "\nJane Doe\njane.doe@example.com | (555) 123-4567\nSenior Engineer\n",
        encoding="utf-8",
    )
    parsed = parse_resume(path, "txt")
    assert parsed.full_name == "Jane Doe"
    assert parsed.email == "jane.doe@example.com"
    assert parsed.phone == "(555) 123-4567"


def test_parse_binary_resume_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "resume.pdf"
    path.write_bytes(b"%PDF-1.4")
    assert parse_resume(path, "pdf").model_dump(exclude_defaults=True) == {}


def test_first_import_becomes_default(repo, settings, tmp_path: Path) -> None:
    source = tmp_path / "Jane Doe CV.txt"
    source.write_text("Jane Doe\njane@example.com\n", encoding="utf-8")

    first = import_resume(repo, source, settings=settings)
    second = import_resume(repo, source, name="Tailored", settings=settings)

    assert first.name == "Jane Doe CV"
    assert first.is_default
    assert not second.is_default
    assert second.name == "Tailored"
    assert Path(first.file_path).parent == settings.resume_dir
    assert Path(first.file_path).suffix == ".txt"
    assert Path(first.file_path).read_text(encoding="utf-8").startswith("Jane Doe")
    assert first.parsed_data_json["email"] == "jane@example.com"


def test_import_rejects_unsupported_extension(repo, settings, tmp_path: Path) -> None:
    source = tmp_path / "resume.odt"
    source.write_text("x", encoding="utf-8")
    with pytest.raises(ValidationError):
        import_resume(repo, source, settings=settings)


def test_import_rejects_missing_file(repo, settings, tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        import_resume(repo, tmp_path / "nope.pdf", settings=settings)
