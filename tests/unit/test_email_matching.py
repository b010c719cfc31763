from __future__ import annotations

import pytest

from jobbot.core.email_monitor import (
    company_matches_email,
    format_notification,
    match_email_to_application,
    parse_email_event,
    response_type_to_status,
    sender_domain_fragment,
)
from jobbot.db.models import Application, Job
from jobbot.types import InboundEmail


def _email(sender: str, subject: str = "Your application", body: str = "") -> InboundEmail:
    return InboundEmail(sender=sender, subject=subject, body=body)


def _candidate(app_id: str, company: str, status: str = "submitted") -> tuple[Application, Job]:
    job = Job(id=f"job-{app_id}", company=company, title="Engineer", source="indeed", url="https://x")
    return Application(id=app_id, job_id=job.id, status=status), job


def test_sender_domain_fragment_handles_display_names() -> None:
    assert sender_domain_fragment("Acme Recruiting <jobs@acmecorp.com>") == "acmecorp"
    assert sender_domain_fragment("hr@mail.example.org") == "mail"
    assert sender_domain_fragment("no-at-sign") == ""


def test_company_word_in_sender_domain_matches() -> None:
    assert company_matches_email("Acme Corp", _email("recruiting@acmecorp.com"))


def test_company_word_in_subject_matches() -> None:
    assert company_matches_email("Globex Industries", _email("noreply@ats.io", subject="Update from Globex"))


def test_short_company_words_are_ignored() -> None:
    assert not company_matches_email("IBM", _email("jobs@ibm.com"))


def test_unrelated_email_does_not_match() -> None:
    assert not company_matches_email("Initech", _email("news@example.com", subject="Weekly digest"))


def test_first_candidate_wins_and_others_are_counted() -> None:
    candidates = [
        _candidate("a1", "Acme Corp"),
        _candidate("a2", "Umbrella"),
        _candidate("a3", "Acme Robotics", status="interview"),
    ]
    match = match_email_to_application(candidates, _email("jobs@acmecorp.com"))
    assert match is not None
    assert match.application_id == "a1"
    assert match.candidate_count == 2
    assert match.ambiguous


def test_no_candidate_matches() -> None:
    assert match_email_to_application([_candidate("a1", "Umbrella")], _email("jobs@acmecorp.com")) is None


@pytest.mark.parametrize(
    ("response_type", "current", "expected"),
    [
        ("offer", "submitted", "offer"),
        ("offer", "interview", "offer"),
        ("interview", "submitted", "interview"),
        ("interview", "interview", None),
        ("interview", "offer", None),
        ("rejection", "interview", "rejected"),
        ("generic", "submitted", "viewed"),
        ("generic", "interview", None),
    ],
)
def test_response_type_to_status(response_type: str, current: str, expected: str | None) -> None:
    assert response_type_to_status(response_type, current) == expected


def test_parse_email_event_accepts_hook_payload() -> None:
    email = parse_email_event({"from": "a@b.com", "subject": "Hi", "body": None, "threadId": "t-1"})
    assert email is not None
    assert email.body == ""
    assert email.thread_id == "t-1"


@pytest.mark.parametrize("event", [None, "text", {"from": "a@b.com"}, {"from": 1, "subject": "x"}])
def test_parse_email_event_rejects_malformed_payloads(event: object) -> None:
    assert parse_email_event(event) is None


def test_format_notification_falls_back_without_job() -> None:
    text = format_notification("generic", None, _email("a@b.com", subject="Hello"))
    assert "Unknown Company" in text
    assert "Subject: Hello" in text
