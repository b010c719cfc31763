from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from jobbot.core.stats import build_timeline, compute_stats, format_stats
from jobbot.errors import ValidationError
from jobbot.types import EMAIL_RESPONSE_NOTE_PREFIX, JobStats

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def test_empty_store_stats(repo) -> None:
    stats = compute_stats(repo)
    assert stats.total_jobs == 0
    assert stats.response_rate == 0.0
    assert build_timeline(repo, 30, now=NOW) == []


def test_stats_counts_jobs_and_applications(repo, make_job) -> None:
    jobs = [make_job(), make_job(source="linkedin"), make_job(source="linkedin")]
    repo.update_job_status(jobs[2].id, "applied")

    submitted = repo.create_application(job_id=jobs[0].id)
    repo.update_application_status(submitted.id, "submitted")
    interviewing = repo.create_application(job_id=jobs[1].id)
    repo.update_application_status(interviewing.id, "submitted")
    repo.update_application_status(interviewing.id, "interview")
    repo.create_application(job_id=jobs[2].id)

    stats = compute_stats(repo)
    assert stats.total_jobs == 3
    assert stats.new_jobs == 2
    assert stats.applied_jobs == 1
    assert stats.by_source == {"indeed": 1, "linkedin": 2}
    assert stats.pending_applications == 1
    assert stats.submitted_applications == 2
    assert stats.interviews_scheduled == 1
    assert stats.response_rate == pytest.approx(0.5)


def test_response_rate_counts_offers_and_rejections() -> None:
    stats = JobStats(submitted_applications=4, interviews_scheduled=1, offers_received=1, rejections=2)
    assert stats.response_rate == pytest.approx(1.0)
    assert "**Response Rate:** 100.0%" in format_stats(stats)


def test_format_stats_omits_rate_without_submissions() -> None:
    text = format_stats(JobStats(total_jobs=2, new_jobs=2))
    assert "| Total Jobs Found | 2 |" in text
    assert "Response Rate" not in text


def test_timeline_groups_by_day_and_merges(repo, make_job) -> None:
    old = make_job()
    recent = make_job()
    today = make_job()
    old.discovered_at = NOW - timedelta(days=40)
    recent.discovered_at = NOW - timedelta(days=2)
    today.discovered_at = NOW - timedelta(hours=1)

    application = repo.create_application(job_id=recent.id)
    repo.update_application_status(application.id, "submitted")
    repo.update_application_status(
        application.id,
        "interview",
        notes=f"{EMAIL_RESPONSE_NOTE_PREFIX} interview",
    )
    repo.update_application_status(application.id, "closed", notes="manual")
    refreshed = repo.get_application(application.id)
    refreshed.applied_at = NOW - timedelta(days=1)
    for record in repo.list_application_history(application.id):
        record.changed_at = NOW - timedelta(days=1)
    repo.session.commit()

    timeline = build_timeline(repo, 30, now=NOW)
    assert [entry.model_dump() for entry in timeline] == [
        {"date": "2026-03-08", "jobs_discovered": 1, "applications_submitted": 0, "responses_received": 0},
        {"date": "2026-03-09", "jobs_discovered": 0, "applications_submitted": 1, "responses_received": 1},
        {"date": "2026-03-10", "jobs_discovered": 1, "applications_submitted": 0, "responses_received": 0},
    ]


def test_timeline_rejects_non_positive_days(repo) -> None:
    with pytest.raises(ValidationError):
        build_timeline(repo, 0)
