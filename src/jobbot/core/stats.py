from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from jobbot.db.base import utcnow
from jobbot.db.repositories import Repository
from jobbot.errors import ValidationError
from jobbot.types import EMAIL_RESPONSE_NOTE_PREFIX, JobStats, TimelineEntry

DEFAULT_TIMELINE_DAYS = 30


def compute_stats(repo: Repository) -> JobStats:
    by_status = repo.count_jobs_by("status")
    by_source = repo.count_jobs_by("source")
    applications_by_status = repo.count_applications_by_status()

    return JobStats(
        total_jobs=sum(by_status.values()),
        new_jobs=by_status.get("new", 0),
        applied_jobs=by_status.get("applied", 0),
        pending_applications=applications_by_status.get("pending", 0),
        submitted_applications=repo.count_submitted_applications(),
        interviews_scheduled=applications_by_status.get("interview", 0),
        offers_received=applications_by_status.get("offer", 0),
        rejections=applications_by_status.get("rejected", 0),
        by_source=by_source,
        by_status=by_status,
        applications_by_status=applications_by_status,
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def day_key(value: datetime) -> str:
    return _as_utc(value).date().isoformat()


def bucket_by_day(values: Iterable[datetime]) -> Counter[str]:
    return Counter(day_key(value) for value in values)


def build_timeline(
    repo: Repository,
    days: int = DEFAULT_TIMELINE_DAYS,
    *,
    now: datetime | None = None,
) -> list[TimelineEntry]:
    """Per-day counts of discovered jobs, submitted applications and email responses.

    Each counter is grouped on its own and the groups are merged by date key;
    a day missing from one group reports 0 for that counter.
    """
    if days <= 0:
        raise ValidationError("days must be positive")

    cutoff = _as_utc(now or utcnow()) - timedelta(days=days)
    discovered = bucket_by_day(repo.list_job_discovery_times(cutoff))
    submitted = bucket_by_day(repo.list_submission_times(cutoff))
    responses = bucket_by_day(repo.list_history_times(cutoff, notes_prefix=EMAIL_RESPONSE_NOTE_PREFIX))

    timeline: dict[str, TimelineEntry] = {}
    for date_key in set(discovered) | set(submitted) | set(responses):
        timeline[date_key] = TimelineEntry(
            date=date_key,
            jobs_discovered=discovered.get(date_key, 0),
            applications_submitted=submitted.get(date_key, 0),
            responses_received=responses.get(date_key, 0),
        )
    return [timeline[key] for key in sorted(timeline)]


def format_stats(stats: JobStats) -> str:
    lines = [
        "## Job Search Statistics",
        "",
        "| Metric | Count |",
        "|--------|-------|",
        f"| Total Jobs Found | {stats.total_jobs} |",
        f"| New Jobs | {stats.new_jobs} |",
        f"| Applications Submitted | {stats.submitted_applications} |",
        f"| Pending Review | {stats.pending_applications} |",
        f"| Interviews | {stats.interviews_scheduled} |",
        f"| Offers | {stats.offers_received} |",
        f"| Rejections | {stats.rejections} |",
    ]
    if stats.submitted_applications > 0:
        lines.append("")
        lines.append(f"**Response Rate:** {stats.response_rate * 100:.1f}%")
    return "\n".join(lines)
