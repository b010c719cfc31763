from __future__ import annotations

import logging
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field

from jobbot.config import Settings, get_settings
from jobbot.core.job_sources import JobSourceAdapter, get_adapter
from jobbot.core.notifications import LogNotifier, Notifier, deliver
from jobbot.db.session import Database
from jobbot.errors import ValidationError
from jobbot.types import JOB_SOURCES, JobPreferences, JobSearchParams, RawJobListing

logger = logging.getLogger(__name__)

_INTERVAL_PATTERN = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def parse_interval(interval: str) -> int:
    """Seconds in ``"30s"``, ``"15m"``, ``"6h"`` or ``"1d"``; 0 for anything else."""
    match = _INTERVAL_PATTERN.match(interval.strip())
    if not match:
        return 0
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def passes_filters(listing: RawJobListing, preferences: JobPreferences) -> bool:
    company = listing.company.lower()
    title = listing.title.lower()
    location = (listing.location or "").lower()
    description = (listing.description or "").lower()

    if any(excluded.lower() in company for excluded in preferences.exclude_companies):
        return False
    if preferences.remote_only and "remote" not in location:
        return False
    for keyword in preferences.exclude_keywords:
        keyword = keyword.lower()
        if keyword in title or keyword in description:
            return False
    return True


def format_scan_summary(new_jobs: int) -> str:
    if new_jobs == 1:
        return "Found 1 new job matching your criteria! Check the JobBot dashboard to review."
    return f"Found {new_jobs} new jobs matching your criteria! Check the JobBot dashboard to review."


@dataclass(slots=True)
class ScanSummary:
    new_jobs: int = 0
    searches: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: bool = False
    notified: bool = False


class JobScanner:
    """Periodically searches the configured boards and stores unseen postings."""

    def __init__(
        self,
        database: Database,
        *,
        settings: Settings | None = None,
        adapters: Mapping[str, JobSourceAdapter] | None = None,
        notifier: Notifier | None = None,
    ):
        self.database = database
        self.settings = settings or get_settings()
        self.adapters = dict(adapters or {})
        self.notifier = notifier or LogNotifier()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def adapter_for(self, source: str) -> JobSourceAdapter:
        return self.adapters.get(source) or get_adapter(source)

    def start(self) -> bool:
        interval = parse_interval(self.settings.scan_interval)
        if interval <= 0:
            logger.info("Job scanner disabled (interval=%r)", self.settings.scan_interval)
            return False
        if self.is_running:
            return True

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_forever,
            args=(interval,),
            name="jobbot-scanner",
            daemon=True,
        )
        self._thread.start()
        logger.info("Job scanner scheduled every %s (%ss)", self.settings.scan_interval, interval)
        return True

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Job scanner still finishing its current search")
                return
            self._thread = None
        logger.info("Job scanner stopped")

    def _run_forever(self, interval: int) -> None:
        if self._stop_event.wait(self.settings.scan_initial_delay_sec):
            return
        while not self._stop_event.is_set():
            try:
                self.run_scan()
            except Exception:
                logger.exception("Periodic scan failed")
            if self._stop_event.wait(interval):
                return

    def run_scan(self) -> ScanSummary:
        preferences = self.settings.preferences
        summary = ScanSummary()
        if not preferences.titles:
            logger.info("No job titles configured, skipping scan")
            summary.skipped = True
            return summary

        logger.info("Starting job scan")
        locations: list[str | None] = list(preferences.locations) or [None]
        for source in self.settings.job_board_list:
            for title in preferences.titles:
                for location in locations:
                    if self._stop_event.is_set():
                        logger.info("Scan interrupted; %d new jobs so far", summary.new_jobs)
                        return summary
                    summary.searches += 1
                    try:
                        found = self.scan_job_board(source, title, location, preferences=preferences)
                        summary.new_jobs += found
                        logger.info(
                            "Found %d new jobs for %r in %r on %s",
                            found,
                            title,
                            location or "any location",
                            source,
                        )
                    except Exception as exc:
                        logger.exception("Error scanning %s for %r", source, title)
                        summary.errors.append(f"{source}:{title}: {exc}")
                    self._stop_event.wait(self.settings.scan_request_delay_sec)

        logger.info("Scan complete. Found %d new jobs total", summary.new_jobs)
        if self.settings.notify_new_job_alerts and self.settings.notify_channel and summary.new_jobs > 0:
            summary.notified = deliver(
                self.notifier,
                self.settings.notify_channel,
                format_scan_summary(summary.new_jobs),
            )
        return summary

    def scan_job_board(
        self,
        source: str,
        query: str,
        location: str | None = None,
        *,
        preferences: JobPreferences | None = None,
    ) -> int:
        """Search one board and store postings not seen before. Returns the new-job count."""
        if source not in JOB_SOURCES:
            raise ValidationError(f"unknown job board {source!r}")
        preferences = preferences or self.settings.preferences
        params = JobSearchParams(
            query=query,
            location=location,
            remote=preferences.remote_only,
            salary_min=preferences.salary_min,
            salary_max=preferences.salary_max,
        )
        listings = self.adapter_for(source).search(params)

        new_jobs = 0
        with self.database.write_lock, self.database.repository() as repo:
            for listing in listings:
                try:
                    if repo.get_job_by_external_id(listing.external_id, source):
                        continue
                    if not passes_filters(listing, preferences):
                        continue
                    repo.create_job(
                        source=source,
                        external_id=listing.external_id,
                        company=listing.company,
                        title=listing.title,
                        location=listing.location,
                        salary_min=listing.salary_min,
                        salary_max=listing.salary_max,
                        salary_currency=listing.salary_currency,
                        description=listing.description,
                        requirements=listing.requirements,
                        tech_stack=listing.tech_stack,
                        url=listing.url,
                        posted_at=listing.posted_at,
                    )
                    new_jobs += 1
                except Exception:
                    logger.exception("Skipping listing %s from %s", listing.external_id, source)
        return new_jobs
