from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from email.utils import parseaddr
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from jobbot.config import Settings, get_settings
from jobbot.core.classifier import KeywordClassifier, ResponseClassifier, email_text
from jobbot.core.notifications import LogNotifier, Notifier, deliver
from jobbot.db.base import utcnow
from jobbot.db.models import Application, Job
from jobbot.db.repositories import Repository
from jobbot.db.session import Database
from jobbot.types import EMAIL_RESPONSE_NOTE_PREFIX, InboundEmail, ResponseType

logger = logging.getLogger(__name__)

CANDIDATE_STATUSES: tuple[str, ...] = ("submitted", "interview")
MIN_COMPANY_WORD_LENGTH = 4


@dataclass(slots=True)
class ApplicationMatch:
    application_id: str
    job_id: str
    current_status: str
    candidate_count: int = 1

    @property
    def ambiguous(self) -> bool:
        return self.candidate_count > 1


@dataclass(slots=True)
class EmailProcessingResult:
    matched: bool
    application_id: str | None = None
    response_type: ResponseType | None = None
    old_status: str | None = None
    new_status: str | None = None
    thread_id: str | None = None
    ambiguous: bool = False
    notified: bool = False

    @property
    def transitioned(self) -> bool:
        return self.new_status is not None


def sender_domain_fragment(sender: str) -> str:
    """Return the part of the sender's domain before the first dot."""
    address = parseaddr(sender)[1] or sender
    if "@" not in address:
        return ""
    return address.lower().split("@", 1)[1].split(".", 1)[0]


def company_matches_email(company: str, email: InboundEmail) -> bool:
    sender = email.sender.lower()
    subject = email.subject.lower()
    domain = sender_domain_fragment(email.sender)
    for word in company.lower().split():
        if len(word) < MIN_COMPANY_WORD_LENGTH:
            continue
        if word in domain or word in sender or word in subject:
            return True
    return False


def match_email_to_application(
    candidates: Iterable[tuple[Application, Job]],
    email: InboundEmail,
) -> ApplicationMatch | None:
    """First matching candidate wins; the result also counts every other match."""
    match: ApplicationMatch | None = None
    for application, job in candidates:
        if not company_matches_email(job.company, email):
            continue
        if match is None:
            match = ApplicationMatch(
                application_id=application.id,
                job_id=application.job_id,
                current_status=application.status,
            )
        else:
            match.candidate_count += 1
    return match


def response_type_to_status(response_type: ResponseType, current_status: str) -> str | None:
    if response_type == "offer":
        return "offer"
    if response_type == "interview":
        if current_status not in {"interview", "offer"}:
            return "interview"
        return None
    if response_type == "rejection":
        return "rejected"
    if response_type == "generic" and current_status == "submitted":
        return "viewed"
    return None


def format_notification(response_type: ResponseType, job: Job | None, email: InboundEmail) -> str:
    company = job.company if job else "Unknown Company"
    title = job.title if job else "Unknown Position"

    if response_type == "offer":
        return f"Great news! You received a job offer from {company} for {title}!\n\nSubject: {email.subject}"
    if response_type == "interview":
        return (
            f"Interview request from {company} for {title}!\n\nSubject: {email.subject}\n\n"
            "Check your email for scheduling details."
        )
    if response_type == "rejection":
        return (
            f"Response from {company} regarding {title}.\n\nSubject: {email.subject}\n\n"
            "This appears to be a rejection. Keep going!"
        )
    return f"New email from {company} regarding your {title} application.\n\nSubject: {email.subject}"


def parse_email_event(event: Any) -> InboundEmail | None:
    if isinstance(event, InboundEmail):
        return event
    if not isinstance(event, Mapping):
        return None
    if not isinstance(event.get("from"), str) or not isinstance(event.get("subject"), str):
        return None
    try:
        return InboundEmail.model_validate(dict(event))
    except PydanticValidationError:
        return None


class EmailMonitor:
    """Correlates inbound email to open applications and drives their status."""

    def __init__(
        self,
        database: Database,
        *,
        settings: Settings | None = None,
        classifier: ResponseClassifier | None = None,
        notifier: Notifier | None = None,
    ):
        self.database = database
        self.settings = settings or get_settings()
        self.classifier = classifier or KeywordClassifier()
        self.notifier = notifier or LogNotifier()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        logger.info("Email monitor started")

    def stop(self) -> None:
        self._running = False
        logger.info("Email monitor stopped")

    def handle_event(self, event: Any) -> EmailProcessingResult | None:
        """Hook entry point. Never raises; one bad email must not block the next."""
        if not self._running:
            return None
        email = parse_email_event(event)
        if email is None:
            return None
        try:
            return self.process_email(email)
        except Exception:
            logger.exception("Error processing email from %s", email.sender)
            return None

    def process_email(self, email: InboundEmail) -> EmailProcessingResult:
        with self.database.write_lock, self.database.repository() as repo:
            match = self._match(repo, email)
            if match is None:
                logger.info("Email from %s did not match any applications", email.sender)
                return EmailProcessingResult(matched=False)
            if match.ambiguous:
                logger.warning(
                    "Email from %s matched %d open applications; using %s",
                    email.sender,
                    match.candidate_count,
                    match.application_id,
                )

            response_type = self.classifier.classify(email_text(email.subject, email.body))
            logger.info(
                "Classified email as %s for application %s", response_type, match.application_id
            )

            result = EmailProcessingResult(
                matched=True,
                application_id=match.application_id,
                response_type=response_type,
                old_status=match.current_status,
                ambiguous=match.ambiguous,
            )

            new_status = response_type_to_status(response_type, match.current_status)
            if new_status and new_status != match.current_status:
                repo.update_application_status(
                    match.application_id,
                    new_status,
                    notes=f"{EMAIL_RESPONSE_NOTE_PREFIX} {response_type}",
                )
                result.new_status = new_status

            result.thread_id = self._upsert_thread(repo, match, email, response_type)

            if self.settings.notify_email_responses and self.settings.notify_channel:
                job = repo.get_job(match.job_id)
                text = format_notification(response_type, job, email)
                result.notified = deliver(self.notifier, self.settings.notify_channel, text)

        return result

    def _match(self, repo: Repository, email: InboundEmail) -> ApplicationMatch | None:
        candidates: list[tuple[Application, Job]] = []
        for status in CANDIDATE_STATUSES:
            for application in repo.list_applications({"status": status}, limit=None):
                job = repo.get_job(application.job_id)
                if job is None:
                    continue
                candidates.append((application, job))
        return match_email_to_application(candidates, email)

    def _upsert_thread(
        self,
        repo: Repository,
        match: ApplicationMatch,
        email: InboundEmail,
        response_type: ResponseType,
    ) -> str:
        existing = repo.get_email_thread_by_external_id(email.thread_id) if email.thread_id else None
        if existing:
            thread = repo.update_email_thread(
                existing.id,
                message_count=existing.message_count + 1,
                last_message_at=utcnow(),
                status="awaiting_response" if response_type == "interview" else "active",
            )
            return thread.id if thread else existing.id

        thread = repo.create_email_thread(
            application_id=match.application_id,
            external_thread_id=email.thread_id,
            subject=email.subject,
            from_email=email.sender,
        )
        return thread.id
