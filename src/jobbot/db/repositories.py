from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from contextlib import AbstractContextManager
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobbot.db.base import utcnow
from jobbot.db.models import (
    Application,
    ApplicationHistory,
    EmailThread,
    Job,
    Preference,
    Resume,
)
from jobbot.errors import StorageError, ValidationError
from jobbot.types import (
    APPLICATION_STATUSES,
    EMAIL_THREAD_STATUSES,
    JOB_SOURCES,
    JOB_STATUSES,
    RESUME_FILE_TYPES,
    ApplicationFilter,
    JobFilter,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100


def _require_choice(value: str, allowed: tuple[str, ...], label: str) -> str:
    if value not in allowed:
        raise ValidationError(f"{label} must be one of {list(allowed)}, got {value!r}")
    return value


def _require_text(value: str | None, label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    return value


def _parse_filters(model: type[BaseModel], filters: Mapping[str, Any] | None) -> Any:
    try:
        return model.model_validate(dict(filters or {}))
    except PydanticValidationError as exc:
        raise ValidationError(str(exc)) from exc


def _check_paging(limit: int | None, offset: int) -> None:
    if limit is not None and limit < 0:
        raise ValidationError("limit must be >= 0")
    if offset < 0:
        raise ValidationError("offset must be >= 0")


def _as_blob(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    return value


def _as_blob_list(values: Iterable[Any] | None) -> list[Any] | None:
    if values is None:
        return None
    return [_as_blob(item) for item in values]


def _remove_resume_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to remove resume file %s: %s", path, exc)


class Repository:
    """CRUD and query operations over jobs, applications, email threads and resumes.

    Lookups return ``None`` for missing rows. Mutations hold the write lock for
    their whole read-modify-commit sequence so each call is one atomic unit.
    """

    def __init__(self, session: Session, *, write_lock: AbstractContextManager[Any] | None = None):
        self.session = session
        self._write_lock = write_lock if write_lock is not None else threading.RLock()

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageError(f"store commit failed: {exc}") from exc

    # Jobs

    def create_job(
        self,
        *,
        source: str,
        company: str,
        title: str,
        url: str,
        external_id: str | None = None,
        location: str | None = None,
        salary_min: int | None = None,
        salary_max: int | None = None,
        salary_currency: str | None = None,
        description: str | None = None,
        requirements: list[str] | None = None,
        tech_stack: list[str] | None = None,
        posted_at: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Job:
        _require_choice(source, JOB_SOURCES, "job source")
        _require_text(company, "company")
        _require_text(title, "title")
        _require_text(url, "url")

        job = Job(
            external_id=external_id,
            source=source,
            company=company,
            title=title,
            location=location,
            salary_min=salary_min,
            salary_max=salary_max,
            salary_currency=salary_currency or "USD",
            description=description,
            requirements_json=list(requirements) if requirements is not None else None,
            tech_stack_json=list(tech_stack) if tech_stack is not None else None,
            url=url,
            posted_at=posted_at,
            discovered_at=utcnow(),
            status="new",
            metadata_json=metadata,
        )
        with self._write_lock:
            self.session.add(job)
            self._commit()
        self.session.refresh(job)
        return job

    def get_job(self, job_id: str) -> Job | None:
        return self.session.get(Job, job_id)

    def get_job_by_external_id(self, external_id: str, source: str) -> Job | None:
        statement = select(Job).where(Job.external_id == external_id, Job.source == source)
        return self.session.scalar(statement)

    def list_jobs(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        limit: int | None = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[Job]:
        criteria: JobFilter = _parse_filters(JobFilter, filters)
        _check_paging(limit, offset)

        statement = select(Job)
        if criteria.status:
            statement = statement.where(Job.status == criteria.status)
        if criteria.source:
            statement = statement.where(Job.source == criteria.source)
        if criteria.company:
            statement = statement.where(Job.company.ilike(f"%{criteria.company}%"))
        statement = statement.order_by(Job.discovered_at.desc()).offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement).all())

    def update_job_status(self, job_id: str, status: str) -> Job | None:
        _require_choice(status, JOB_STATUSES, "job status")
        with self._write_lock:
            job = self.session.get(Job, job_id)
            if job is None:
                return None
            job.status = status
            self._commit()
        self.session.refresh(job)
        return job

    def update_job(
        self,
        job_id: str,
        *,
        status: str | None = None,
        description: str | None = None,
        requirements: list[str] | None = None,
        tech_stack: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Job | None:
        if status is not None:
            _require_choice(status, JOB_STATUSES, "job status")

        with self._write_lock:
            job = self.session.get(Job, job_id)
            if job is None:
                return None
            if status is not None:
                job.status = status
            if description is not None:
                job.description = description
            if requirements is not None:
                job.requirements_json = list(requirements)
            if tech_stack is not None:
                job.tech_stack_json = list(tech_stack)
            if metadata is not None:
                job.metadata_json = metadata
            self._commit()
        self.session.refresh(job)
        return job

    # Applications

    def create_application(
        self,
        *,
        job_id: str,
        resume_id: str | None = None,
        cover_letter: str | None = None,
        answers: Iterable[Any] | None = None,
        notes: str | None = None,
    ) -> Application:
        _require_text(job_id, "job_id")
        now = utcnow()
        application = Application(
            job_id=job_id,
            status="pending",
            applied_at=None,
            resume_id=resume_id,
            cover_letter=cover_letter,
            answers_json=_as_blob_list(answers),
            notes=notes,
            last_activity_at=now,
            created_at=now,
            updated_at=now,
        )
        with self._write_lock:
            self.session.add(application)
            self._commit()
        self.session.refresh(application)
        return application

    def get_application(self, application_id: str) -> Application | None:
        return self.session.get(Application, application_id)

    def get_application_by_job_id(self, job_id: str) -> Application | None:
        statement = select(Application).where(Application.job_id == job_id).order_by(Application.created_at.asc())
        return self.session.scalars(statement).first()

    def list_applications(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        limit: int | None = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[Application]:
        criteria: ApplicationFilter = _parse_filters(ApplicationFilter, filters)
        _check_paging(limit, offset)

        statement = select(Application)
        if criteria.status:
            statement = statement.where(Application.status == criteria.status)
        if criteria.job_id:
            statement = statement.where(Application.job_id == criteria.job_id)
        statement = statement.order_by(Application.updated_at.desc()).offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement).all())

    def update_application_status(
        self,
        application_id: str,
        status: str,
        notes: str | None = None,
    ) -> Application | None:
        """Move an application to ``status`` and append one history record.

        ``applied_at`` is only written the first time the application becomes
        "submitted"; later submissions keep the original timestamp. Unknown ids
        are a silent no-op.
        """
        _require_choice(status, APPLICATION_STATUSES, "application status")

        with self._write_lock:
            application = self.session.get(Application, application_id)
            if application is None:
                return None

            now = utcnow()
            old_status = application.status
            values: dict[str, Any] = {
                "status": status,
                "last_activity_at": now,
                "updated_at": now,
            }
            if status == "submitted":
                values["applied_at"] = func.coalesce(Application.applied_at, now)

            self.session.execute(
                update(Application)
                .where(Application.id == application_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.session.add(
                ApplicationHistory(
                    application_id=application_id,
                    old_status=old_status,
                    new_status=status,
                    changed_at=now,
                    notes=notes,
                )
            )
            self._commit()
            self.session.refresh(application)
        return application

    def list_application_history(self, application_id: str) -> list[ApplicationHistory]:
        statement = (
            select(ApplicationHistory)
            .where(ApplicationHistory.application_id == application_id)
            .order_by(ApplicationHistory.changed_at.asc())
        )
        return list(self.session.scalars(statement).all())

    # Email threads

    def create_email_thread(
        self,
        *,
        application_id: str,
        subject: str,
        from_email: str,
        external_thread_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> EmailThread:
        _require_text(application_id, "application_id")
        _require_text(from_email, "from_email")
        if subject is None:
            raise ValidationError("subject is required")

        thread = EmailThread(
            application_id=application_id,
            external_thread_id=external_thread_id,
            subject=subject,
            from_email=from_email,
            last_message_at=utcnow(),
            status="active",
            message_count=1,
            metadata_json=metadata,
        )
        with self._write_lock:
            self.session.add(thread)
            self._commit()
        self.session.refresh(thread)
        return thread

    def get_email_thread(self, thread_id: str) -> EmailThread | None:
        return self.session.get(EmailThread, thread_id)

    def get_email_thread_by_external_id(self, external_thread_id: str) -> EmailThread | None:
        statement = select(EmailThread).where(EmailThread.external_thread_id == external_thread_id)
        return self.session.scalars(statement).first()

    def list_email_threads_for_application(self, application_id: str) -> list[EmailThread]:
        statement = (
            select(EmailThread)
            .where(EmailThread.application_id == application_id)
            .order_by(EmailThread.last_message_at.desc())
        )
        return list(self.session.scalars(statement).all())

    def update_email_thread(
        self,
        thread_id: str,
        *,
        status: str | None = None,
        message_count: int | None = None,
        last_message_at: datetime | None = None,
    ) -> EmailThread | None:
        if status is not None:
            _require_choice(status, EMAIL_THREAD_STATUSES, "email thread status")

        with self._write_lock:
            thread = self.session.get(EmailThread, thread_id)
            if thread is None:
                return None
            if message_count is not None:
                if message_count < thread.message_count:
                    raise ValidationError(
                        f"message_count cannot decrease ({thread.message_count} -> {message_count})"
                    )
                thread.message_count = message_count
            if status is not None:
                thread.status = status
            if last_message_at is not None:
                thread.last_message_at = last_message_at
            self._commit()
        self.session.refresh(thread)
        return thread

    # Resumes

    def create_resume(
        self,
        *,
        name: str,
        file_path: str,
        file_type: str,
        parsed_data: Any = None,
        is_default: bool = False,
    ) -> Resume:
        _require_text(name, "name")
        _require_text(file_path, "file_path")
        _require_choice(file_type, RESUME_FILE_TYPES, "resume file type")

        resume = Resume(
            name=name,
            file_path=str(file_path),
            file_type=file_type,
            parsed_data_json=_as_blob(parsed_data),
            is_default=is_default,
        )
        with self._write_lock:
            if is_default:
                self.session.execute(update(Resume).values(is_default=False))
            self.session.add(resume)
            self._commit()
        self.session.refresh(resume)
        return resume

    def get_resume(self, resume_id: str) -> Resume | None:
        return self.session.get(Resume, resume_id)

    def get_default_resume(self) -> Resume | None:
        statement = select(Resume).where(Resume.is_default.is_(True)).order_by(Resume.updated_at.desc())
        return self.session.scalars(statement).first()

    def list_resumes(self) -> list[Resume]:
        statement = select(Resume).order_by(Resume.is_default.desc(), Resume.created_at.desc())
        return list(self.session.scalars(statement).all())

    def set_default_resume(self, resume_id: str) -> Resume | None:
        """Clear every default and mark ``resume_id`` in one transaction."""
        with self._write_lock:
            resume = self.session.get(Resume, resume_id)
            if resume is None:
                return None
            now = utcnow()
            self.session.execute(
                update(Resume)
                .where(Resume.is_default.is_(True))
                .values(is_default=False, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.session.execute(
                update(Resume)
                .where(Resume.id == resume_id)
                .values(is_default=True, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self._commit()
            self.session.expire_all()
            resume = self.session.get(Resume, resume_id)
        return resume

    def delete_resume(self, resume_id: str) -> Resume | None:
        with self._write_lock:
            resume = self.session.get(Resume, resume_id)
            if resume is None:
                return None
            self.session.delete(resume)
            self._commit()
            _remove_resume_file(Path(resume.file_path))
        logger.info("Deleted resume %s (%s)", resume_id, resume.name)
        return resume

    # Preferences

    def get_preference(self, key: str) -> str | None:
        row = self.session.get(Preference, key)
        return row.value if row else None

    def list_preferences(self) -> dict[str, str]:
        rows = self.session.scalars(select(Preference).order_by(Preference.key.asc())).all()
        return {row.key: row.value for row in rows}

    def set_preference(self, key: str, value: str) -> Preference:
        _require_text(key, "key")
        with self._write_lock:
            existing = self.session.get(Preference, key)
            if existing:
                existing.value = value
                obj = existing
            else:
                obj = Preference(key=key, value=value)
                self.session.add(obj)
            self._commit()
        self.session.refresh(obj)
        return obj

    # Aggregates

    def count_jobs_by(self, column_name: str) -> dict[str, int]:
        column = {"status": Job.status, "source": Job.source}[column_name]
        rows = self.session.execute(select(column, func.count()).group_by(column)).all()
        return {key: count for key, count in rows}

    def count_applications_by_status(self) -> dict[str, int]:
        rows = self.session.execute(
            select(Application.status, func.count()).group_by(Application.status)
        ).all()
        return {key: count for key, count in rows}

    def count_submitted_applications(self) -> int:
        statement = select(func.count()).select_from(Application).where(Application.applied_at.is_not(None))
        return int(self.session.scalar(statement) or 0)

    def list_job_discovery_times(self, since: datetime) -> list[datetime]:
        statement = select(Job.discovered_at).where(Job.discovered_at >= since)
        return list(self.session.scalars(statement).all())

    def list_submission_times(self, since: datetime) -> list[datetime]:
        statement = select(Application.applied_at).where(
            Application.applied_at.is_not(None),
            Application.applied_at >= since,
        )
        return list(self.session.scalars(statement).all())

    def list_history_times(self, since: datetime, *, notes_prefix: str) -> list[datetime]:
        statement = select(ApplicationHistory.changed_at).where(
            ApplicationHistory.changed_at >= since,
            ApplicationHistory.notes.startswith(notes_prefix, autoescape=True),
        )
        return list(self.session.scalars(statement).all())
