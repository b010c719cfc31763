from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from jobbot.types import (
    ApplicationAnswer,
    ApplicationStatus,
    JobStatus,
    ParsedResumeData,
    ResponseType,
)


class _OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class JobResponse(_OrmModel):
    id: str
    external_id: str | None = None
    source: str
    company: str
    title: str
    location: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    salary_currency: str
    description: str | None = None
    requirements: list[str] | None = Field(default=None, validation_alias="requirements_json")
    tech_stack: list[str] | None = Field(default=None, validation_alias="tech_stack_json")
    url: str
    posted_at: float | None = None
    discovered_at: datetime
    status: str
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")


class JobUpdateRequest(BaseModel):
    status: JobStatus | None = None
    description: str | None = None
    requirements: list[str] | None = None
    tech_stack: list[str] | None = None


class ApplicationCreateRequest(BaseModel):
    job_id: str
    resume_id: str | None = None
    cover_letter: str | None = None
    answers: list[ApplicationAnswer] | None = None
    notes: str | None = None


class ApplicationStatusRequest(BaseModel):
    status: ApplicationStatus
    notes: str | None = None


class ApplicationResponse(_OrmModel):
    id: str
    job_id: str
    status: str
    applied_at: datetime | None = None
    resume_id: str | None = None
    cover_letter: str | None = None
    answers: list[dict[str, Any]] | None = Field(default=None, validation_alias="answers_json")
    notes: str | None = None
    last_activity_at: datetime
    created_at: datetime
    updated_at: datetime


class ApplicationHistoryResponse(_OrmModel):
    id: str
    application_id: str
    old_status: str | None = None
    new_status: str
    changed_at: datetime
    notes: str | None = None


class EmailThreadCreateRequest(BaseModel):
    subject: str
    from_email: str
    external_thread_id: str | None = None
    metadata: dict[str, Any] | None = None


class EmailThreadResponse(_OrmModel):
    id: str
    application_id: str
    external_thread_id: str | None = None
    subject: str
    from_email: str
    last_message_at: datetime
    status: str
    message_count: int


class InboundEmailResponse(BaseModel):
    matched: bool
    application_id: str | None = None
    response_type: ResponseType | None = None
    old_status: str | None = None
    new_status: str | None = None
    thread_id: str | None = None
    ambiguous: bool = False
    notified: bool = False


class ResumeResponse(_OrmModel):
    id: str
    name: str
    file_path: str
    file_type: str
    parsed_data: ParsedResumeData | None = Field(default=None, validation_alias="parsed_data_json")
    is_default: bool
    created_at: datetime
    updated_at: datetime


class PreferenceUpdateRequest(BaseModel):
    value: str
