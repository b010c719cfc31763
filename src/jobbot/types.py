from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

JobSource = Literal["indeed", "linkedin", "greenhouse", "lever", "custom"]
JobStatus = Literal["new", "reviewing", "approved", "rejected", "applied", "archived"]
ApplicationStatus = Literal[
    "pending",
    "submitted",
    "viewed",
    "rejected",
    "interview",
    "offer",
    "withdrawn",
    "closed",
]
EmailThreadStatus = Literal["active", "awaiting_response", "responded", "closed"]
ResumeFileType = Literal["pdf", "docx", "txt"]
ResponseType = Literal["offer", "interview", "rejection", "generic"]

JOB_SOURCES: tuple[str, ...] = get_args(JobSource)
JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
APPLICATION_STATUSES: tuple[str, ...] = get_args(ApplicationStatus)
EMAIL_THREAD_STATUSES: tuple[str, ...] = get_args(EmailThreadStatus)
RESUME_FILE_TYPES: tuple[str, ...] = get_args(ResumeFileType)

EMAIL_RESPONSE_NOTE_PREFIX = "Email response classified as:"


class ApplicationAnswer(BaseModel):
    question: str
    answer: str
    type: Literal["text", "select", "checkbox", "textarea"] | None = None


class ResumeExperience(BaseModel):
    company: str
    title: str
    start_date: str | None = None
    end_date: str | None = None
    description: str | None = None


class ResumeEducation(BaseModel):
    institution: str
    degree: str
    field: str | None = None
    graduation_date: str | None = None


class ParsedResumeData(BaseModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    summary: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience: list[ResumeExperience] = Field(default_factory=list)
    education: list[ResumeEducation] = Field(default_factory=list)


class JobPreferences(BaseModel):
    titles: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    salary_min: int | None = None
    salary_max: int | None = None
    remote_only: bool = False
    exclude_companies: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)


class JobSearchParams(BaseModel):
    query: str
    location: str | None = None
    remote: bool = False
    salary_min: int | None = None
    salary_max: int | None = None
    posted_within: int | None = None
    limit: int | None = None


class RawJobListing(BaseModel):
    """A posting as handed over by a job-source adapter."""

    model_config = ConfigDict(populate_by_name=True)

    external_id: str = Field(alias="externalId")
    title: str
    company: str
    location: str | None = None
    salary_min: int | None = Field(default=None, alias="salaryMin")
    salary_max: int | None = Field(default=None, alias="salaryMax")
    salary_currency: str | None = Field(default=None, alias="salaryCurrency")
    description: str | None = None
    requirements: list[str] | None = None
    tech_stack: list[str] | None = Field(default=None, alias="techStack")
    url: str
    posted_at: float | None = Field(default=None, alias="postedAt")


class InboundEmail(BaseModel):
    """One inbound message as delivered by the mail provider hook."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from")
    subject: str
    body: str = ""
    thread_id: str | None = Field(default=None, alias="threadId")
    message_id: str | None = Field(default=None, alias="messageId")

    @field_validator("body", mode="before")
    @classmethod
    def coerce_missing_body(cls, value: Any) -> str:
        return "" if value is None else value


class JobFilter(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: JobStatus | None = None
    source: JobSource | None = None
    company: str | None = None


class ApplicationFilter(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: ApplicationStatus | None = None
    job_id: str | None = None


class JobStats(BaseModel):
    total_jobs: int = 0
    new_jobs: int = 0
    applied_jobs: int = 0
    pending_applications: int = 0
    submitted_applications: int = 0
    interviews_scheduled: int = 0
    offers_received: int = 0
    rejections: int = 0
    by_source: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    applications_by_status: dict[str, int] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def response_rate(self) -> float:
        if self.submitted_applications == 0:
            return 0.0
        responses = self.interviews_scheduled + self.offers_received + self.rejections
        return responses / self.submitted_applications


class TimelineEntry(BaseModel):
    date: str
    jobs_discovered: int = 0
    applications_submitted: int = 0
    responses_received: int = 0
