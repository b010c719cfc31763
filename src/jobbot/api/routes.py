from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from jobbot.api.deps import get_monitor, get_repo
from jobbot.api.schemas import (
    ApplicationCreateRequest,
    ApplicationHistoryResponse,
    ApplicationResponse,
    ApplicationStatusRequest,
    EmailThreadCreateRequest,
    EmailThreadResponse,
    InboundEmailResponse,
    JobResponse,
    JobUpdateRequest,
    PreferenceUpdateRequest,
    ResumeResponse,
)
from jobbot.core.email_monitor import EmailMonitor
from jobbot.core.stats import DEFAULT_TIMELINE_DAYS, build_timeline, compute_stats
from jobbot.db.repositories import DEFAULT_LIST_LIMIT, Repository
from jobbot.types import InboundEmail, JobStats, TimelineEntry

router = APIRouter(prefix="/api", tags=["api"])


def _filters(**values: str | None) -> dict[str, str]:
    return {key: value for key, value in values.items() if value is not None}


# Jobs


@router.get("/jobs", response_model=list[JobResponse])
def list_jobs(
    status: str | None = None,
    source: str | None = None,
    company: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
    repo: Repository = Depends(get_repo),
) -> list[JobResponse]:
    rows = repo.list_jobs(_filters(status=status, source=source, company=company), limit=limit, offset=offset)
    return [JobResponse.model_validate(row) for row in rows]


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(job_id: str, repo: Repository = Depends(get_repo)) -> JobResponse:
    job = repo.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.model_validate(job)


@router.patch("/jobs/{job_id}", response_model=JobResponse)
def update_job(job_id: str, payload: JobUpdateRequest, repo: Repository = Depends(get_repo)) -> JobResponse:
    job = repo.update_job(
        job_id,
        status=payload.status,
        description=payload.description,
        requirements=payload.requirements,
        tech_stack=payload.tech_stack,
    )
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.model_validate(job)


# Applications


@router.get("/applications", response_model=list[ApplicationResponse])
def list_applications(
    status: str | None = None,
    job_id: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
    repo: Repository = Depends(get_repo),
) -> list[ApplicationResponse]:
    rows = repo.list_applications(_filters(status=status, job_id=job_id), limit=limit, offset=offset)
    return [ApplicationResponse.model_validate(row) for row in rows]


@router.post("/applications", response_model=ApplicationResponse, status_code=201)
def create_application(
    payload: ApplicationCreateRequest,
    repo: Repository = Depends(get_repo),
) -> ApplicationResponse:
    if repo.get_job(payload.job_id) is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if repo.get_application_by_job_id(payload.job_id) is not None:
        raise HTTPException(status_code=409, detail="An application already exists for this job")
    if payload.resume_id is not None and repo.get_resume(payload.resume_id) is None:
        raise HTTPException(status_code=404, detail="Resume not found")

    application = repo.create_application(
        job_id=payload.job_id,
        resume_id=payload.resume_id,
        cover_letter=payload.cover_letter,
        answers=payload.answers,
        notes=payload.notes,
    )
    return ApplicationResponse.model_validate(application)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(application_id: str, repo: Repository = Depends(get_repo)) -> ApplicationResponse:
    application = repo.get_application(application_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return ApplicationResponse.model_validate(application)


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
def update_application_status(
    application_id: str,
    payload: ApplicationStatusRequest,
    repo: Repository = Depends(get_repo),
) -> ApplicationResponse:
    application = repo.update_application_status(application_id, payload.status, notes=payload.notes)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return ApplicationResponse.model_validate(application)


@router.get("/applications/{application_id}/history", response_model=list[ApplicationHistoryResponse])
def get_application_history(
    application_id: str,
    repo: Repository = Depends(get_repo),
) -> list[ApplicationHistoryResponse]:
    if repo.get_application(application_id) is None:
        raise HTTPException(status_code=404, detail="Application not found")
    rows = repo.list_application_history(application_id)
    return [ApplicationHistoryResponse.model_validate(row) for row in rows]


@router.get("/applications/{application_id}/emails", response_model=list[EmailThreadResponse])
def get_application_emails(
    application_id: str,
    repo: Repository = Depends(get_repo),
) -> list[EmailThreadResponse]:
    if repo.get_application(application_id) is None:
        raise HTTPException(status_code=404, detail="Application not found")
    rows = repo.list_email_threads_for_application(application_id)
    return [EmailThreadResponse.model_validate(row) for row in rows]


@router.post("/applications/{application_id}/emails", response_model=EmailThreadResponse, status_code=201)
def create_application_email(
    application_id: str,
    payload: EmailThreadCreateRequest,
    repo: Repository = Depends(get_repo),
) -> EmailThreadResponse:
    if repo.get_application(application_id) is None:
        raise HTTPException(status_code=404, detail="Application not found")
    thread = repo.create_email_thread(
        application_id=application_id,
        subject=payload.subject,
        from_email=payload.from_email,
        external_thread_id=payload.external_thread_id,
        metadata=payload.metadata,
    )
    return EmailThreadResponse.model_validate(thread)


# Email


@router.post("/emails/inbound", response_model=InboundEmailResponse)
def receive_email(payload: InboundEmail, monitor: EmailMonitor = Depends(get_monitor)) -> InboundEmailResponse:
    result = monitor.process_email(payload)
    return InboundEmailResponse(
        matched=result.matched,
        application_id=result.application_id,
        response_type=result.response_type,
        old_status=result.old_status,
        new_status=result.new_status,
        thread_id=result.thread_id,
        ambiguous=result.ambiguous,
        notified=result.notified,
    )


# Resumes


@router.get("/resumes", response_model=list[ResumeResponse])
def list_resumes(repo: Repository = Depends(get_repo)) -> list[ResumeResponse]:
    return [ResumeResponse.model_validate(row) for row in repo.list_resumes()]


@router.get("/resumes/{resume_id}", response_model=ResumeResponse)
def get_resume(resume_id: str, repo: Repository = Depends(get_repo)) -> ResumeResponse:
    resume = repo.get_resume(resume_id)
    if resume is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ResumeResponse.model_validate(resume)


@router.post("/resumes/{resume_id}/default", response_model=ResumeResponse)
def set_default_resume(resume_id: str, repo: Repository = Depends(get_repo)) -> ResumeResponse:
    resume = repo.set_default_resume(resume_id)
    if resume is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ResumeResponse.model_validate(resume)


@router.delete("/resumes/{resume_id}")
def delete_resume(resume_id: str, repo: Repository = Depends(get_repo)) -> dict:
    resume = repo.delete_resume(resume_id)
    if resume is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    return {"deleted": True, "id": resume_id, "name": resume.name}


# Preferences


@router.get("/preferences")
def list_preferences(repo: Repository = Depends(get_repo)) -> dict[str, str]:
    return repo.list_preferences()


@router.put("/preferences/{key}")
def set_preference(key: str, payload: PreferenceUpdateRequest, repo: Repository = Depends(get_repo)) -> dict:
    row = repo.set_preference(key, payload.value)
    return {"key": row.key, "value": row.value}


# Stats


@router.get("/stats/summary", response_model=JobStats)
def stats_summary(repo: Repository = Depends(get_repo)) -> JobStats:
    return compute_stats(repo)


@router.get("/stats/timeline", response_model=list[TimelineEntry])
def stats_timeline(days: int = DEFAULT_TIMELINE_DAYS, repo: Repository = Depends(get_repo)) -> list[TimelineEntry]:
    return build_timeline(repo, days)
