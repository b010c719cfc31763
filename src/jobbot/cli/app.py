from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
import uvicorn

from jobbot.api.app import create_app
from jobbot.api.schemas import (
    ApplicationHistoryResponse,
    ApplicationResponse,
    EmailThreadResponse,
    JobResponse,
    ResumeResponse,
)
from jobbot.config import get_settings
from jobbot.core.email_monitor import EmailMonitor
from jobbot.core.job_sources import available_adapters, find_adapter_for_url
from jobbot.core.resumes import import_resume, parse_resume
from jobbot.core.scanner import JobScanner
from jobbot.core.stats import DEFAULT_TIMELINE_DAYS, build_timeline, compute_stats, format_stats
from jobbot.db.init import ensure_data_directories, init_database
from jobbot.db.repositories import Repository
from jobbot.db.session import Database
from jobbot.errors import JobbotError
from jobbot.logging_config import configure_logging
from jobbot.types import InboundEmail

app = typer.Typer(help="JobBot CLI")
jobs_app = typer.Typer(help="Discovered job postings")
apps_app = typer.Typer(help="Applications and their status history")
resume_app = typer.Typer(help="Resume library")
stats_app = typer.Typer(help="Job search statistics")
email_app = typer.Typer(help="Inbound email processing")
scan_app = typer.Typer(help="Job board scanning")

app.add_typer(jobs_app, name="jobs")
app.add_typer(apps_app, name="apps")
app.add_typer(resume_app, name="resume")
app.add_typer(stats_app, name="stats")
app.add_typer(email_app, name="email")
app.add_typer(scan_app, name="scan")


@contextmanager
def open_database() -> Iterator[Database]:
    settings = get_settings()
    configure_logging(settings)
    ensure_data_directories(settings)
    try:
        with Database(settings.database_url) as database:
            yield database
    except JobbotError as exc:
        raise typer.BadParameter(str(exc)) from exc


@contextmanager
def open_repository() -> Iterator[Repository]:
    with open_database() as database, database.repository() as repo:
        yield repo


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.command("init")
def init_cmd() -> None:
    """Initialize the database and data directories."""
    settings = get_settings()
    configure_logging(settings)
    result = init_database(settings)
    echo_json({"ok": True, **result})


@jobs_app.command("list")
def jobs_list(
    status: str | None = typer.Option(None, "--status"),
    source: str | None = typer.Option(None, "--source"),
    company: str | None = typer.Option(None, "--company"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    filters = {"status": status, "source": source, "company": company}
    with open_repository() as repo:
        jobs = repo.list_jobs({key: value for key, value in filters.items() if value}, limit=limit)
        echo_json(
            [
                {
                    "id": job.id,
                    "title": job.title,
                    "company": job.company,
                    "source": job.source,
                    "status": job.status,
                    "url": job.url,
                    "discovered_at": job.discovered_at.isoformat(),
                }
                for job in jobs
            ]
        )


@jobs_app.command("show")
def jobs_show(job_id: str = typer.Option(..., "--job-id")) -> None:
    with open_repository() as repo:
        job = repo.get_job(job_id)
        if job is None:
            raise typer.BadParameter(f"job {job_id} not found")
        echo_json(JobResponse.model_validate(job).model_dump(mode="json"))


@jobs_app.command("add")
def jobs_add(
    url: str = typer.Option(..., "--url"),
    company: str = typer.Option(..., "--company"),
    title: str = typer.Option(..., "--title"),
    source: str | None = typer.Option(None, "--source"),
    location: str | None = typer.Option(None, "--location"),
    external_id: str | None = typer.Option(None, "--external-id"),
) -> None:
    """Record a posting found by hand."""
    if source is None:
        adapter = find_adapter_for_url(url)
        source = adapter.name if adapter else "custom"
    with open_repository() as repo:
        if external_id and repo.get_job_by_external_id(external_id, source):
            raise typer.BadParameter(f"job {external_id} from {source} is already stored")
        job = repo.create_job(
            source=source,
            company=company,
            title=title,
            url=url,
            location=location,
            external_id=external_id,
        )
        echo_json({"id": job.id, "source": job.source, "status": job.status})


@jobs_app.command("set-status")
def jobs_set_status(
    job_id: str = typer.Option(..., "--job-id"),
    status: str = typer.Option(..., "--status"),
) -> None:
    with open_repository() as repo:
        job = repo.update_job_status(job_id, status)
        if job is None:
            raise typer.BadParameter(f"job {job_id} not found")
        echo_json({"id": job.id, "status": job.status})


@apps_app.command("list")
def apps_list(
    status: str | None = typer.Option(None, "--status"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    with open_repository() as repo:
        rows = repo.list_applications({"status": status} if status else None, limit=limit)
        echo_json([ApplicationResponse.model_validate(row).model_dump(mode="json") for row in rows])


@apps_app.command("create")
def apps_create(
    job_id: str = typer.Option(..., "--job-id"),
    resume_id: str | None = typer.Option(None, "--resume-id"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    with open_repository() as repo:
        if repo.get_job(job_id) is None:
            raise typer.BadParameter(f"job {job_id} not found")
        if repo.get_application_by_job_id(job_id) is not None:
            raise typer.BadParameter(f"an application already exists for job {job_id}")
        if resume_id is None:
            default = repo.get_default_resume()
            resume_id = default.id if default else None
        application = repo.create_application(job_id=job_id, resume_id=resume_id, notes=notes)
        echo_json({"id": application.id, "job_id": job_id, "status": application.status})


@apps_app.command("status")
def apps_status(
    application_id: str = typer.Option(..., "--application-id"),
    status: str = typer.Option(..., "--status"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    with open_repository() as repo:
        application = repo.update_application_status(application_id, status, notes=notes)
        if application is None:
            raise typer.BadParameter(f"application {application_id} not found")
        if status == "submitted":
            repo.update_job_status(application.job_id, "applied")
        echo_json(ApplicationResponse.model_validate(application).model_dump(mode="json"))


@apps_app.command("history")
def apps_history(application_id: str = typer.Option(..., "--application-id")) -> None:
    with open_repository() as repo:
        if repo.get_application(application_id) is None:
            raise typer.BadParameter(f"application {application_id} not found")
        echo_json(
            {
                "history": [
                    ApplicationHistoryResponse.model_validate(row).model_dump(mode="json")
                    for row in repo.list_application_history(application_id)
                ],
                "emails": [
                    EmailThreadResponse.model_validate(row).model_dump(mode="json")
                    for row in repo.list_email_threads_for_application(application_id)
                ],
            }
        )


@resume_app.command("upload")
def resume_upload(
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    name: str | None = typer.Option(None, "--name"),
) -> None:
    with open_repository() as repo:
        resume = import_resume(repo, file, name=name, settings=get_settings())
        echo_json(ResumeResponse.model_validate(resume).model_dump(mode="json"))


@resume_app.command("list")
def resume_list() -> None:
    with open_repository() as repo:
        echo_json(
            [
                {"id": row.id, "name": row.name, "file_type": row.file_type, "is_default": row.is_default}
                for row in repo.list_resumes()
            ]
        )


@resume_app.command("view")
def resume_view(resume_id: str | None = typer.Option(None, "--resume-id")) -> None:
    """Show one resume, or the default one when no id is given."""
    with open_repository() as repo:
        resume = repo.get_resume(resume_id) if resume_id else repo.get_default_resume()
        if resume is None:
            raise typer.BadParameter("resume not found" if resume_id else "no default resume set")
        echo_json(ResumeResponse.model_validate(resume).model_dump(mode="json"))


@resume_app.command("set-default")
def resume_set_default(resume_id: str = typer.Option(..., "--resume-id")) -> None:
    with open_repository() as repo:
        resume = repo.set_default_resume(resume_id)
        if resume is None:
            raise typer.BadParameter(f"resume {resume_id} not found")
        echo_json({"id": resume.id, "name": resume.name, "is_default": resume.is_default})


@resume_app.command("delete")
def resume_delete(resume_id: str = typer.Option(..., "--resume-id")) -> None:
    with open_repository() as repo:
        resume = repo.delete_resume(resume_id)
        if resume is None:
            raise typer.BadParameter(f"resume {resume_id} not found")
        echo_json({"deleted": True, "id": resume_id, "name": resume.name})


@resume_app.command("parse")
def resume_parse(resume_id: str = typer.Option(..., "--resume-id")) -> None:
    with open_repository() as repo:
        resume = repo.get_resume(resume_id)
        if resume is None:
            raise typer.BadParameter(f"resume {resume_id} not found")
        parsed = parse_resume(Path(resume.file_path), resume.file_type)
        echo_json(parsed.model_dump(mode="json"))


@stats_app.command("summary")
def stats_summary(markdown: bool = typer.Option(False, "--markdown")) -> None:
    with open_repository() as repo:
        stats = compute_stats(repo)
        if markdown:
            typer.echo(format_stats(stats))
            return
        echo_json(stats.model_dump(mode="json"))


@stats_app.command("timeline")
def stats_timeline(days: int = typer.Option(DEFAULT_TIMELINE_DAYS, "--days")) -> None:
    with open_repository() as repo:
        echo_json([entry.model_dump(mode="json") for entry in build_timeline(repo, days)])


@email_app.command("process")
def email_process(
    sender: str = typer.Option(..., "--from"),
    subject: str = typer.Option(..., "--subject"),
    body: str = typer.Option("", "--body"),
    thread_id: str | None = typer.Option(None, "--thread-id"),
) -> None:
    """Run one message through the email engine as if the mail hook delivered it."""
    email = InboundEmail(sender=sender, subject=subject, body=body, thread_id=thread_id)
    with open_database() as database:
        result = EmailMonitor(database, settings=get_settings()).process_email(email)
        echo_json(
            {
                "matched": result.matched,
                "application_id": result.application_id,
                "response_type": result.response_type,
                "old_status": result.old_status,
                "new_status": result.new_status,
                "thread_id": result.thread_id,
                "ambiguous": result.ambiguous,
            }
        )


@scan_app.command("run")
def scan_run() -> None:
    """Run one scan over the configured boards and preferences."""
    with open_database() as database:
        summary = JobScanner(database, settings=get_settings()).run_scan()
        echo_json(
            {
                "new_jobs": summary.new_jobs,
                "searches": summary.searches,
                "skipped": summary.skipped,
                "errors": summary.errors,
            }
        )


@scan_app.command("adapters")
def scan_adapters() -> None:
    echo_json(available_adapters())


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    scan: bool = typer.Option(True, "--scan/--no-scan"),
) -> None:
    settings = get_settings()
    configure_logging(settings)
    ensure_data_directories(settings)
    app_instance = create_app(settings=settings, run_scanner=scan)
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
