from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from jobbot.cli import app as cli_module
from jobbot.core.email_monitor import EmailMonitor
from jobbot.core.scanner import JobScanner
from jobbot.core.stats import compute_stats
from jobbot.types import JobSearchParams, RawJobListing


class StaticBoard:
    name = "greenhouse"

    def search(self, params: JobSearchParams) -> list[RawJobListing]:
        return [
            RawJobListing(
                external_id="gh-42",
                title=params.query,
                company="Acme Corp",
                location="Remote",
                url="https://boards.greenhouse.io/acme/jobs/42",
            )
        ]


def test_scan_apply_and_receive_offer(database, repo, settings, notifier) -> None:
    settings.pref_titles = "Staff Engineer"
    settings.default_job_boards = "greenhouse"
    settings.notify_channel = "telegram:me"

    summary = JobScanner(database, settings=settings, adapters={"greenhouse": StaticBoard()}).run_scan()
    assert summary.new_jobs == 1

    job = repo.list_jobs({"source": "greenhouse"})[0]
    repo.update_job_status(job.id, "approved")
    application = repo.create_application(job_id=job.id)
    repo.update_application_status(application.id, "submitted")
    repo.update_job_status(job.id, "applied")

    monitor = EmailMonitor(database, settings=settings, notifier=notifier)
    monitor.start()
    interview = monitor.handle_event(
        {"from": "recruiting@acmecorp.com", "subject": "Technical interview", "body": "", "threadId": "acme-1"}
    )
    offer = monitor.handle_event(
        {
            "from": "recruiting@acmecorp.com",
            "subject": "Offer",
            "body": "We are pleased to offer you the Staff Engineer role",
            "threadId": "acme-1",
        }
    )
    monitor.stop()

    assert interview.new_status == "interview"
    assert offer.new_status == "offer"
    assert offer.thread_id == interview.thread_id

    repo.session.expire_all()
    history = repo.list_application_history(application.id)
    assert [row.new_status for row in history] == ["submitted", "interview", "offer"]
    assert repo.get_email_thread(offer.thread_id).message_count == 2

    stats = compute_stats(repo)
    assert stats.applied_jobs == 1
    assert stats.offers_received == 1
    assert stats.response_rate == 1.0
    assert [text for _, text in notifier.sent if "job offer" in text]


def test_cli_job_and_application_flow(monkeypatch, settings, tmp_path: Path) -> None:
    monkeypatch.setattr(cli_module, "get_settings", lambda: settings)
    runner = CliRunner()

    init = runner.invoke(cli_module.app, ["init"])
    assert init.exit_code == 0, init.output
    assert "jobs" in json.loads(init.stdout)["tables"]

    resume_file = tmp_path / "cv.txt"
    resume_file.write_text("Jane Doe\njane@example.com\n", encoding="utf-8")
    uploaded = runner.invoke(cli_module.app, ["resume", "upload", "--file", str(resume_file)])
    assert uploaded.exit_code == 0, uploaded.output
    resume_id = json.loads(uploaded.stdout)["id"]

    added = runner.invoke(
        cli_module.app,
        ["jobs", "add", "--url", "https://www.linkedin.com/jobs/view/7", "--company", "Acme", "--title", "SRE"],
    )
    assert added.exit_code == 0, added.output
    job = json.loads(added.stdout)
    assert job["source"] == "linkedin"

    created = runner.invoke(cli_module.app, ["apps", "create", "--job-id", job["id"]])
    assert created.exit_code == 0, created.output
    application_id = json.loads(created.stdout)["id"]

    duplicate = runner.invoke(cli_module.app, ["apps", "create", "--job-id", job["id"]])
    assert duplicate.exit_code != 0

    submitted = runner.invoke(
        cli_module.app,
        ["apps", "status", "--application-id", application_id, "--status", "submitted"],
    )
    assert submitted.exit_code == 0, submitted.output
    payload = json.loads(submitted.stdout)
    assert payload["resume_id"] == resume_id
    assert payload["applied_at"] is not None

    stats = runner.invoke(cli_module.app, ["stats", "summary"])
    assert json.loads(stats.stdout)["applied_jobs"] == 1
