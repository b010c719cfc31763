from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from jobbot.config import Settings
from jobbot.db.models import Job
from jobbot.db.repositories import Repository
from jobbot.db.session import Database


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, channel: str, text: str) -> None:
        self.sent.append((channel, text))


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        app_env="test",
        database_url=f"sqlite:///{tmp_path / 'jobbot.db'}",
        data_dir=tmp_path,
        resume_dir=tmp_path / "resumes",
        scan_interval="",
        scan_initial_delay_sec=0,
        scan_request_delay_sec=0,
        default_job_boards="indeed",
        pref_titles="",
        pref_locations="",
        pref_exclude_companies="",
        pref_exclude_keywords="",
        pref_remote_only=False,
        notify_channel="",
    )


@pytest.fixture()
def database(settings: Settings) -> Iterator[Database]:
    with Database(settings.database_url) as db:
        yield db


@pytest.fixture()
def repo(database: Database) -> Iterator[Repository]:
    with database.repository() as repository:
        yield repository


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def make_job(repo: Repository) -> Callable[..., Job]:
    counter = {"n": 0}

    def _make(company: str = "Acme Corp", **fields) -> Job:
        counter["n"] += 1
        values = {
            "source": "indeed",
            "title": "Backend Engineer",
            "external_id": f"ext-{counter['n']}",
            "url": f"https://www.indeed.com/viewjob?jk={counter['n']}",
        }
        values.update(fields)
        return repo.create_job(company=company, **values)

    return _make
