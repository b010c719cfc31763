from __future__ import annotations

from collections.abc import Iterator

from fastapi import Request

from jobbot.core.email_monitor import EmailMonitor
from jobbot.db.repositories import Repository
from jobbot.db.session import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_monitor(request: Request) -> EmailMonitor:
    return request.app.state.email_monitor


def get_repo(request: Request) -> Iterator[Repository]:
    with get_database(request).repository() as repo:
        yield repo
