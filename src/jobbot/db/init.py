from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine

from jobbot.config import Settings, get_settings
from jobbot.db.base import Base
from jobbot.db import models  # noqa: F401


def ensure_data_directories(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    paths: list[Path] = [settings.data_dir, settings.resume_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def init_database(settings: Settings | None = None) -> dict[str, object]:
    from jobbot.db.session import Database

    settings = settings or get_settings()
    ensure_data_directories(settings)
    with Database(settings.database_url) as database:
        tables = sorted(Base.metadata.tables)
        return {"database_url": database.database_url, "tables": tables}
