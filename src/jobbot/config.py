from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobbot.types import JobPreferences

load_dotenv()

_INTERVAL_PATTERN = re.compile(r"^\d+[smhd]$")


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "JobBot"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8790
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/jobbot.db"
    data_dir: Path = Path("./data")
    resume_dir: Path = Path("./data/resumes")

    scan_interval: str = "6h"
    scan_initial_delay_sec: float = 30.0
    scan_request_delay_sec: float = 2.0
    default_job_boards: str = "indeed,linkedin"

    pref_titles: str = ""
    pref_locations: str = ""
    pref_salary_min: int | None = None
    pref_salary_max: int | None = None
    pref_remote_only: bool = False
    pref_exclude_companies: str = ""
    pref_exclude_keywords: str = ""

    notify_channel: str = ""
    notify_new_job_alerts: bool = True
    notify_email_responses: bool = True

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("scan_interval")
    @classmethod
    def validate_scan_interval(cls, value: str) -> str:
        value = value.strip()
        if value and not _INTERVAL_PATTERN.match(value):
            raise ValueError("scan_interval must look like '30s', '15m', '6h' or '1d'")
        return value

    @property
    def job_board_list(self) -> list[str]:
        return _split_csv(self.default_job_boards)

    @property
    def preferences(self) -> JobPreferences:
        return JobPreferences(
            titles=_split_csv(self.pref_titles),
            locations=_split_csv(self.pref_locations),
            salary_min=self.pref_salary_min,
            salary_max=self.pref_salary_max,
            remote_only=self.pref_remote_only,
            exclude_companies=_split_csv(self.pref_exclude_companies),
            exclude_keywords=_split_csv(self.pref_exclude_keywords),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
