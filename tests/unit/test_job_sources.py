from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from jobbot.core.job_sources import (
    GREENHOUSE,
    INDEED,
    LINKEDIN,
    available_adapters,
    find_adapter_for_url,
    get_adapter,
    linkedin_salary_bucket,
)
from jobbot.types import JobSearchParams


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def test_indeed_search_url() -> None:
    url = INDEED.build_search_url(
        JobSearchParams(query="python developer", location="Austin, TX", remote=True, posted_within=7, limit=25)
    )
    assert url.startswith("https://www.indeed.com/jobs?")
    query = _query(url)
    assert query["q"] == ["python developer"]
    assert query["l"] == ["Austin, TX"]
    assert query["remotejob"] == ["032b3046-06a3-4876-8dfd-474eb5e7ed11"]
    assert query["fromage"] == ["7"]
    assert query["limit"] == ["25"]


def test_indeed_salary_is_formatted() -> None:
    query = _query(INDEED.build_search_url(JobSearchParams(query="dev", salary_min=100000)))
    assert query["salary"] == ["$100,000"]


def test_linkedin_search_url() -> None:
    url = LINKEDIN.build_search_url(
        JobSearchParams(query="data engineer", remote=True, posted_within=1, salary_min=125000)
    )
    assert url.startswith("https://www.linkedin.com/jobs/search/?")
    query = _query(url)
    assert query["keywords"] == ["data engineer"]
    assert query["f_WT"] == ["2"]
    assert query["f_TPR"] == ["r86400"]
    assert query["f_SB2"] == ["6"]


def test_linkedin_posted_within_buckets() -> None:
    week = _query(LINKEDIN.build_search_url(JobSearchParams(query="x", posted_within=5)))
    month = _query(LINKEDIN.build_search_url(JobSearchParams(query="x", posted_within=20)))
    assert week["f_TPR"] == ["r604800"]
    assert month["f_TPR"] == ["r2592000"]


def test_linkedin_salary_buckets() -> None:
    assert linkedin_salary_bucket(250000) == "8"
    assert linkedin_salary_bucket(100000) == "5"
    assert linkedin_salary_bucket(39999) == "1"


def test_greenhouse_search_url() -> None:
    assert GREENHOUSE.build_search_url(JobSearchParams(query="sre")) == "https://boards.greenhouse.io/search?q=sre"


def test_registry_aliases() -> None:
    assert get_adapter("lever") is GREENHOUSE
    assert get_adapter("custom") is INDEED
    assert get_adapter("unknown") is INDEED
    assert set(available_adapters()) == {"indeed", "linkedin", "greenhouse", "lever", "custom"}


def test_find_adapter_for_url() -> None:
    assert find_adapter_for_url("https://www.linkedin.com/jobs/view/123") is LINKEDIN
    assert find_adapter_for_url("https://boards.greenhouse.io/acme/jobs/1") is GREENHOUSE
    assert find_adapter_for_url("https://careers.example.com/1") is None


def test_template_adapters_return_no_listings() -> None:
    assert INDEED.search(JobSearchParams(query="anything")) == []
