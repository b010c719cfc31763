from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote_plus, urlencode, urlparse

from jobbot.types import JobSearchParams, RawJobListing

logger = logging.getLogger(__name__)

INDEED_REMOTE_FILTER = "032b3046-06a3-4876-8dfd-474eb5e7ed11"


class JobSourceAdapter(Protocol):
    name: str

    def search(self, params: JobSearchParams) -> list[RawJobListing]: ...


@dataclass(frozen=True, slots=True)
class JobSiteAdapter:
    """Template adapter for one job board.

    It knows how to address the board but does not scrape it: ``search``
    returns no listings until a real fetcher is plugged in.
    """

    name: str
    label: str
    base_url: str
    host_marker: str

    def build_search_url(self, params: JobSearchParams) -> str:
        query = {"q": params.query}
        return f"{self.base_url}/search?{urlencode(query, quote_via=quote_plus)}"

    def can_handle(self, url: str) -> bool:
        return self.host_marker in urlparse(url).netloc.lower()

    def search(self, params: JobSearchParams) -> list[RawJobListing]:
        logger.debug("%s adapter is a template; no listings for %s", self.name, self.build_search_url(params))
        return []


class IndeedAdapter(JobSiteAdapter):
    def build_search_url(self, params: JobSearchParams) -> str:
        query: dict[str, str] = {"q": params.query}
        if params.location:
            query["l"] = params.location
        if params.remote:
            query["remotejob"] = INDEED_REMOTE_FILTER
        if params.salary_min:
            query["salary"] = f"${params.salary_min:,}"
        if params.posted_within:
            query["fromage"] = str(params.posted_within)
        if params.limit:
            query["limit"] = str(params.limit)
        return f"{self.base_url}/jobs?{urlencode(query, quote_via=quote_plus)}"


class LinkedInAdapter(JobSiteAdapter):
    def build_search_url(self, params: JobSearchParams) -> str:
        query: dict[str, str] = {"keywords": params.query}
        if params.location:
            query["location"] = params.location
        if params.remote:
            query["f_WT"] = "2"
        if params.posted_within:
            if params.posted_within <= 1:
                query["f_TPR"] = "r86400"
            elif params.posted_within <= 7:
                query["f_TPR"] = "r604800"
            else:
                query["f_TPR"] = "r2592000"
        if params.salary_min:
            query["f_SB2"] = linkedin_salary_bucket(params.salary_min)
        return f"{self.base_url}/jobs/search/?{urlencode(query, quote_via=quote_plus)}"


def linkedin_salary_bucket(salary_min: int) -> str:
    for threshold, bucket in (
        (200_000, "8"),
        (160_000, "7"),
        (120_000, "6"),
        (100_000, "5"),
        (80_000, "4"),
        (60_000, "3"),
        (40_000, "2"),
    ):
        if salary_min >= threshold:
            return bucket
    return "1"


INDEED = IndeedAdapter(
    name="indeed",
    label="Indeed",
    base_url="https://www.indeed.com",
    host_marker="indeed.com",
)
LINKEDIN = LinkedInAdapter(
    name="linkedin",
    label="LinkedIn",
    base_url="https://www.linkedin.com",
    host_marker="linkedin.com",
)
GREENHOUSE = JobSiteAdapter(
    name="greenhouse",
    label="Greenhouse",
    base_url="https://boards.greenhouse.io",
    host_marker="greenhouse.io",
)

# Lever boards follow Greenhouse conventions; custom sites fall back to Indeed's.
ADAPTERS: dict[str, JobSiteAdapter] = {
    "indeed": INDEED,
    "linkedin": LINKEDIN,
    "greenhouse": GREENHOUSE,
    "lever": GREENHOUSE,
    "custom": INDEED,
}


def get_adapter(source: str) -> JobSiteAdapter:
    return ADAPTERS.get(source, INDEED)


def find_adapter_for_url(url: str) -> JobSiteAdapter | None:
    for adapter in (INDEED, LINKEDIN, GREENHOUSE):
        if adapter.can_handle(url):
            return adapter
    return None


def available_adapters() -> list[str]:
    return list(ADAPTERS)
