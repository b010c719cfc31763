from __future__ import annotations

from typing import Protocol

from jobbot.types import ResponseType

OFFER_KEYWORDS: tuple[str, ...] = (
    "pleased to offer",
    "offer letter",
    "job offer",
    "employment offer",
    "compensation package",
    "start date",
    "we would like to extend",
)

INTERVIEW_KEYWORDS: tuple[str, ...] = (
    "schedule an interview",
    "interview invitation",
    "would like to speak",
    "set up a call",
    "phone screen",
    "technical interview",
    "on-site interview",
    "video interview",
    "meet with",
    "next steps",
    "availability",
)

REJECTION_KEYWORDS: tuple[str, ...] = (
    "unfortunately",
    "regret to inform",
    "not moving forward",
    "decided not to proceed",
    "other candidates",
    "position has been filled",
    "not selected",
    "not a fit",
    "pursued other",
    "decided to move forward with",
)


class ResponseClassifier(Protocol):
    def classify(self, text: str) -> ResponseType: ...


class KeywordClassifier:
    """Fixed keyword sets checked in priority order: offer, interview, rejection.

    Matching is plain substring search on lower-cased text, so "availability"
    inside a rejection still counts as an interview signal.
    """

    def __init__(
        self,
        *,
        offer: tuple[str, ...] = OFFER_KEYWORDS,
        interview: tuple[str, ...] = INTERVIEW_KEYWORDS,
        rejection: tuple[str, ...] = REJECTION_KEYWORDS,
    ):
        self._rules: tuple[tuple[ResponseType, tuple[str, ...]], ...] = (
            ("offer", offer),
            ("interview", interview),
            ("rejection", rejection),
        )

    def classify(self, text: str) -> ResponseType:
        content = text.lower()
        for response_type, keywords in self._rules:
            if any(keyword in content for keyword in keywords):
                return response_type
        return "generic"


def email_text(subject: str, body: str) -> str:
    return f"{subject} {body}"
