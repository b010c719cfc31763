from __future__ import annotations

import pytest

from jobbot.core.classifier import KeywordClassifier, email_text


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("We are pleased to offer you the position", "offer"),
        ("Please find your offer letter attached", "offer"),
        ("We'd like to schedule an interview next week", "interview"),
        ("Are you available for a phone screen?", "interview"),
        ("Unfortunately we have decided to move forward with other candidates", "rejection"),
        ("Thanks for applying, we received your application", "generic"),
    ],
)
def test_keyword_classifier_categories(text: str, expected: str) -> None:
    assert KeywordClassifier().classify(text) == expected


def test_offer_beats_interview_and_rejection() -> None:
    text = "Unfortunately the interview panel was split, but we are pleased to offer you the role"
    assert KeywordClassifier().classify(text) == "offer"


def test_interview_beats_rejection() -> None:
    text = "Unfortunately the first slot is taken; can we schedule an interview for Friday?"
    assert KeywordClassifier().classify(text) == "interview"


def test_classification_is_case_insensitive() -> None:
    assert KeywordClassifier().classify("UNFORTUNATELY WE WILL NOT PROCEED") == "rejection"


def test_custom_keywords_override_defaults() -> None:
    classifier = KeywordClassifier(offer=("congrats",), interview=(), rejection=())
    assert classifier.classify("Congrats from the team") == "offer"
    assert classifier.classify("We'd like to schedule an interview") == "generic"


def test_email_text_joins_subject_and_body() -> None:
    assert email_text("Subject", "Body") == "Subject Body"
