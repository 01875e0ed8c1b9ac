"""
Tests for exam code detection.
"""
import pytest

from pyq_retrieval.services.exam_detector import detect_exam_code, strip_exam_names


@pytest.mark.parametrize("text,expected", [
    ("UPSC prelims polity", "UPSC"),
    ("civil services mains ethics", "UPSC"),
    ("tnpsc group 1 history", "TNPSC"),
    ("Bihar PSC questions", "BPSC"),
    ("uppcs geography", "UPPSC"),
    ("Goa PSC general studies", "Goa PSC"),
    ("gpsc economy", "GPSC"),
    ("Kerala PSC renaissance", "Kerala PSC"),
    ("SSC CGL reasoning", "SSC"),
    ("pcs polity", "PCS"),
])
def test_exam_names(text, expected):
    assert detect_exam_code(text) == expected


def test_default_when_nothing_matches():
    assert detect_exam_code("questions on the monsoon") == "UPSC"
    assert detect_exam_code("questions on the monsoon", default="PCS") == "PCS"
    assert detect_exam_code("", None) == "UPSC"


@pytest.mark.parametrize("language,expected", [
    ("ta", "TNPSC"),
    ("mr", "MPSC"),
    ("gu", "GPSC"),
    ("kn", "KPSC"),
    ("bn", "WBPSC"),
    ("pa", "PPSC"),
    ("te", "TSPSC"),
    ("ml", "Kerala PSC"),
    ("en", "UPSC"),
    ("hi", "UPSC"),
])
def test_language_hints(language, expected):
    assert detect_exam_code("history questions", language) == expected


def test_explicit_name_wins_over_language_hint():
    assert detect_exam_code("bpsc history", "ta") == "BPSC"


def test_strip_exam_names():
    assert strip_exam_names("TNPSC history questions").split() == ["history", "questions"]
