"""
Exam code detection from exam names, abbreviations and the language hint.
"""
import re
from typing import List, NamedTuple, Optional, Pattern


class ExamRule(NamedTuple):
    pattern: Pattern
    code: str
    language: Optional[str] = None


def _rule(pattern: str, code: str, language: Optional[str] = None) -> ExamRule:
    return ExamRule(re.compile(pattern, re.IGNORECASE), code, language)


# More specific names come before names they contain ("goa psc" before "gpsc")
EXAM_RULES: List[ExamRule] = [
    _rule(r"\btnpsc\b|tamil\s*nadu\s*psc", "TNPSC", "ta"),
    _rule(r"\bmpsc\b|maharashtra\s*psc", "MPSC", "mr"),
    _rule(r"\bbpsc\b|bihar\s*psc", "BPSC"),
    _rule(r"\buppsc\b|\buppcs\b|uttar\s*pradesh\s*psc", "UPPSC"),
    _rule(r"\bmppsc\b|madhya\s*pradesh\s*psc", "MPPSC"),
    _rule(r"\bras\b", "RAS"),
    _rule(r"\brpsc\b|rajasthan\s*psc", "RPSC"),
    _rule(r"gpsc\s*goa|goa\s*psc", "Goa PSC"),
    _rule(r"\bgpsc\b|gujarat\s*psc", "GPSC", "gu"),
    _rule(r"\bkpsc\b|karnataka\s*psc", "KPSC", "kn"),
    _rule(r"\bwbpsc\b|west\s*bengal\s*psc|\bwb\s*psc\b", "WBPSC", "bn"),
    _rule(r"\bppsc\b|punjab\s*psc", "PPSC", "pa"),
    _rule(r"\bopsc\b|odisha\s*psc", "OPSC"),
    _rule(r"\bappsc\b|andhra\s*pradesh\s*psc", "APPSC"),
    _rule(r"\bapsc\b|assam\s*psc", "APSC"),
    _rule(r"\btspsc\b|telangana\s*psc", "TSPSC", "te"),
    _rule(r"kerala\s*psc", "Kerala PSC", "ml"),
    _rule(r"\bhpsc\b|haryana\s*psc", "HPSC"),
    _rule(r"\bjkpsc\b|j\s*&\s*k\s*psc|jammu.*kashmir.*psc", "JKPSC"),
    _rule(r"\bssc\b|\bcgl\b", "SSC"),
    _rule(r"\bupsc\b|\bias\b|civil\s*services", "UPSC"),
    _rule(r"\bpcs\b", "PCS"),
]

# Union of every exam name, used to strip exam mentions before topic extraction
EXAM_NAME_PATTERN = re.compile(
    "|".join(f"(?:{rule.pattern.pattern})" for rule in EXAM_RULES),
    re.IGNORECASE
)


def detect_exam_code(text: str, language: Optional[str] = None, default: str = "UPSC") -> str:
    """
    Detect the exam code a request refers to.

    Explicit exam names win over the language hint; when neither matches
    the baseline default is returned.

    Args:
        text: Raw user text
        language: Language hint (ISO code such as "ta" or "en")
        default: Baseline exam code

    Returns:
        Exam code, e.g. "UPSC" or "Kerala PSC"
    """
    for rule in EXAM_RULES:
        if rule.pattern.search(text or ""):
            return rule.code

    hint = (language or "").strip().lower()
    if hint:
        for rule in EXAM_RULES:
            if rule.language and rule.language == hint:
                return rule.code

    return default


def strip_exam_names(text: str) -> str:
    return EXAM_NAME_PATTERN.sub(" ", text or "")
