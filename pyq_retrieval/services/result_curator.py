"""
PYQ result curator.
Filters, deduplicates and ranks raw archive rows, then renders them as a
markdown transcript grouped by year for the chat window.
"""
import re
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.schemas import ArchivedQuestion, SearchIntent


VERIFIED_MARK = "✅"
UNVERIFIED_MARK = "⚠️"
ANALYSIS_MARK = "📝"

MIN_QUESTION_CHARS = 10
DEDUP_KEY_LENGTH = 200

NOISE_SIGNATURES = [
    re.compile(p, re.IGNORECASE) for p in [
        r"^\s*(?:summary|note|source|answer|explanation|solution)\s*:",
        r"^\s*\[[^\]]*\]\s*$",
        r"^\s*#{1,6}\s",
        r"^\s*(?:page|section|part)\s+[\divxl]+\s*$",
        r"^\s*(?:general\s+studies|gs)\s*(?:paper)?\s*[-–]?\s*[ivx\d]*\s*$",
        r"^\s*(?:question\s+paper|previous\s+year\s+questions?)\s*$",
    ]
]


def clean_html(html_text: str) -> str:
    """
    Remove HTML tags from text.

    Args:
        html_text: Text with HTML tags

    Returns:
        Clean text without HTML tags
    """
    clean = re.sub(r'<[^>]+>', '', html_text or '')
    clean = re.sub(r'\s+', ' ', clean).strip()
    # Remove "Q." prefix if present
    clean = re.sub(r'^Q\.\s*', '', clean)
    return clean


def dedup_key(text: str) -> str:
    """Lowercased, punctuation-free, whitespace-collapsed prefix of the question text."""
    key = re.sub(r"[^\w\s]", "", (text or "").lower())
    key = re.sub(r"\s+", " ", key).strip()
    return key[:DEDUP_KEY_LENGTH]


def is_noise(text: str) -> bool:
    if not text or len(text.strip()) < MIN_QUESTION_CHARS:
        return True
    return any(signature.search(text) for signature in NOISE_SIGNATURES)


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


def question_marker(question: ArchivedQuestion) -> str:
    if question.is_verified:
        return VERIFIED_MARK
    if question.has_analysis:
        return ANALYSIS_MARK
    return UNVERIFIED_MARK


class CuratedResult(BaseModel):
    """Questions that survived curation together with their rendered transcript."""
    content: str
    questions: List[ArchivedQuestion] = Field(default_factory=list)
    verified_count: int = 0
    unverified_count: int = 0
    capped: bool = False


class ResultCurator:
    """Curates raw archive rows into a readable transcript."""

    def __init__(self, min_year: int = 1990, max_question_chars: int = 2000):
        self.min_year = min_year
        self.max_question_chars = max_question_chars

    def _year_bounds(self, intent: SearchIntent) -> tuple:
        year_from = intent.from_year if intent.from_year is not None else self.min_year
        year_to = intent.to_year if intent.to_year is not None else datetime.now().year
        return year_from, year_to

    def select(self, questions: List[ArchivedQuestion], intent: SearchIntent) -> List[ArchivedQuestion]:
        """
        Rank verified-first then newest-first, drop noise, out-of-range years
        and duplicates (first occurrence wins), and truncate long texts.
        """
        year_from, year_to = self._year_bounds(intent)
        ranked = sorted(questions, key=lambda q: (not q.is_verified, -(q.year or 0)))

        selected: List[ArchivedQuestion] = []
        seen_keys = set()
        skipped = 0
        for question in ranked:
            text = clean_html(question.question_text)
            if is_noise(text) or not (year_from <= question.year <= year_to):
                skipped += 1
                continue
            key = dedup_key(text)
            if key in seen_keys:
                skipped += 1
                continue
            seen_keys.add(key)
            selected.append(question.model_copy(update={
                "question_text": truncate(text, self.max_question_chars)
            }))

        if skipped:
            logger.info(f"[ResultCurator] Skipped {skipped} noisy, duplicate or out-of-range rows")
        return selected

    @staticmethod
    def group_by_year(questions: List[ArchivedQuestion]) -> Dict[int, List[ArchivedQuestion]]:
        """Bucket questions by year, newest year first; bucket order follows the ranking."""
        buckets: Dict[int, List[ArchivedQuestion]] = {}
        for question in questions:
            buckets.setdefault(question.year, []).append(question)
        return {year: buckets[year] for year in sorted(buckets, reverse=True)}

    @staticmethod
    def format_line(number: int, question: ArchivedQuestion) -> str:
        label = f"{number}. [{question.paper or 'General'}] {question.question_text}"
        tags = ", ".join(question.topic_tags)
        if tags and tags.lower()[:20] not in question.question_text.lower():
            label += f" ({tags})"
        return f"{label} {question_marker(question)}"

    def render(self, questions: List[ArchivedQuestion], intent: SearchIntent, capped: bool) -> str:
        """Render curated questions as a markdown transcript. Deterministic for equal input."""
        verified_count = sum(1 for q in questions if q.is_verified)
        unverified_count = len(questions) - verified_count

        lines = [f"## 📚 Previous Year Questions ({intent.exam_code})"]
        if intent.topic:
            lines.append(f"**Topic:** {intent.topic}")
        if intent.from_year is not None or intent.to_year is not None:
            lines.append(f"**Year Range:** {intent.from_year or 'All'} to {intent.to_year or 'Present'}")
        lines.append("")

        for year, bucket in self.group_by_year(questions).items():
            plural = "s" if len(bucket) > 1 else ""
            lines.append(f"### 📅 {year} ({len(bucket)} question{plural})")
            lines.append("")
            for number, question in enumerate(bucket, 1):
                lines.append(self.format_line(number, question))
            lines.append("")

        lines.append("---")
        lines.append("")
        lines.append("### 📊 Summary")
        lines.append(f"**Total:** {len(questions)} question{'s' if len(questions) != 1 else ''}")
        if verified_count and unverified_count:
            lines.append(f"- {VERIFIED_MARK} Verified: {verified_count} (from official sources)")
            lines.append(f"- {UNVERIFIED_MARK} Unverified: {unverified_count} (please verify before use)")
        elif verified_count:
            lines.append(f"{VERIFIED_MARK} All verified from official sources")
        else:
            lines.append(f"{UNVERIFIED_MARK} All unverified - please verify before use")

        if capped:
            lines.append("")
            lines.append(f"💡 **Showing the first {intent.limit} matches.** Try a narrower query:")
            lines.append('- `"PYQ on [specific topic]"`')
            lines.append('- `"PYQ on Geography from 2020 to 2024"`')
            lines.append('- Say "more" for the next page')

        return "\n".join(lines)

    def curate(self, questions: List[ArchivedQuestion], intent: SearchIntent, limit: int) -> Optional[CuratedResult]:
        """
        Curate and render one page of results.

        Args:
            questions: Raw archive rows
            intent: Intent the rows were fetched for
            limit: Page size used for the fetch

        Returns:
            CuratedResult, or None if nothing usable remains
        """
        selected = self.select(questions or [], intent)
        if not selected:
            return None

        capped = len(questions) >= limit
        content = self.render(selected, intent, capped)
        verified_count = sum(1 for q in selected if q.is_verified)

        return CuratedResult(
            content=content,
            questions=selected,
            verified_count=verified_count,
            unverified_count=len(selected) - verified_count,
            capped=capped
        )

    def format_results(self, questions: List[ArchivedQuestion], intent: SearchIntent, limit: int) -> Optional[str]:
        curated = self.curate(questions, intent, limit)
        return curated.content if curated else None

    @staticmethod
    def render_solve_context(questions: List[ArchivedQuestion]) -> str:
        """Numbered block of questions for a "solve these" prompt."""
        if not questions:
            return ""
        lines = ["QUESTIONS TO SOLVE:"]
        for number, question in enumerate(questions, 1):
            source = f"{question.exam_code} {question.year}"
            if question.paper:
                source += f", {question.paper}"
            lines.append(f"{number}. ({source}) {clean_html(question.question_text)}")
        return "\n".join(lines)
