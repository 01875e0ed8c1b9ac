"""
Query interpreter for PYQ requests.

Turns loose chat text such as "give me geography PYQs from 2020 to 2024"
into a SearchIntent. Never raises: when nothing recognisable is found the
topic is left empty and the search runs on exam and year filters only.

Pipeline:
1. Normalize loose abbreviations ("qs" -> "questions")
2. Extract the year signal (range, then decade, then bare year)
3. Strip politeness/filler phrases
4. Extract the topic with ordered strategies, first match wins
5. Detect the exam code
6. Expand topic abbreviations ("eco" -> "economics")
"""
import re
from datetime import datetime
from typing import Any, Callable, List, NamedTuple, Optional, Tuple
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.schemas import SearchIntent
from pyq_retrieval.services.exam_detector import detect_exam_code, strip_exam_names


LOOSE_ABBREVIATIONS: List[Tuple[str, str]] = [
    (r"\b(?:previous|past|prev)\s+years?'?\s+(?:questions?|qs|ques|qns|papers?)\b", "pyq"),
    (r"\bp\.y\.q\.?(s?)\b", r"pyq\1"),
    (r"\b(?:qs|qns|ques|q's)\b", "questions"),
    (r"\b(?:pls|plz|plss)\b", "please"),
    (r"\bu\b", "you"),
    (r"\bthru\b", "through"),
]

YEAR = r"(?:19|20)\d{2}"

YEAR_RANGE = re.compile(
    rf"\b(?:(?:from|between|since)\s+)?({YEAR})s?\s*(?:to|till|until|through|and|-|–|—)\s*"
    rf"(present|now|today|date|current(?:\s+year)?|{YEAR})\b",
    re.IGNORECASE
)
YEAR_DECADE = re.compile(rf"\b(?:in\s+(?:the\s+)?)?((?:19|20)\d0)'?s\b", re.IGNORECASE)
YEAR_SINGLE = re.compile(rf"\b(?:(?:in|from|since|of|after|year)\s+)?({YEAR})\b", re.IGNORECASE)

PAGE_REQUEST = re.compile(r"\bpage\s*(?:no\.?\s*|number\s*)?(\d{1,3})\b", re.IGNORECASE)

FILLER_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in [
        r"\b(?:can|could|would|will)\s+you\b",
        r"\bplease\b",
        r"\bkindly\b",
        r"\b(?:give|show|get|send|tell|fetch|find)\s+me\b",
        r"\bi\s+(?:want|need|would\s+like)(?:\s+to\s+(?:see|get|practice|practise))?\b",
        r"\bhelp\s+me\s+with\b",
        r"\bthank\s+you\b|\bthanks\b",
        r"\bprovide\b",
    ]
]

RETRIEVAL_KEYWORD = r"(?:pyqs?|questions?|mcqs?|papers?)"

NOISE_WORDS = {
    "give", "show", "get", "find", "fetch", "list", "send", "share", "want", "need",
    "me", "us", "you", "i", "some", "all", "any", "few", "more", "many", "the", "a", "an",
    "of", "on", "about", "for", "to", "regarding", "related", "from", "with", "in", "and",
    "topic", "topics", "subject", "exam", "exams", "year", "years", "previous", "past",
    "last", "question", "questions", "pyq", "pyqs", "mcq", "mcqs", "paper", "papers",
    "please", "asked", "wise", "based", "prelims", "mains", "interview",
    "answer", "answers", "solution", "solutions",
    "aur", "ke", "ki", "ka", "ko", "se", "wale", "chahiye", "dikhao",
}

TOPIC_ABBREVIATIONS = {
    "eco": "economics",
    "econ": "economics",
    "geo": "geography",
    "hist": "history",
    "pol": "polity",
    "polsci": "political science",
    "env": "environment",
    "enviro": "environment",
    "evs": "environment",
    "sci": "science",
    "s&t": "science and technology",
    "scitech": "science and technology",
    "ir": "international relations",
    "agri": "agriculture",
    "a&c": "art and culture",
    "ca": "current affairs",
    "gk": "general knowledge",
    "gs": "general studies",
}

LIMIT_BROAD = 20
LIMIT_TOPIC_ONLY = 30
LIMIT_WITH_YEARS = 50

FALLBACK_MAX_WORDS = 3


def clean_topic(raw: Optional[str]) -> Optional[str]:
    """
    Strip retrieval keywords and leading/trailing noise words from a candidate topic.

    Returns:
        Cleaned topic, or None if nothing significant remains
    """
    if not raw:
        return None
    text = re.sub(rf"\b{RETRIEVAL_KEYWORD}\b", " ", raw, flags=re.IGNORECASE)
    words = [w.strip("\"'`*()[]{}") for w in text.split()]
    words = [w for w in words if w]

    while words and words[0].lower() in NOISE_WORDS:
        words.pop(0)
    while words and words[-1].lower() in NOISE_WORDS:
        words.pop()

    topic = " ".join(words).strip(" -:")
    if not topic or topic.isdigit():
        return None
    return topic


def expand_topic_abbreviations(topic: str) -> str:
    words = topic.split()
    return " ".join(TOPIC_ABBREVIATIONS.get(w.lower(), w) for w in words)


class TopicStrategy(NamedTuple):
    """An ordered topic-extraction rule: the predicate finds a candidate, the extractor cleans it."""
    name: str
    predicate: Callable[[str], Any]
    extractor: Callable[[Any], Optional[str]]


def _topic_group(match: re.Match) -> Optional[str]:
    return clean_topic(match.group("topic"))


def _fallback_words(text: str) -> Optional[str]:
    words = [w for w in re.findall(r"[\w&'-]+", text) if w.lower() not in NOISE_WORDS and not w.isdigit()]
    if not words:
        return None
    return " ".join(words[:FALLBACK_MAX_WORDS])


_PREPOSITION_LED = re.compile(
    r"\b(?:on|about|regarding|related\s+to|for|of)\s+(?P<topic>[^.,;:?!\n]+)",
    re.IGNORECASE
)
_AFTER_KEYWORD = re.compile(
    rf"\b{RETRIEVAL_KEYWORD}\s+(?:(?:on|about|regarding|related\s+to|for|of)\s+)?(?P<topic>[^.,;:?!\n]+)",
    re.IGNORECASE
)
_BEFORE_KEYWORD = re.compile(
    rf"(?P<topic>[^.,;:?!\n]+?)\s+{RETRIEVAL_KEYWORD}\b",
    re.IGNORECASE
)
_VERB_LED = re.compile(
    r"\b(?:show|give|get|find|fetch|list|send|share|want|need)\s+(?P<topic>[^.,;:?!\n]+)",
    re.IGNORECASE
)

TOPIC_STRATEGIES: List[TopicStrategy] = [
    TopicStrategy("preposition_led", _PREPOSITION_LED.search, _topic_group),
    TopicStrategy("after_keyword", _AFTER_KEYWORD.search, _topic_group),
    TopicStrategy("before_keyword", _BEFORE_KEYWORD.search, _topic_group),
    TopicStrategy("verb_led", _VERB_LED.search, _topic_group),
    TopicStrategy("fallback", lambda text: text if text.strip() else None, _fallback_words),
]


def calculate_limit(topic: str, from_year: Optional[int], to_year: Optional[int]) -> int:
    """Page size: broader requests get smaller pages."""
    if from_year is not None or to_year is not None:
        return LIMIT_WITH_YEARS
    if topic:
        return LIMIT_TOPIC_ONLY
    return LIMIT_BROAD


class QueryInterpreter:
    """Parses raw chat text into a SearchIntent."""

    def __init__(
        self,
        default_exam_code: str = "UPSC",
        current_year: Optional[int] = None,
        strategies: Optional[List[TopicStrategy]] = None
    ):
        self.default_exam_code = default_exam_code
        self._current_year = current_year
        self.strategies = strategies if strategies is not None else TOPIC_STRATEGIES

    @property
    def current_year(self) -> int:
        return self._current_year or datetime.now().year

    def normalize(self, text: str) -> str:
        normalized = text or ""
        for pattern, replacement in LOOSE_ABBREVIATIONS:
            normalized = re.sub(pattern, replacement, normalized, flags=re.IGNORECASE)
        return re.sub(r"\s+", " ", normalized).strip()

    def extract_years(self, text: str) -> Tuple[Optional[int], Optional[int], str]:
        """
        Extract a year range and remove it from the text.

        A bare year means "from that year through the current year",
        not that single year.

        Returns:
            (from_year, to_year, remaining_text)
        """
        match = YEAR_RANGE.search(text)
        if match:
            from_year = int(match.group(1))
            end = match.group(2).lower()
            to_year = int(end) if end.isdigit() else self.current_year
            if from_year > to_year:
                from_year, to_year = to_year, from_year
            return from_year, to_year, self._cut(text, match)

        match = YEAR_DECADE.search(text)
        if match:
            from_year = int(match.group(1))
            return from_year, from_year + 9, self._cut(text, match)

        match = YEAR_SINGLE.search(text)
        if match:
            from_year = int(match.group(1))
            return from_year, max(from_year, self.current_year), self._cut(text, match)

        return None, None, text

    def extract_page(self, text: str) -> Tuple[Optional[int], str]:
        match = PAGE_REQUEST.search(text)
        if not match:
            return None, text
        page = int(match.group(1))
        return (page if page >= 1 else None), self._cut(text, match)

    def strip_fillers(self, text: str) -> str:
        for pattern in FILLER_PATTERNS:
            text = pattern.sub(" ", text)
        return re.sub(r"\s+", " ", text).strip()

    def extract_topic(self, text: str) -> str:
        """Run the topic strategies in priority order; first one yielding a topic wins."""
        for strategy in self.strategies:
            candidate = strategy.predicate(text)
            if not candidate:
                continue
            topic = strategy.extractor(candidate)
            if topic:
                logger.debug(f"[QueryInterpreter] Topic '{topic}' via {strategy.name}")
                return topic
        return ""

    @staticmethod
    def _cut(text: str, match: re.Match) -> str:
        return re.sub(r"\s+", " ", f"{text[:match.start()]} {text[match.end():]}").strip()

    def interpret(self, text: str, language_hint: Optional[str] = "en") -> SearchIntent:
        """
        Parse raw user text into a SearchIntent.

        Args:
            text: Raw chat message
            language_hint: ISO language code of the conversation

        Returns:
            SearchIntent (topic may be empty)
        """
        original = text or ""
        try:
            working = self.normalize(original)
            from_year, to_year, working = self.extract_years(working)
            page, working = self.extract_page(working)
            working = self.strip_fillers(working)

            exam_code = detect_exam_code(original, language_hint, self.default_exam_code)
            working = re.sub(r"\s+", " ", strip_exam_names(working)).strip()

            topic = self.extract_topic(working)
            if topic:
                topic = expand_topic_abbreviations(topic)

            limit = calculate_limit(topic, from_year, to_year)
            offset = (page - 1) * limit if page else 0

            intent = SearchIntent(
                topic=topic,
                from_year=from_year,
                to_year=to_year,
                exam_code=exam_code,
                offset=offset,
                limit=limit,
                original_query=original
            )
            logger.info(
                f"[QueryInterpreter] topic='{intent.topic}', years={intent.from_year}-{intent.to_year}, "
                f"exam={intent.exam_code}, offset={intent.offset}, limit={intent.limit}"
            )
            return intent

        except Exception as e:
            logger.error(f"[QueryInterpreter] Failed to interpret '{original[:100]}': {e}", exc_info=True)
            return SearchIntent(
                exam_code=self.default_exam_code,
                limit=LIMIT_BROAD,
                original_query=original
            )
