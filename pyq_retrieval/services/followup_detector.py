"""
Follow-up detection for PYQ conversations.
Decides whether a message continues the previous PYQ search ("more",
"next page") or asks to solve the questions just shown, before the
retrieval engine is invoked. A message that names its own topic is a
new search, whatever follow-up words it also contains.
"""
import re
from typing import Optional
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.context_schemas import ConversationContext
from pyq_retrieval.models.schemas import FollowUpKind
from pyq_retrieval.services.query_interpreter import QueryInterpreter


# Short messages only; longer ones are treated as new requests
MAX_FOLLOW_UP_WORDS = 6

SOLVE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in [
        r"\bsolve\b",
        r"\b(?:answers?|solutions?)\b",
        r"\bexplain\s+(?:these|them|those|all)\b",
        r"\bhal\s+kar(?:o|ke|do)\b",
        r"\buttar\s+(?:do|batao)\b",
    ]
]

MORE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in [
        r"^\s*(?:show\s+|give\s+|load\s+)?(?:me\s+)?(?:some\s+)?more\b",
        r"\bnext(?:\s+(?:page|set|batch|questions?))?\b",
        r"\bcontinue\b",
        r"\bkeep\s+going\b",
        r"\b(?:aur|aage|agla|agle)\b",
        r"^\s*(?:more|next)\s*(?:pyqs?|questions?|please|pls)?\s*[.!]*\s*$",
    ]
]

# A year always means a different filter, so a fresh search
YEAR_HINT = re.compile(r"\b(?:19|20)\d{2}\b")

# Words that carry the follow-up request itself; whatever remains may name a topic
FOLLOW_UP_WORDS = {
    "solve", "these", "them", "those", "this", "all", "explain", "answer", "answers",
    "solution", "solutions", "with", "hal", "karo", "karke", "kardo", "uttar", "do", "batao",
    "more", "next", "page", "set", "batch", "continue", "keep", "going", "aur", "aage",
    "agla", "agle", "ke", "ki", "ka", "show", "give", "load", "me", "some", "please", "pls",
    "the", "for", "of", "and", "now",
}


def _normalized(topic: str) -> str:
    return " ".join((topic or "").lower().split())


class FollowUpDetector:
    """Lexical classifier for PYQ follow-up messages."""

    def __init__(self, interpreter: Optional[QueryInterpreter] = None):
        self.interpreter = interpreter or QueryInterpreter()

    def own_topic(self, text: str) -> str:
        """Topic the message names once follow-up vocabulary is removed, or ""."""
        words = [w for w in re.findall(r"[\w&'-]+", text) if w.lower() not in FOLLOW_UP_WORDS]
        if not words:
            return ""
        return self.interpreter.interpret(" ".join(words)).topic

    def detect(self, message: str, context: Optional[ConversationContext]) -> FollowUpKind:
        """
        Classify a message relative to the stored conversation context.

        Args:
            message: Current user message
            context: Stored PYQ context for the conversation, if any

        Returns:
            FollowUpKind.MORE / SOLVE when the message continues the stored
            search, FollowUpKind.NEW otherwise
        """
        if context is None:
            return FollowUpKind.NEW

        text = (message or "").strip()
        if not text or len(text.split()) > MAX_FOLLOW_UP_WORDS:
            return FollowUpKind.NEW

        if YEAR_HINT.search(text):
            return FollowUpKind.NEW

        # "PYQ on economy with answers" asks for a new topic, not the last page
        topic = self.own_topic(text)
        if topic and _normalized(topic) != _normalized(context.intent.topic):
            logger.info(f"[FollowUpDetector] New topic '{topic}' in '{text}'")
            return FollowUpKind.NEW

        if any(p.search(text) for p in SOLVE_PATTERNS):
            logger.info(f"[FollowUpDetector] Solve follow-up: '{text}'")
            return FollowUpKind.SOLVE

        if any(p.search(text) for p in MORE_PATTERNS):
            logger.info(f"[FollowUpDetector] Pagination follow-up: '{text}'")
            return FollowUpKind.MORE

        return FollowUpKind.NEW


# Global follow-up detector instance
followup_detector = FollowUpDetector()
