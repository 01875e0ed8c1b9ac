"""
Theme expansion for PYQ topic search.

Widens a topic phrase into regex-safe search tokens: each significant word
with its common suffix variants, its synonyms (one extra hop, no further),
and a stemmed root. The archive is sparse and users phrase topics
inconsistently, so recall wins over precision here.
"""
import re
from typing import Dict, List, Set, Tuple


STOP_WORDS: Set[str] = {
    "a", "an", "the", "and", "or", "of", "in", "on", "for", "to", "with", "about",
    "by", "at", "from", "is", "are", "be", "its", "their", "related", "regarding",
    "topic", "topics", "question", "questions", "pyq", "pyqs", "based", "some", "all",
}

# Declared one way; _build_synonym_index makes every link bidirectional.
SYNONYM_GROUPS: Dict[str, List[str]] = {
    "economics": ["economy", "economic", "fiscal", "monetary", "budget", "inflation", "gdp", "banking"],
    "geography": ["geographical", "physical geography", "climate", "monsoon", "rivers", "landforms"],
    "history": ["historical", "ancient", "medieval", "modern india", "freedom struggle"],
    "polity": ["constitution", "constitutional", "parliament", "governance", "judiciary", "fundamental rights"],
    "environment": ["ecology", "biodiversity", "climate change", "pollution", "conservation"],
    "science": ["technology", "scientific", "biotechnology", "space"],
    "culture": ["art", "heritage", "architecture", "dance", "painting"],
    "agriculture": ["farming", "crops", "irrigation", "farmers"],
    "international relations": ["foreign policy", "diplomacy", "bilateral", "united nations"],
    "ethics": ["integrity", "aptitude", "moral", "values"],
    "security": ["defence", "terrorism", "insurgency", "cyber security"],
    "society": ["social", "women", "population", "urbanization"],
    "disaster": ["disaster management", "flood", "earthquake", "cyclone"],
}

# (suffix, replacement); first matching rule wins
STEM_RULES: List[Tuple[str, str]] = [
    ("ics", ""),
    ("ical", ""),
    ("ation", ""),
    ("tion", ""),
    ("ies", ""),
    ("ism", ""),
    ("ing", ""),
]

SUFFIX_VARIANTS = r"(?:s|es|al|ic|ics|ical|ly)?"

MIN_ROOT_LENGTH = 3


def _build_synonym_index(groups: Dict[str, List[str]]) -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}

    def link(a: str, b: str) -> None:
        bucket = index.setdefault(a, [])
        if b not in bucket:
            bucket.append(b)

    for head, synonyms in groups.items():
        for synonym in synonyms:
            link(head, synonym)
            link(synonym, head)
    return index


SYNONYM_INDEX = _build_synonym_index(SYNONYM_GROUPS)


def phrase_pattern(phrase: str) -> str:
    """Escape a phrase for regex use, letting any whitespace run separate its words."""
    return r"\s+".join(re.escape(part) for part in phrase.split())


def stem(word: str) -> str:
    """
    Strip one known suffix.

    Returns:
        The root, or the word itself when no rule yields a root of
        at least MIN_ROOT_LENGTH characters
    """
    for suffix, replacement in STEM_RULES:
        if word.endswith(suffix):
            root = word[: -len(suffix)] + replacement
            if len(root) >= MIN_ROOT_LENGTH and root != word:
                return root
            break
    return word


class ThemeExpander:
    """Expands a topic phrase into lexical search tokens."""

    def __init__(self, synonym_index: Dict[str, List[str]] = None):
        self.synonym_index = synonym_index if synonym_index is not None else SYNONYM_INDEX

    def significant_words(self, topic: str) -> List[str]:
        words = re.findall(r"[a-z0-9]+(?:['&-][a-z0-9]+)*", (topic or "").lower())
        return [w for w in words if w not in STOP_WORDS and len(w) > 1]

    def synonyms_of(self, term: str) -> List[str]:
        """Direct synonyms plus synonyms of those synonyms, never deeper."""
        direct = self.synonym_index.get(term, [])
        collected: List[str] = []
        for synonym in direct:
            if synonym != term and synonym not in collected:
                collected.append(synonym)
        for synonym in direct:
            for second_hop in self.synonym_index.get(synonym, []):
                if second_hop != term and second_hop not in collected:
                    collected.append(second_hop)
        return collected

    def _collect(self, topic: str) -> List[Tuple[str, str]]:
        """Ordered (term, kind) pairs; kind is 'word', 'synonym' or 'root'."""
        words = self.significant_words(topic)
        collected: List[Tuple[str, str]] = []
        seen: Set[Tuple[str, str]] = set()

        def add(term: str, kind: str) -> None:
            if (term, kind) not in seen:
                seen.add((term, kind))
                collected.append((term, kind))

        lookups = list(words)
        phrase = " ".join(words)
        if len(words) > 1 and phrase in self.synonym_index:
            lookups.insert(0, phrase)

        for word in words:
            add(word, "word")
        for term in lookups:
            for synonym in self.synonyms_of(term):
                add(synonym, "synonym")
        for word in words:
            root = stem(word)
            if root != word:
                add(root, "root")
        return collected

    def related_terms(self, topic: str) -> List[str]:
        """Plain-text terms the topic expands to, in expansion order."""
        terms: List[str] = []
        for term, _ in self._collect(topic):
            if term not in terms:
                terms.append(term)
        return terms

    def expand(self, topic: str) -> List[str]:
        """
        Expand a topic phrase into regex-safe search tokens.

        Args:
            topic: Topic phrase, e.g. "Indian economics"

        Returns:
            Ordered list of regex fragments; empty for an empty topic
        """
        tokens: List[str] = []
        for term, kind in self._collect(topic):
            if kind == "root":
                token = rf"\b{re.escape(term)}\w*"
            else:
                token = rf"\b{phrase_pattern(term)}{SUFFIX_VARIANTS}\b"
            if token not in tokens:
                tokens.append(token)
        return tokens
