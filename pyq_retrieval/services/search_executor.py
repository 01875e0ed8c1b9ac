"""
Search executor: turns a SearchIntent plus expanded topic tokens into an
archive query, runs it, and retries once with an exact-phrase-only pattern
if the first attempt fails.
"""
import re
from datetime import datetime
from typing import List, Optional
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.schemas import ArchivedQuestion, SearchIntent
from pyq_retrieval.services.archive import ArchiveQuery, QuestionArchive, TEXT_FIELDS
from pyq_retrieval.services.theme_expander import phrase_pattern
from pyq_retrieval.utils.exceptions import ArchiveUnavailableError


class SearchExecutor:
    """Runs filtered archive searches with one simplified retry."""

    def __init__(self, archive: QuestionArchive, min_year: int = 1990):
        self.archive = archive
        self.min_year = min_year

    def year_bounds(self, intent: SearchIntent) -> tuple:
        """Inclusive (from, to) bounds; open ends default to min_year and the current year."""
        year_from = intent.from_year if intent.from_year is not None else self.min_year
        year_to = intent.to_year if intent.to_year is not None else datetime.now().year
        return year_from, year_to

    @staticmethod
    def build_pattern(topic: str, tokens: List[str]) -> Optional[str]:
        """
        Combine the exact topic phrase and every expanded token into one alternation.

        Returns:
            Regex source, or None when there is no topic
        """
        parts: List[str] = []
        if topic and topic.strip():
            parts.append(phrase_pattern(topic.strip()))
        for token in tokens:
            if token and token not in parts:
                parts.append(token)
        if not parts:
            return None
        return "|".join(f"(?:{part})" for part in parts)

    def build_query(self, intent: SearchIntent, pattern: Optional[str]) -> ArchiveQuery:
        year_from, year_to = self.year_bounds(intent)
        return ArchiveQuery(
            exam_code=intent.exam_code,
            year_from=year_from,
            year_to=year_to,
            pattern=pattern,
            fields=TEXT_FIELDS,
            skip=intent.offset,
            limit=intent.limit
        )

    async def execute(self, intent: SearchIntent, tokens: List[str]) -> List[ArchivedQuestion]:
        """
        Search the archive for one page of questions.

        Args:
            intent: Parsed search intent (exam, years, offset, limit)
            tokens: Expanded topic tokens from ThemeExpander

        Returns:
            Raw questions, newest first (possibly empty)

        Raises:
            ArchiveUnavailableError: If both the full and the simplified query fail
        """
        query = self.build_query(intent, self.build_pattern(intent.topic, tokens))

        try:
            return await self.archive.find(query)
        except Exception as e:
            logger.warning(f"[SearchExecutor] Archive query failed, retrying with exact phrase only: {e}")

        simplified = self.build_query(
            intent,
            re.escape(intent.topic.strip()) if intent.topic.strip() else None
        )
        try:
            return await self.archive.find(simplified)
        except Exception as e:
            logger.error(f"[SearchExecutor] Simplified archive query failed: {e}")
            raise ArchiveUnavailableError(f"Archive query failed: {e}") from e
