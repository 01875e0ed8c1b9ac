"""
Retrieval engine facade.

Flow for one call:
1. New query: interpret text -> SearchIntent; follow-up: reuse the stored intent
2. Cache lookup on the normalized intent key
3. On miss: expand topic -> search archive -> curate -> cache write
4. Write (or clear) the conversation context
5. Return {content, context, count} or None

`search` never raises. Empty results and internal failures both return
None; `search_with_outcome` exposes which one happened.
"""
from typing import Any, Dict, List, Optional, Tuple
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.context_schemas import CacheEntry, ConversationContext
from pyq_retrieval.models.schemas import ArchivedQuestion, SearchIntent, SearchOutcome, SearchResult
from pyq_retrieval.services.archive import ParquetQuestionArchive, QuestionArchive
from pyq_retrieval.services.context_store import ConversationContextStore
from pyq_retrieval.services.durable_cache import RedisDurableCache
from pyq_retrieval.services.query_interpreter import QueryInterpreter
from pyq_retrieval.services.result_curator import ResultCurator
from pyq_retrieval.services.search_executor import SearchExecutor
from pyq_retrieval.services.theme_expander import ThemeExpander
from pyq_retrieval.services.tiered_cache import CACHE_MISS, TieredCache


class RetrievalEngine:
    """Conversational PYQ retrieval: interpret, search, curate, cache, remember."""

    def __init__(
        self,
        archive: QuestionArchive,
        cache: TieredCache,
        context_store: ConversationContextStore,
        interpreter: Optional[QueryInterpreter] = None,
        expander: Optional[ThemeExpander] = None,
        executor: Optional[SearchExecutor] = None,
        curator: Optional[ResultCurator] = None
    ):
        self.archive = archive
        self.cache = cache
        self.context_store = context_store
        self.interpreter = interpreter or QueryInterpreter()
        self.expander = expander or ThemeExpander()
        self.executor = executor or SearchExecutor(archive)
        self.curator = curator or ResultCurator()

    @staticmethod
    def _cache_payload(content: str, count: int, question_ids: List[str]) -> Dict[str, Any]:
        return {"content": content, "count": count, "question_ids": question_ids}

    def _remember(self, conversation_key: Optional[str], result: SearchResult) -> None:
        if not conversation_key:
            return
        self.context_store.set(conversation_key, ConversationContext(
            conversation_key=conversation_key,
            intent=result.context,
            shown_question_ids=result.question_ids
        ))

    def _forget(self, conversation_key: Optional[str], is_follow_up: bool) -> None:
        if conversation_key and is_follow_up:
            self.context_store.clear(conversation_key)
            logger.info(f"[RetrievalEngine] No further results, cleared context for {conversation_key}")

    async def search_with_outcome(
        self,
        raw_text: str,
        previous_context: Optional[SearchIntent] = None,
        language_hint: Optional[str] = "en",
        conversation_key: Optional[str] = None
    ) -> Tuple[SearchOutcome, Optional[SearchResult]]:
        """
        Run one retrieval call and report its terminal state.

        Args:
            raw_text: User message
            previous_context: Intent from the previous page for a follow-up, else None
            language_hint: ISO language code, used for exam detection
            conversation_key: When given, the conversation context is updated

        Returns:
            (outcome, result); result is None for EMPTY and FAILED
        """
        is_follow_up = previous_context is not None
        try:
            if is_follow_up:
                intent = previous_context
                logger.info(f"[RetrievalEngine] Follow-up search at offset {intent.offset}")
            else:
                intent = self.interpreter.interpret(raw_text, language_hint)

            cache_key = intent.cache_key()
            cached = await self.cache.get(cache_key)
            if cached is not CACHE_MISS and isinstance(cached, dict) and cached.get("content"):
                count = int(cached.get("count") or 0)
                result = SearchResult(
                    content=cached["content"],
                    context=intent.next_page(count),
                    count=count,
                    question_ids=list(cached.get("question_ids") or [])
                )
                self._remember(conversation_key, result)
                logger.info(f"[RetrievalEngine] Cache hit for {cache_key}")
                return SearchOutcome.CACHE_HIT, result

            tokens = self.expander.expand(intent.topic) if intent.topic else []
            questions = await self.executor.execute(intent, tokens)

            if not questions:
                logger.info(f"[RetrievalEngine] No archive rows for {cache_key}")
                self._forget(conversation_key, is_follow_up)
                return SearchOutcome.EMPTY, None

            curated = self.curator.curate(questions, intent, intent.limit)
            if curated is None:
                logger.info(f"[RetrievalEngine] All {len(questions)} rows removed by curation")
                self._forget(conversation_key, is_follow_up)
                return SearchOutcome.EMPTY, None

            question_ids = [q.id for q in curated.questions]
            result = SearchResult(
                content=curated.content,
                context=intent.next_page(len(questions)),
                count=len(questions),
                question_ids=question_ids
            )

            await self.cache.set(cache_key, self._cache_payload(curated.content, len(questions), question_ids))
            self._remember(conversation_key, result)

            logger.info(
                f"[RetrievalEngine] Curated {len(question_ids)} of {len(questions)} rows, "
                f"next offset {result.context.offset}"
            )
            return SearchOutcome.CURATED, result

        except Exception as e:
            logger.error(f"[RetrievalEngine] Search failed: {e}", exc_info=True)
            self._forget(conversation_key, is_follow_up)
            return SearchOutcome.FAILED, None

    async def search(
        self,
        raw_text: str,
        previous_context: Optional[SearchIntent] = None,
        language_hint: Optional[str] = "en",
        conversation_key: Optional[str] = None
    ) -> Optional[SearchResult]:
        """
        Search archived questions for a chat message.

        Returns:
            SearchResult, or None for "no matching questions" and for internal failures alike
        """
        _, result = await self.search_with_outcome(raw_text, previous_context, language_hint, conversation_key)
        return result

    def get_context(self, conversation_key: str) -> Optional[ConversationContext]:
        return self.context_store.get(conversation_key)

    def set_context(self, conversation_key: str, context: ConversationContext) -> None:
        self.context_store.set(conversation_key, context)

    def clear_context(self, conversation_key: str) -> None:
        self.context_store.clear(conversation_key)

    async def get_shown_questions(self, conversation_key: str) -> List[ArchivedQuestion]:
        """Questions shown on the last page of a conversation, for "solve these" follow-ups."""
        context = self.context_store.get(conversation_key)
        if context is None or not context.shown_question_ids:
            return []
        try:
            return await self.archive.get_by_ids(context.shown_question_ids)
        except Exception as e:
            logger.error(f"[RetrievalEngine] Failed to load shown questions: {e}")
            return []

    async def build_solve_context(self, conversation_key: str) -> str:
        """Numbered "questions to solve" block for the last page shown, or "" if none."""
        questions = await self.get_shown_questions(conversation_key)
        return self.curator.render_solve_context(questions)

    async def cache_entries(self, limit: int = 50) -> List[CacheEntry]:
        return await self.cache.entries(limit)

    async def close(self) -> None:
        await self.cache.close()
        logger.info("[RetrievalEngine] Closed")


def create_engine(settings) -> RetrievalEngine:
    """
    Build the engine and its collaborators from application settings.

    Args:
        settings: Settings instance (see core.config)

    Returns:
        RetrievalEngine ready for use; call close() on shutdown
    """
    durable = RedisDurableCache(settings.redis_url) if settings.redis_url else None
    if durable is None:
        logger.info("[RetrievalEngine] No redis_url configured, cache is in-process only")

    cache = TieredCache(
        durable=durable,
        namespace=settings.cache_namespace,
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
        max_payload_bytes=settings.cache_max_payload_bytes
    )
    archive = ParquetQuestionArchive(settings.archive_parquet_path)

    return RetrievalEngine(
        archive=archive,
        cache=cache,
        context_store=ConversationContextStore(ttl_seconds=settings.context_ttl_seconds),
        interpreter=QueryInterpreter(default_exam_code=settings.default_exam_code),
        executor=SearchExecutor(archive, min_year=settings.min_archive_year),
        curator=ResultCurator(
            min_year=settings.min_archive_year,
            max_question_chars=settings.max_question_chars
        )
    )
