"""
Per-conversation PYQ context with its own TTL.
Remembers the last search intent and the question ids shown so that
"more" and "solve these" follow-ups can continue without repeating the query.
"""
import time
from typing import Callable, Dict, Optional
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.context_schemas import ConversationContext


class ConversationContextStore:
    """In-process store: conversation key -> ConversationContext."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._contexts: Dict[str, ConversationContext] = {}

    def _is_expired(self, context: ConversationContext) -> bool:
        return self.clock() - context.last_updated > self.ttl_seconds

    def get(self, conversation_key: Optional[str]) -> Optional[ConversationContext]:
        if not conversation_key:
            return None
        context = self._contexts.get(conversation_key)
        if context is None:
            return None
        if self._is_expired(context):
            del self._contexts[conversation_key]
            logger.info(f"[ContextStore] Context expired for {conversation_key}")
            return None
        return context

    def set(self, conversation_key: Optional[str], context: Optional[ConversationContext]) -> None:
        """Overwrite the context of a conversation, stamping it with the current time."""
        if not conversation_key or context is None:
            return
        self._contexts[conversation_key] = context.model_copy(update={
            "conversation_key": conversation_key,
            "last_updated": self.clock()
        })

    def clear(self, conversation_key: Optional[str]) -> None:
        if not conversation_key:
            return
        self._contexts.pop(conversation_key, None)

    def prune_expired(self) -> int:
        """
        Drop every expired context.

        Returns:
            Number of contexts removed
        """
        expired = [key for key, context in self._contexts.items() if self._is_expired(context)]
        for key in expired:
            del self._contexts[key]
        if expired:
            logger.info(f"[ContextStore] Pruned {len(expired)} expired contexts")
        return len(expired)

    def __len__(self) -> int:
        return len(self._contexts)
