"""
Shared fixtures: an in-memory question archive, a fake durable cache and a
controllable clock.
"""
import fnmatch
from typing import Dict, List, Optional, Tuple

import pytest

from pyq_retrieval.services.archive import ParquetQuestionArchive
from pyq_retrieval.services.context_store import ConversationContextStore
from pyq_retrieval.services.durable_cache import DurableCache
from pyq_retrieval.services.retrieval_engine import RetrievalEngine
from pyq_retrieval.services.tiered_cache import TieredCache
from pyq_retrieval.services.query_interpreter import QueryInterpreter
from pyq_retrieval.services.result_curator import ResultCurator
from pyq_retrieval.services.search_executor import SearchExecutor


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDurableCache(DurableCache):
    """Dict-backed durable cache honouring expiry, with failure toggles."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.store: Dict[str, Tuple[str, Optional[float]]] = {}
        self.fail_get = False
        self.fail_set = False
        self.fail_keys = False
        self.set_calls: List[Tuple[str, str, int]] = []
        self.closed = False

    def put_raw(self, key: str, raw: str) -> None:
        self.store[key] = (raw, None)

    def _live(self, key: str) -> Optional[str]:
        item = self.store.get(key)
        if item is None:
            return None
        raw, expires_at = item
        if expires_at is not None and self.clock() >= expires_at:
            del self.store[key]
            return None
        return raw

    async def get(self, key):
        if self.fail_get:
            raise ConnectionError("durable cache down")
        return self._live(key)

    async def set(self, key, value, expiry_ms):
        if self.fail_set:
            raise ConnectionError("durable cache down")
        self.set_calls.append((key, value, expiry_ms))
        self.store[key] = (value, self.clock() + expiry_ms / 1000)

    async def keys(self, pattern):
        if self.fail_keys:
            raise ConnectionError("durable cache down")
        return [k for k in list(self.store) if fnmatch.fnmatch(k, pattern) and self._live(k) is not None]

    async def mget(self, keys):
        return [self._live(k) for k in keys]

    async def close(self):
        self.closed = True


def make_question(qid, year, question, exam="UPSC", tags=None, verified=False,
                  source_link=None, paper="GS Paper I", theme=None, analysis=None):
    return {
        "id": qid,
        "exam": exam,
        "level": "Mains",
        "paper": paper,
        "year": year,
        "question": question,
        "topicTags": tags or [],
        "sourceLink": source_link,
        "verified": verified,
        "createdAt": "2024-01-01T00:00:00Z",
        "theme": theme,
        "analysis": analysis,
        "lang": "en",
    }


SAMPLE_RECORDS = [
    make_question("geo-2023", 2023, "Discuss the role of monsoon winds in shaping Indian agriculture patterns.",
                  tags=["Geography"], verified=True),
    make_question("geo-2021", 2021, "Explain the formation of Himalayan rivers and their drainage patterns.",
                  tags=["Geography", "Rivers"], source_link="https://upsc.gov.in/papers/2021"),
    make_question("geo-2022-dup", 2022, "Discuss the role of Monsoon winds in shaping Indian agriculture patterns!",
                  tags=["Geography"]),
    make_question("geo-noise", 2020, "Summary: geography", tags=["Geography"]),
    make_question("eco-2019", 2019, "What are the causes of inflation in the Indian economy?",
                  tags=["Economy"], analysis="Demand-pull and cost-push factors."),
    make_question("eco-2015", 2015, "Evaluate the fiscal policy measures taken after the 1991 reforms.",
                  theme="economics"),
    make_question("tn-geo-2020", 2020, "Describe the physical features of the Western Ghats region.",
                  exam="TNPSC", tags=["Geography"]),
    make_question("geo-1985", 1985, "Describe the geography of ancient trade routes across the subcontinent.",
                  tags=["Geography"]),
]


def make_polity_records(count: int) -> List[dict]:
    """Distinct polity questions spread over 2000-2024."""
    return [
        make_question(
            f"pol-{i:03d}",
            2000 + i % 25,
            f"Question {i}: Discuss constitutional provision number {i} relating to the Parliament of India.",
            tags=["Polity"],
            verified=i % 3 == 0,
        )
        for i in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def durable(clock):
    return FakeDurableCache(clock)


@pytest.fixture
def archive():
    return ParquetQuestionArchive.from_records(SAMPLE_RECORDS)


@pytest.fixture
def polity_archive():
    return ParquetQuestionArchive.from_records(make_polity_records(120))


def build_engine(archive, clock, durable=None) -> RetrievalEngine:
    return RetrievalEngine(
        archive=archive,
        cache=TieredCache(durable=durable, ttl_seconds=900, max_entries=250, clock=clock),
        context_store=ConversationContextStore(ttl_seconds=3600, clock=clock),
        interpreter=QueryInterpreter(default_exam_code="UPSC", current_year=2024),
        executor=SearchExecutor(archive, min_year=1990),
        curator=ResultCurator(min_year=1990, max_question_chars=2000),
    )


@pytest.fixture
def engine(archive, clock):
    return build_engine(archive, clock)


@pytest.fixture
def polity_engine(polity_archive, clock):
    return build_engine(polity_archive, clock)
