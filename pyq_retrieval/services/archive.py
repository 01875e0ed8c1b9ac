"""
Question archive access.

The archive is owned elsewhere; this module only reads it. Documents carry
the fields exam, level, paper, year, question, topicTags, sourceLink,
verified, createdAt (plus optional theme, analysis, lang).
"""
import math
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple
import pandas as pd
import pyarrow.parquet as pq
from pydantic import BaseModel, Field
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.schemas import ArchivedQuestion, question_from_record


ARCHIVE_COLUMNS = [
    "id", "exam", "level", "paper", "year", "question", "topicTags",
    "sourceLink", "verified", "createdAt", "theme", "analysis", "lang",
]

TEXT_FIELDS: Tuple[str, ...] = ("question", "topicTags", "theme")


class ArchiveQuery(BaseModel):
    """Filter criteria for one archive lookup."""
    exam_code: str = Field(..., description="Exact exam code (case-insensitive)")
    year_from: int = Field(..., description="Inclusive lower year bound")
    year_to: int = Field(..., description="Inclusive upper year bound")
    pattern: Optional[str] = Field(default=None, description="Case-insensitive regex OR'd across text fields")
    fields: Tuple[str, ...] = Field(default=TEXT_FIELDS, description="Fields the pattern is matched against")
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1)


class QuestionArchive(ABC):
    """Read-only access to archived questions."""

    @abstractmethod
    async def find(self, query: ArchiveQuery) -> List[ArchivedQuestion]:
        """
        Run a filtered lookup sorted by year, newest first.

        Raises:
            Exception: Any storage or pattern error; callers decide how to recover
        """
        pass

    @abstractmethod
    async def get_by_ids(self, ids: Iterable[str]) -> List[ArchivedQuestion]:
        """Fetch questions by id, in the order the ids were given."""
        pass


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _clean_record(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: (None if _is_missing(value) else value) for key, value in record.items()}


def _tags_match(tags: Any, regex: re.Pattern) -> bool:
    if _is_missing(tags):
        return False
    if isinstance(tags, str):
        tags = [tags]
    return any(regex.search(str(tag)) for tag in tags)


class ParquetQuestionArchive(QuestionArchive):
    """Question archive held in a pandas DataFrame loaded from a parquet file."""

    def __init__(self, parquet_file_path: Optional[str] = None, dataframe: Optional[pd.DataFrame] = None):
        """
        Args:
            parquet_file_path: Parquet file to load lazily on first use
            dataframe: Pre-loaded frame (takes precedence over the file)
        """
        self.parquet_file_path = parquet_file_path
        self._df = dataframe

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]]) -> "ParquetQuestionArchive":
        return cls(dataframe=pd.DataFrame(records, columns=ARCHIVE_COLUMNS))

    def _frame(self) -> pd.DataFrame:
        if self._df is not None:
            return self._df

        if not self.parquet_file_path:
            logger.warning("[Archive] No parquet file configured, archive is empty")
            self._df = pd.DataFrame(columns=ARCHIVE_COLUMNS)
            return self._df

        if not os.path.exists(self.parquet_file_path):
            logger.error(f"[Archive] Parquet file does not exist: {self.parquet_file_path}")
            raise FileNotFoundError(f"Parquet file not found: {self.parquet_file_path}")

        table = pq.read_table(self.parquet_file_path)
        df = table.to_pandas()

        missing_cols = [col for col in ("id", "exam", "year", "question") if col not in df.columns]
        if missing_cols:
            logger.error(f"[Archive] Missing required columns: {missing_cols}")
            raise ValueError(f"Missing required columns in Parquet file: {missing_cols}")

        for col in ARCHIVE_COLUMNS:
            if col not in df.columns:
                df[col] = None

        logger.info(f"[Archive] Loaded {len(df)} questions from {self.parquet_file_path}")
        self._df = df
        return self._df

    def __len__(self) -> int:
        return len(self._frame())

    def _to_questions(self, frame: pd.DataFrame) -> List[ArchivedQuestion]:
        return [question_from_record(_clean_record(row)) for row in frame.to_dict(orient="records")]

    async def find(self, query: ArchiveQuery) -> List[ArchivedQuestion]:
        df = self._frame()
        if df.empty:
            return []

        regex = re.compile(query.pattern, re.IGNORECASE) if query.pattern else None

        exams = df["exam"].fillna("").astype(str).str.strip().str.upper()
        years = pd.to_numeric(df["year"], errors="coerce")
        mask = (exams == query.exam_code.strip().upper()) & years.between(query.year_from, query.year_to)

        if regex is not None:
            text_mask = pd.Series(False, index=df.index)
            for field in query.fields:
                if field not in df.columns:
                    continue
                if field == "topicTags":
                    text_mask |= df[field].apply(lambda tags: _tags_match(tags, regex))
                else:
                    text_mask |= df[field].apply(lambda v: not _is_missing(v) and bool(regex.search(str(v))))
            mask &= text_mask

        matched = df[mask].assign(_year=years[mask]).sort_values("_year", ascending=False, kind="mergesort")
        page = matched.iloc[query.skip: query.skip + query.limit].drop(columns=["_year"])

        logger.info(
            f"[Archive] {len(matched)} matches for exam={query.exam_code} "
            f"years={query.year_from}-{query.year_to}, returning {len(page)} (skip={query.skip})"
        )
        return self._to_questions(page)

    async def get_by_ids(self, ids: Iterable[str]) -> List[ArchivedQuestion]:
        wanted = [str(i) for i in ids if i]
        if not wanted:
            return []
        df = self._frame()
        if df.empty:
            return []
        found = df[df["id"].astype(str).isin(wanted)]
        by_id = {q.id: q for q in self._to_questions(found)}
        return [by_id[i] for i in wanted if i in by_id]
