from __future__ import annotations

import difflib
import logging
import re
from collections import Counter
from typing import Iterable, List, Optional, Tuple

from .models import CorpusEntry, ExerciseKind, Resolution


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class ExerciseResolver:
    """Resolve free-text search queries to the exercise names a user logged.

    Two strategies are available. ``rules`` accepts a corpus name when any of
    the lenient text rules below matches; ``scored`` accepts names whose
    similarity score reaches ``threshold``. Either way the result is ranked
    by score.
    """

    STRATEGIES = ("rules", "scored")
    MIN_WORD_LENGTH = 3

    def __init__(self, strategy: str = "rules", threshold: float = 0.6) -> None:
        if strategy not in self.STRATEGIES:
            raise ValueError(f"unknown matcher strategy: {strategy}")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.strategy = strategy
        self.threshold = threshold

    @staticmethod
    def _normalize(text: str) -> str:
        return _WHITESPACE.sub(" ", (text or "").strip().lower())

    @classmethod
    def _words(cls, text: str) -> List[str]:
        return [w for w in text.split(" ") if len(w) >= cls.MIN_WORD_LENGTH]

    @classmethod
    def matches(cls, name: str, query: str) -> bool:
        """Return ``True`` if ``name`` satisfies the lenient matching rules."""
        name_l = cls._normalize(name)
        query_l = cls._normalize(query)
        if not name_l or not query_l:
            return False
        if query_l in name_l or name_l in query_l:
            return True
        name_ns = name_l.replace(" ", "")
        query_ns = query_l.replace(" ", "")
        if query_ns in name_ns or name_ns in query_ns:
            return True
        name_words = cls._words(name_l)
        query_words = cls._words(query_l)
        if any(qw in nw or nw in qw for qw in query_words for nw in name_words):
            return True
        # prefix checks, whole string and per word
        if name_l.startswith(query_l) or query_l.startswith(name_l):
            return True
        return any(nw.startswith(query_l) for nw in name_words) or any(
            nw.startswith(qw) for qw in query_words for nw in name_words
        )

    @classmethod
    def score(cls, name: str, query: str) -> float:
        """Similarity in [0, 1] between ``name`` and ``query``."""
        name_l = cls._normalize(name)
        query_l = cls._normalize(query)
        if not name_l or not query_l:
            return 0.0
        whole = difflib.SequenceMatcher(None, query_l, name_l).ratio()
        name_tokens = name_l.split(" ")
        query_tokens = query_l.split(" ")
        best = [
            max(difflib.SequenceMatcher(None, qt, nt).ratio() for nt in name_tokens)
            for qt in query_tokens
        ]
        tokens = sum(best) / len(best)
        return round(max(whole, tokens), 4)

    def _accepts(self, name: str, query: str) -> bool:
        if self.strategy == "scored":
            return self.score(name, query) >= self.threshold
        return self.matches(name, query)

    def rank(self, query: str, corpus: Iterable[CorpusEntry]) -> List[Tuple[str, float]]:
        """Return accepted distinct names with their scores, best first."""
        ranked: dict[str, float] = {}
        for entry in corpus:
            if entry.name in ranked:
                continue
            if self._accepts(entry.name, query):
                ranked[entry.name] = self.score(entry.name, query)
        return sorted(ranked.items(), key=lambda item: (-item[1], item[0]))

    @staticmethod
    def canonical_kind(matches: Iterable[CorpusEntry]) -> Optional[str]:
        """Return the most frequent exercise kind, first seen wins ties."""
        counts: Counter[str] = Counter()
        order: list[str] = []
        for entry in matches:
            if entry.exercise_kind not in counts:
                order.append(entry.exercise_kind)
            counts[entry.exercise_kind] += 1
        if not counts:
            return None
        best = max(counts.values())
        return next(kind for kind in order if counts[kind] == best)

    def resolve(
        self, query: str, corpus: Iterable[CorpusEntry], mode: Optional[str] = None
    ) -> Resolution:
        """Narrow ``corpus`` to the entries matching ``query``."""
        query = (query or "").strip()
        if not query:
            return Resolution(query=query)
        entries = list(corpus)
        accepted = {name for name, _ in self.rank(query, entries)}
        matches = [e for e in entries if e.name in accepted]
        if not matches:
            logger.info("no exercise matches %r in mode %s", query, mode)
            return Resolution(query=query)
        return Resolution(
            query=query, matches=matches, canonical_kind=self.canonical_kind(matches)
        )

    def primary_kind(
        self, query: str, corpus: Iterable[CorpusEntry], mode: Optional[str] = None
    ) -> str:
        """Plurality kind for ``query``, ``exercise`` when nothing matches."""
        resolution = self.resolve(query, corpus, mode)
        return resolution.canonical_kind or ExerciseKind.EXERCISE.value
