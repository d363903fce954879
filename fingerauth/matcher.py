"""
Fingerprint Matcher

Scores normalized grids against each other and picks the best enrolled
reference for a query image.

Similarity is an L1 (Manhattan) distance over raw intensities, rescaled to
0-100. It is sensitive to translation, rotation, scale and lighting; that is
an accepted property of this comparator, not something it tries to correct.
"""
from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from fingerauth.config import MatcherConfig
from fingerauth.errors import DecodeError, DimensionMismatchError, ImageReadError
from fingerauth.normalizer import ImageNormalizer, ImageSource

logger = logging.getLogger(__name__)

MAX_INTENSITY = 255


class MatchStatus(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    NO_REFERENCES = "no_references"


@dataclass(frozen=True)
class ScoredReference:
    index: int
    reference_id: str
    score: float


@dataclass(frozen=True)
class SkippedReference:
    reference_id: str
    kind: str
    message: str


@dataclass(frozen=True)
class MatchResult:
    matched_id: Optional[str]
    score: float
    authenticated: bool
    status: MatchStatus
    threshold: float
    skipped: Tuple[SkippedReference, ...] = ()


def similarity_score(a: np.ndarray, b: np.ndarray) -> float:
    """
    Similarity of two equal-length intensity grids, 0-100.

    100 means identical grids, 0 means every sample differs by 255.

    Raises:
        DimensionMismatchError: If the grids differ in length or are empty
    """
    a = np.asarray(a).reshape(-1)
    b = np.asarray(b).reshape(-1)
    if a.size != b.size:
        raise DimensionMismatchError(f"Grid lengths differ: {a.size} != {b.size}")
    if a.size == 0:
        raise DimensionMismatchError("Cannot score empty grids")

    a = a.astype(np.int64)
    b = b.astype(np.int64)
    if a.min() < 0 or b.min() < 0 or a.max() > MAX_INTENSITY or b.max() > MAX_INTENSITY:
        raise ValueError(f"Grid samples must be in [0, {MAX_INTENSITY}]")

    total_diff = int(np.abs(a - b).sum())
    max_diff = a.size * MAX_INTENSITY
    return (max_diff - total_diff) * 100.0 / max_diff


def is_better(candidate: ScoredReference, best: Optional[ScoredReference]) -> bool:
    """
    Tie-break comparator for best-match selection.

    A candidate wins only with a strictly higher score, or with an equal
    score and an earlier position in the reference list. Nothing beats an
    empty best unless it scores above zero.
    """
    if best is None:
        return candidate.score > 0
    if candidate.score != best.score:
        return candidate.score > best.score
    return candidate.index < best.index


def select_best(scored: Iterable[ScoredReference]) -> Optional[ScoredReference]:
    """Reduce scored references to the best one, independent of input order."""
    best = None
    for candidate in scored:
        if is_better(candidate, best):
            best = candidate
    return best


ScoreOutcome = Union[ScoredReference, SkippedReference]


class FingerprintMatcher:
    """
    Best-match search over a snapshot of enrolled references.

    References are normalized independently; with ``max_workers > 1`` that
    work runs on a bounded thread pool. The outcome is the same either way.
    """

    def __init__(self, config: Optional[MatcherConfig] = None, normalizer: Optional[ImageNormalizer] = None):
        self.config = config or MatcherConfig()
        self.normalizer = normalizer or ImageNormalizer(self.config)

    @property
    def threshold(self) -> float:
        return self.config.threshold

    def score(self, a: np.ndarray, b: np.ndarray) -> float:
        return similarity_score(a, b)

    def is_authenticated(self, score: float) -> bool:
        return score >= self.config.threshold

    def _score_reference(self, query_grid: np.ndarray, index: int, reference_id: str, image: ImageSource) -> ScoreOutcome:
        try:
            grid = self.normalizer.normalize(image)
        except (DecodeError, ImageReadError) as e:
            logger.warning(f"Skipping reference {reference_id}: {e.message}")
            return SkippedReference(reference_id=reference_id, kind=e.kind, message=e.message)
        return ScoredReference(index=index, reference_id=reference_id, score=self.score(query_grid, grid))

    def score_references(
        self,
        query_grid: np.ndarray,
        references: Sequence[Tuple[str, ImageSource]]
    ) -> Iterator[ScoreOutcome]:
        """
        Lazily normalize and score every reference against ``query_grid``.

        Yields a ScoredReference, or a SkippedReference when the reference
        image cannot be read or decoded.
        """
        jobs = [(i, ref_id, image) for i, (ref_id, image) in enumerate(references)]

        if self.config.max_workers <= 1 or len(jobs) <= 1:
            for index, ref_id, image in jobs:
                yield self._score_reference(query_grid, index, ref_id, image)
            return

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = [
                pool.submit(self._score_reference, query_grid, index, ref_id, image)
                for index, ref_id, image in jobs
            ]
            for future in futures:
                yield future.result()

    def identify(self, query: ImageSource, references: Sequence[Tuple[str, ImageSource]]) -> MatchResult:
        """
        Find the enrolled reference most similar to ``query``.

        Args:
            query: Query image (bytes, path or file object)
            references: Ordered ``(id, image)`` pairs to search

        Returns:
            MatchResult; ``matched_id`` is None when there are no references
            or none scored above zero

        Raises:
            DecodeError, ImageReadError: If the query cannot be normalized
        """
        references = list(references)
        if not references:
            return MatchResult(
                matched_id=None,
                score=0.0,
                authenticated=False,
                status=MatchStatus.NO_REFERENCES,
                threshold=self.config.threshold
            )

        query_grid = self.normalizer.normalize(query)

        skipped: List[SkippedReference] = []
        scored: List[ScoredReference] = []
        for outcome in self.score_references(query_grid, references):
            if isinstance(outcome, SkippedReference):
                skipped.append(outcome)
            else:
                scored.append(outcome)

        best = select_best(scored)
        best_score = best.score if best else 0.0
        authenticated = self.is_authenticated(best_score)

        return MatchResult(
            matched_id=best.reference_id if best else None,
            score=best_score,
            authenticated=authenticated,
            status=MatchStatus.AUTHENTICATED if authenticated else MatchStatus.REJECTED,
            threshold=self.config.threshold,
            skipped=tuple(skipped)
        )
