"""
Fit scoring between a candidate's resume text and a job posting.

The keyword/overlap heuristic below is provisional: it stands in for a
retrieval-based ranker. Pipelines only depend on ``ScoringStrategy``, so a
replacement can be dropped in without touching them. Existing scores were
produced with these exact weights and constants; keep them unchanged in
``KeywordOverlapScorer``.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional, Protocol, Sequence

from .models import FitExplanation, ScoreResult

_TOKEN_SPLIT = re.compile(r"\W+", re.ASCII)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percent(numerator: float, denominator: float) -> int:
    return min(100, round_half_up(numerator / max(1, denominator) * 100))


class ScoringStrategy(Protocol):
    def score(
        self,
        candidate_text: str,
        description: str,
        skills: Sequence[Optional[str]],
        required_skills: Sequence[Optional[str]],
    ) -> ScoreResult:
        ...


class KeywordOverlapScorer:
    """
    Case-insensitive substring matching of skills plus a bounded
    description-token overlap, combined with fixed weights.
    """

    keyword_weight = 0.5
    similarity_weight = 0.3
    requirement_weight = 0.2
    # fixed normalization, not derived from input size
    similarity_tokens = 200

    def score(
        self,
        candidate_text: str,
        description: str,
        skills: Sequence[Optional[str]],
        required_skills: Sequence[Optional[str]],
    ) -> ScoreResult:
        text = (candidate_text or "").lower()
        jd = (description or "").lower()
        skills = list(skills or [])
        required_skills = list(required_skills or [])

        matched_skills = self._matched(text, skills)
        matched_required = self._matched(text, required_skills)
        overlap = sum(1 for token in _TOKEN_SPLIT.split(jd) if token and token in text)

        keyword_ratio = _percent(len(matched_skills), len(skills))
        similarity_ratio = min(100, round_half_up(overlap / self.similarity_tokens * 100))
        requirement_ratio = _percent(len(matched_required), len(required_skills))

        final_score = round_half_up(
            self.keyword_weight * keyword_ratio
            + self.similarity_weight * similarity_ratio
            + self.requirement_weight * requirement_ratio
        )
        return ScoreResult(
            final_score=final_score,
            explanation=FitExplanation(
                matched_skills=matched_skills,
                matched_required=matched_required,
                keyword_ratio=keyword_ratio,
                similarity_ratio=similarity_ratio,
                requirement_ratio=requirement_ratio,
            ),
        )

    @staticmethod
    def _matched(text: str, skills: List[Optional[str]]) -> List[str]:
        return [s for s in skills if (s or "").lower() in text]
