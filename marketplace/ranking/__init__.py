"""
Ranking Service

Priority scoring for providers.
"""

from .priority_scorer import DEFAULT_SCORING_WEIGHTS, PriorityScorer

__all__ = ["DEFAULT_SCORING_WEIGHTS", "PriorityScorer"]
