"""
Deterministic ranking of scored profiles.

Profiles are ordered by:

1. sequence identity, descending
2. total raw score, descending
3. feature label, case-insensitive ascending
4. numeric profile identifier, ascending

Ranks 1..N follow this order. Profiles equal on all four keys keep their
input order and still receive distinct consecutive ranks.
"""

from __future__ import annotations

from collections.abc import Iterable

from mlss.models.scan import ScoredProfile


def ranking_key(scored: ScoredProfile) -> tuple[float, int, str, int]:
    """Sort key implementing the ranking order."""
    return (
        -scored.sequence_identity,
        -scored.total_score,
        scored.feature.upper(),
        scored.profile_identifier,
    )


def rank_profiles(scored: Iterable[ScoredProfile]) -> list[ScoredProfile]:
    """
    Sort scored profiles and assign rank numbers.

    Returns:
        New ScoredProfile objects in rank order with ``rank`` set.
    """
    ordered = sorted(scored, key=ranking_key)
    return [entry.with_rank(position) for position, entry in enumerate(ordered, start=1)]
