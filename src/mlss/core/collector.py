"""
Best-match collection per allele.

Alignment records arrive sorted by allele identifier, then descending
score, identity and alignment length. The first record seen for an allele
is therefore its best match; every later record for the same allele is
discarded. The input order is a precondition and is not re-verified.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from mlss.models.pairwise import PairwiseMatch

logger = logging.getLogger(__name__)


def collect_best_matches(matches: Iterable[PairwiseMatch]) -> dict[str, PairwiseMatch]:
    """
    Keep the first (best-ranked) match per allele identifier.

    Args:
        matches: Pre-sorted alignment records.

    Returns:
        Mapping of allele identifier to its best match. Empty input gives
        an empty mapping.
    """
    best: dict[str, PairwiseMatch] = {}
    discarded = 0
    for match in matches:
        if match.match_name in best:
            discarded += 1
            continue
        best[match.match_name] = match

    logger.debug("Collected %d best matches (%d lower-ranked discarded)", len(best), discarded)
    return best
