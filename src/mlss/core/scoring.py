"""
Profile scoring against collected allele matches.

For every reference profile, the best match of each expected allele is
tested against the identity and overlap cutoffs. Accepted matches are
folded into an immutable tally of identical bases, aligned bases, raw
score and matched allele count; the tally and the profile's total
reference length become a ScoredProfile.

Every profile is scored, including profiles without a single match, so
each query always yields one ScoredProfile per profile.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import reduce
from typing import NamedTuple

from mlss.core.exceptions import AlleleLengthError
from mlss.models.pairwise import PairwiseMatch
from mlss.models.profile import Profile
from mlss.models.scan import IdentityMethod, ScoredProfile

logger = logging.getLogger(__name__)


class MatchTally(NamedTuple):
    """Running totals over the accepted matches of one profile."""

    matched_alleles: int = 0
    identical_nucleotides: int = 0
    matched_nucleotides: int = 0
    total_score: int = 0

    def add(self, match: PairwiseMatch) -> MatchTally:
        return MatchTally(
            matched_alleles=self.matched_alleles + 1,
            identical_nucleotides=self.identical_nucleotides + match.identical_count,
            matched_nucleotides=self.matched_nucleotides + match.match_segment_length,
            total_score=self.total_score + match.score,
        )


class ProfileScorer:
    """
    Scores reference profiles against the best matches of one query.

    Args:
        allele_lengths: Reference length of every allele identifier.
        method: Identity calculation method (global or local).
        min_sequence_identity: Matches below this identity (%) are ignored.
        min_match_overlap: Matches covering less of their allele (%) are ignored.

    Example:
        scorer = ProfileScorer(lengths, IdentityMethod.GLOBAL)
        scored = scorer.score_all(profiles, best_matches, "ISOLATE_23.fa")
    """

    def __init__(
        self,
        allele_lengths: Mapping[str, int],
        method: IdentityMethod = IdentityMethod.LOCAL,
        min_sequence_identity: float = 50.0,
        min_match_overlap: float = 50.0,
    ) -> None:
        self.allele_lengths = allele_lengths
        self.method = method
        self.min_sequence_identity = min_sequence_identity
        self.min_match_overlap = min_match_overlap

    def accepts(self, match: PairwiseMatch) -> bool:
        """True if a match passes both the identity and the overlap cutoff."""
        if match.sequence_identity < self.min_sequence_identity:
            return False
        return match.match_overlap >= self.min_match_overlap

    def profile_nucleotide_count(self, profile: Profile) -> int:
        """
        Total reference length of a profile's alleles.

        Raises:
            AlleleLengthError: If an allele has no known length. Allele lengths
                are validated at startup, so this indicates an inconsistent
                reference library.
        """
        total = 0
        for identifier in profile.allele_identifiers:
            length = self.allele_lengths.get(identifier)
            if length is None:
                msg = f"Allele sequence length not found for profile {profile.name}"
                raise AlleleLengthError(msg, [identifier])
            total += length
        return total

    def score(
        self,
        profile: Profile,
        matches: Mapping[str, PairwiseMatch],
        query_filename: str,
    ) -> ScoredProfile:
        """
        Score one profile.

        Args:
            profile: Reference profile.
            matches: Best match per allele identifier for this query.
            query_filename: Query file basename reported in results.

        Returns:
            Unranked, unclassified ScoredProfile.
        """
        accepted = [
            match
            for identifier in profile.allele_identifiers
            if (match := matches.get(identifier)) is not None and self.accepts(match)
        ]
        tally = reduce(MatchTally.add, accepted, MatchTally())

        return ScoredProfile(
            profile=profile,
            query_filename=query_filename,
            method=self.method,
            matched_allele_count=tally.matched_alleles,
            profile_allele_count=profile.allele_count,
            identical_nucleotide_count=tally.identical_nucleotides,
            matched_nucleotide_count=tally.matched_nucleotides,
            profile_nucleotide_count=self.profile_nucleotide_count(profile),
            total_score=tally.total_score,
        )

    def score_all(
        self,
        profiles: Sequence[Profile],
        matches: Mapping[str, PairwiseMatch],
        query_filename: str,
    ) -> list[ScoredProfile]:
        """Score every profile, in profile order."""
        scored = [self.score(profile, matches, query_filename) for profile in profiles]
        logger.debug(
            "Scored %d profiles for %s (%d alleles matched)",
            len(scored),
            query_filename,
            len(matches),
        )
        return scored
