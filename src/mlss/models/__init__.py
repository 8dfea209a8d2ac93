"""
Pydantic data models for MLSS.

Provides type-safe models for reference profiles, alignment matches,
scan results, traffic light thresholds and run configuration.
"""

from mlss.models.config import BlastConfig, SearchConfig
from mlss.models.pairwise import Orientation, PairwiseMatch
from mlss.models.profile import (
    Allele,
    AlleleParsingPolicy,
    IdentifierField,
    Profile,
    profile_name_prefix,
)
from mlss.models.scan import IdentityMethod, ScanRecord, ScoredProfile, TrafficLight
from mlss.models.thresholds import ThresholdEntry

__all__ = [
    "Allele",
    "AlleleParsingPolicy",
    "BlastConfig",
    "IdentifierField",
    "IdentityMethod",
    "Orientation",
    "PairwiseMatch",
    "Profile",
    "ScanRecord",
    "ScoredProfile",
    "SearchConfig",
    "ThresholdEntry",
    "TrafficLight",
    "profile_name_prefix",
]
