"""
MLSS: Multilocus Sequence Search.

Identifies the closest-matching reference profiles for bacterial genome
assemblies by aligning them against a library of typing alleles (rMLST,
MLST, cgMLST) and ranking every profile by nucleotide identity.
"""

__version__ = "1.0.0"
__author__ = "MLSS Team"

from mlss.core.scoring import ProfileScorer
from mlss.models.profile import Allele, Profile
from mlss.models.scan import IdentityMethod, ScoredProfile, TrafficLight

__all__ = [
    "Allele",
    "IdentityMethod",
    "Profile",
    "ProfileScorer",
    "ScoredProfile",
    "TrafficLight",
    "__version__",
]
