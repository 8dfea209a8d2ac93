"""
Core algorithms for multilocus sequence search.

This module contains the per-query pipeline: best-match collection,
profile scoring, ranking, traffic light classification and result output.
Startup loading (mlss.core.library) and job orchestration
(mlss.core.scheduler) are imported from their own modules.
"""

from mlss.core.claims import JobClaim, LockFileClaim
from mlss.core.classification import ThresholdClassifier, traffic_light
from mlss.core.collector import collect_best_matches
from mlss.core.ranking import rank_profiles, ranking_key
from mlss.core.scoring import ProfileScorer
from mlss.core.writer import ResultsWriter, format_result_line

__all__ = [
    "JobClaim",
    "LockFileClaim",
    "ProfileScorer",
    "ResultsWriter",
    "ThresholdClassifier",
    "collect_best_matches",
    "format_result_line",
    "rank_profiles",
    "ranking_key",
    "traffic_light",
]
