"""
Traffic light classification of sequence identity.

Each profile's identity is compared against its calibrated thresholds:

    no threshold entry          -> N/A
    identity == 0               -> Red
    identity >= upper           -> Green
    lower < identity < upper    -> Amber
    identity <= lower           -> Red
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from mlss.models.scan import ScoredProfile, TrafficLight
from mlss.models.thresholds import ThresholdEntry

logger = logging.getLogger(__name__)


def traffic_light(identity: float, entry: ThresholdEntry | None) -> TrafficLight:
    """
    Classify one identity value.

    Args:
        identity: Sequence identity (%).
        entry: Thresholds of the profile, or None when it has none.

    Returns:
        The traffic light label.
    """
    if entry is None:
        return TrafficLight.NOT_AVAILABLE
    if identity == 0:
        return TrafficLight.RED
    if identity >= entry.upper:
        return TrafficLight.GREEN
    if identity > entry.lower:
        return TrafficLight.AMBER
    return TrafficLight.RED


class ThresholdClassifier:
    """
    Labels scored profiles using a thresholds table.

    A missing entry for a profile is logged as an error unless the table is
    empty; the profile is then labelled N/A.

    Example:
        classifier = ThresholdClassifier(read_thresholds(path))
        labelled = classifier.classify_all(ranked)
    """

    def __init__(self, thresholds: Mapping[str, ThresholdEntry]) -> None:
        self.thresholds = thresholds

    def classify(self, scored: ScoredProfile) -> ScoredProfile:
        entry = self.thresholds.get(scored.profile_name)
        if entry is None and self.thresholds:
            logger.error("CANNOT FIND THRESHOLDS ENTRY FOR: %s", scored.profile_name)
        return scored.with_colour(traffic_light(scored.sequence_identity, entry))

    def classify_all(self, scored: Iterable[ScoredProfile]) -> list[ScoredProfile]:
        return [self.classify(entry) for entry in scored]
