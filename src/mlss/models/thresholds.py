"""
Pydantic model for per-profile traffic light thresholds.

Each profile carries two calibrated identity bounds:

    upper (threshold A): lowest identity observed for a same-feature match
    lower (threshold B): highest identity observed for a different-feature match

When the observed fraction behind a bound is known (e.g. '20622/20862'),
the bound is re-derived from it so that comparisons are never affected by
a rounded percentage in the table.
"""

from __future__ import annotations

import re
from typing import ClassVar, Self

from pydantic import BaseModel, Field, model_validator

UNSET_FRACTION = "0/0"


class ThresholdEntry(BaseModel):
    """
    Calibrated identity bounds for one profile.

    Attributes:
        profile_name: Profile name the bounds apply to (e.g. 'ISOLATE_23')
        upper: Same-feature floor (threshold A), percent
        upper_fraction: Observed fraction behind the upper bound, or '0/0'
        lower: Different-feature ceiling (threshold B), percent
        lower_fraction: Observed fraction behind the lower bound, or '0/0'
        feature: Feature label recorded with the calibration
        comment: Free text comment
    """

    FRACTION_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^(\d+)/(\d+)$")

    profile_name: str = Field(min_length=1, description="Profile name")
    upper: float = Field(description="Threshold A: same-feature floor (%)")
    upper_fraction: str = Field(default=UNSET_FRACTION)
    lower: float = Field(description="Threshold B: different-feature ceiling (%)")
    lower_fraction: str = Field(default=UNSET_FRACTION)
    feature: str = Field(default="N/A")
    comment: str = Field(default="N/A")

    @model_validator(mode="before")
    @classmethod
    def derive_from_fractions(cls, data: object) -> object:
        """Replace each bound by 100 * num / den when its fraction is set."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for bound, fraction_key in (("upper", "upper_fraction"), ("lower", "lower_fraction")):
            fraction = str(data.get(fraction_key, UNSET_FRACTION)).strip()
            if fraction == UNSET_FRACTION:
                continue
            match = cls.FRACTION_PATTERN.match(fraction)
            if match is None:
                msg = (
                    f"Incorrect format for {bound} threshold fraction "
                    f"[{data.get('profile_name')}]: {fraction!r} "
                    f"(required format 'integer/integer')"
                )
                raise ValueError(msg)
            numerator, denominator = int(match.group(1)), int(match.group(2))
            if denominator == 0:
                msg = (
                    f"Denominator of {bound} threshold fraction must be a positive "
                    f"integer [{data.get('profile_name')}]: {fraction!r}"
                )
                raise ValueError(msg)
            data[bound] = 100.0 * numerator / denominator
        return data

    @model_validator(mode="after")
    def validate_bounds(self) -> Self:
        """Both bounds lie in [0, 100] and upper >= lower."""
        for label, value in (("upper", self.upper), ("lower", self.lower)):
            if not 0.0 <= value <= 100.0:
                msg = (
                    f"Threshold {label} is outside the allowed range 0-100 "
                    f"[{self.profile_name}]: {value}"
                )
                raise ValueError(msg)
        if self.upper < self.lower:
            msg = (
                f"Upper threshold ({self.upper}) is lower than lower threshold "
                f"({self.lower}) [{self.profile_name}]"
            )
            raise ValueError(msg)
        return self

    def to_line(self) -> str:
        """Render the entry as one 7-column thresholds table line."""
        return (
            f"{self.profile_name}\t{self.upper:.5f}\t{self.upper_fraction}\t"
            f"{self.lower:.5f}\t{self.lower_fraction}\t{self.feature}\t{self.comment}"
        )

    model_config = {"frozen": True}
