"""
Pydantic models for reference profiles and their alleles.

A profile is a reference entity (an isolate, a ribosomal sequence type or a
sequence type) defined by the set of alleles it carries at each typing locus.
Profiles are built once while reading the profile table and are read-only
for the rest of a run.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class IdentifierField(str, Enum):
    """
    Profile table column holding the numeric profile identifier.

    The column determines the prefix used to build profile names, so that
    names from isolate tables and sequence definition tables never collide.
    """

    ID = "id"
    RST = "rST"
    ST = "ST"

    @property
    def prefix(self) -> str:
        """Profile name prefix for this identifier field."""
        return profile_name_prefix(self.value)


_NAME_PREFIXES: dict[str, str] = {
    "id": "ISOLATE_",
    "rST": "RST_",
    "ST": "ST_",
}

USER_DEFINED_PREFIX = "USER-DEFINED_"


def profile_name_prefix(field: str) -> str:
    """
    Return the profile name prefix for an identifier column name.

    Args:
        field: Identifier column name ('id', 'rST', 'ST' or anything else).

    Returns:
        'ISOLATE_', 'RST_', 'ST_', or 'USER-DEFINED_' for other columns.
    """
    return _NAME_PREFIXES.get(field, USER_DEFINED_PREFIX)


class AlleleParsingPolicy(BaseModel):
    """
    Which special allele cell values are read from the profile table.

    Cells holding a positive allele index are always read. The four flags
    control the values that usually mean "no usable allele". The default
    policy accepts positive numeric indexes only.

    Attributes:
        accept_zero: Read cells equal to '0' (locus absent).
        accept_bracketed: Read values containing ']' (e.g. '[12]', uncertain calls).
        accept_missing: Read empty cells.
        accept_paralogous_flag: Read cells equal to 'N' (paralogous flag).
    """

    accept_zero: bool = Field(default=False, description="Read '0' allele cells")
    accept_bracketed: bool = Field(
        default=False, description="Read allele values containing ']'"
    )
    accept_missing: bool = Field(default=False, description="Read empty allele cells")
    accept_paralogous_flag: bool = Field(
        default=False, description="Read 'N' (paralogous) allele cells"
    )

    def accepts(self, value: str) -> bool:
        """
        Decide whether a single (already stripped) allele value is read.

        The special values are tested in a fixed order and the first match
        decides: '0', then bracketed, then empty, then 'N'. Anything else
        is accepted.
        """
        if value == "0":
            return self.accept_zero
        if "]" in value:
            return self.accept_bracketed
        if value == "":
            return self.accept_missing
        if value == "N":
            return self.accept_paralogous_flag
        return True

    model_config = {"frozen": True}


class Allele(BaseModel):
    """
    One allele of a typing locus.

    Attributes:
        locus_id: Locus identifier (e.g. 'BACT000035')
        index: Allele index within the locus (e.g. '1')
    """

    locus_id: str = Field(min_length=1, description="Locus identifier")
    index: str = Field(description="Allele index as written in the profile table")

    @property
    def identifier(self) -> str:
        """Allele identifier used as join key (e.g. 'BACT000035_1')."""
        return f"{self.locus_id}_{self.index}"

    model_config = {"frozen": True}


class Profile(BaseModel):
    """
    Reference profile with its expected alleles.

    Attributes:
        identifier: Numeric profile identifier (isolate id, rST or ST)
        name: Display name, e.g. 'ISOLATE_23' or 'RST_5'
        feature: Feature label reported alongside matches (often species)
        alias: Alternative name (the 'isolate' column), or 'N/A'
        alleles: Expected alleles in table order, without duplicates
    """

    identifier: int = Field(ge=0, description="Numeric profile identifier")
    name: str = Field(min_length=1, description="Profile display name")
    feature: str = Field(default="N/A", description="Profile feature label")
    alias: str = Field(default="N/A", description="Profile alias")
    alleles: tuple[Allele, ...] = Field(default=(), description="Expected alleles")

    @field_validator("feature", "alias", mode="before")
    @classmethod
    def default_empty_labels(cls, v: object) -> object:
        """Empty labels are reported as 'N/A'."""
        if v is None or (isinstance(v, str) and v.strip() == ""):
            return "N/A"
        return v

    @field_validator("alleles")
    @classmethod
    def drop_repeated_alleles(cls, v: tuple[Allele, ...]) -> tuple[Allele, ...]:
        """Keep the first occurrence of each allele identifier."""
        seen: set[str] = set()
        unique: list[Allele] = []
        for allele in v:
            if allele.identifier not in seen:
                seen.add(allele.identifier)
                unique.append(allele)
        return tuple(unique)

    @property
    def allele_identifiers(self) -> list[str]:
        """Allele identifiers in profile order."""
        return [allele.identifier for allele in self.alleles]

    @property
    def allele_count(self) -> int:
        """Number of expected alleles."""
        return len(self.alleles)

    def with_alleles(self, extra: list[Allele]) -> Profile:
        """Return a copy with additional alleles appended."""
        return Profile(
            identifier=self.identifier,
            name=self.name,
            feature=self.feature,
            alias=self.alias,
            alleles=(*self.alleles, *extra),
        )

    model_config = {"frozen": True}
