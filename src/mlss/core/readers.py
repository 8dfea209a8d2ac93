"""
Readers for the reference input tables of a search run.

Each reader returns fully validated in-memory structures:

- name lists (query genome files, loci)
- allele lengths (from '<db>.lengths' or the allele FASTA file)
- the profile table, as an ordered list of Profile objects
- the thresholds table, as a mapping of profile name to ThresholdEntry

Malformed input raises an InputFileError subclass; recoverable oddities
(empty lines, duplicate entries) are logged and skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from mlss.core.constants import ALIAS_COLUMN, LENGTHS_SUFFIX, NOT_AVAILABLE
from mlss.core.exceptions import (
    AlleleLengthError,
    InputListError,
    InvalidRangeError,
    ProfileTableError,
    ThresholdsTableError,
)
from mlss.models.profile import Allele, AlleleParsingPolicy, Profile, profile_name_prefix
from mlss.models.thresholds import ThresholdEntry

logger = logging.getLogger(__name__)

_FASTA_HEADER = re.compile(r"^>(\S+)")
_THRESHOLD_COLUMNS = 7


# =============================================================================
# Name lists
# =============================================================================


def read_name_list(path: Path, first: int = 0, last: int = 0) -> list[str]:
    """
    Read a list of names, one per line.

    Only the first whitespace-delimited word of each line is used and any
    directory component is dropped. Empty lines are skipped and logged;
    duplicate names are logged and only counted once.

    Args:
        path: List file.
        first: First entry to keep (1-based over non-empty lines), 0 for the start.
        last: Last entry to keep (inclusive), 0 for the end.

    Returns:
        Unique names in file order.

    Raises:
        InvalidRangeError: If exactly one of first/last is set or first > last.
        InputListError: If the file holds no usable entries.
    """
    if (first == 0) != (last == 0) or first < 0 or last < first:
        raise InvalidRangeError(first, last)

    names: list[str] = []
    seen: set[str] = set()
    counter = 0

    with path.open() as handle:
        for line in handle:
            line = line.rstrip("\r\n")
            if not line.strip():
                logger.warning("Empty line in list file (skipping): %s", path)
                continue

            counter += 1
            if first and not first <= counter <= last:
                logger.debug("Skipping entry %d outside range %d-%d", counter, first, last)
                continue

            name = Path(line.split()[0]).name
            if name in seen:
                logger.warning("Duplicate entry in list file (skipping): %s", name)
                continue
            seen.add(name)
            names.append(name)

    if not names:
        raise InputListError(path, "no entries read")

    logger.debug("Read %d entries from %s", len(names), path)
    return names


# =============================================================================
# Allele lengths
# =============================================================================


def lengths_path_for(database: Path) -> Path:
    """Return the '<db>.lengths' path that sits beside the allele database."""
    return database.with_name(database.name + LENGTHS_SUFFIX)


def read_allele_lengths(database: Path) -> dict[str, int]:
    """
    Read allele lengths for an allele sequence database.

    Uses '<db>.lengths' when present, otherwise measures the sequences of
    the FASTA file itself.

    Raises:
        AlleleLengthError: If no lengths could be read.
    """
    lengths_file = lengths_path_for(database)
    if lengths_file.exists():
        logger.info("READING ALLELE LENGTHS FILE: %s", lengths_file)
        lengths = read_lengths_file(lengths_file)
    else:
        logger.info("READING SEQUENCE FILE FOR ALLELE LENGTHS: %s", database.name)
        lengths = read_fasta_lengths(database)

    if not lengths:
        msg = f"No allele sequence lengths could be read for {database}"
        raise AlleleLengthError(msg)

    logger.info("TOTAL NUMBER OF DATABASE ALLELES: %d", len(lengths))
    return lengths


def read_lengths_file(path: Path) -> dict[str, int]:
    """
    Read a two-column (allele identifier, length) tab-separated file.

    Raises:
        AlleleLengthError: If a line does not have two columns or the
            length is not an integer.
    """
    lengths: dict[str, int] = {}
    with path.open() as handle:
        for line_num, line in enumerate(handle, start=1):
            line = line.rstrip("\r\n")
            if line == "":
                logger.error("Empty line in allele lengths file (skipping): %s", path)
                continue

            fields = line.split("\t")
            if len(fields) != 2:
                msg = f"Format error in {path} at line {line_num}: expected 2 columns, got {len(fields)}"
                raise AlleleLengthError(msg)

            identifier, raw_length = fields
            try:
                length = int(raw_length)
            except ValueError:
                msg = f"Format error in {path} at line {line_num}: length {raw_length!r} is not an integer"
                raise AlleleLengthError(msg) from None

            if identifier in lengths:
                logger.error("Duplicate entry in allele lengths file: %s", identifier)
                continue
            lengths[identifier] = length

    return lengths


def read_fasta_lengths(path: Path) -> dict[str, int]:
    """
    Measure sequence lengths in a FASTA file.

    The identifier is the first word of each header. Whitespace and '*'
    characters are not counted; lines starting with '#' are ignored.
    The first record wins when an identifier is repeated.
    """
    lengths: dict[str, int] = {}
    current: str | None = None
    length = 0

    def _store() -> None:
        if current is None:
            return
        if current in lengths:
            logger.error("Duplicate sequence identifier in FASTA file: %s", current)
            return
        lengths[current] = length

    with path.open() as handle:
        for line in handle:
            if line.startswith("#"):
                continue
            header = _FASTA_HEADER.match(line)
            if header:
                _store()
                current = header.group(1)
                length = 0
                continue
            if line.startswith(">"):
                logger.error("FASTA header without identifier in %s", path)
                _store()
                current = None
                continue
            length += len("".join(line.split()).replace("*", ""))

    _store()
    return lengths


def find_missing_lengths(profiles: Sequence[Profile], lengths: dict[str, int]) -> list[str]:
    """Return allele identifiers used by the profiles that have no length, in order."""
    missing: list[str] = []
    reported: set[str] = set()
    for profile in profiles:
        for identifier in profile.allele_identifiers:
            if identifier not in lengths and identifier not in reported:
                logger.error("MISSING ALLELE SEQUENCE LENGTH [%s]: %s", profile.name, identifier)
                reported.add(identifier)
                missing.append(identifier)
    return missing


# =============================================================================
# Profile table
# =============================================================================


class ProfileTableReader:
    """
    Reader for tab-separated profile tables.

    The first non-empty line is the header. Each data row describes one
    profile: a numeric identifier, optional alias and feature columns, and
    one allele cell per locus. Cells may hold several semicolon-separated
    values (paralogous loci); every value is filtered independently by the
    AlleleParsingPolicy.

    Rows sharing an identifier are merged into one profile that keeps the
    alias and feature of the first row. Profiles are returned sorted by
    numeric identifier.

    Example:
        reader = ProfileTableReader(identifier_field="rST", loci=RMLST_LOCI)
        profiles = reader.read(Path("rst_profiles.txt"))
    """

    def __init__(
        self,
        identifier_field: str,
        loci: Sequence[str],
        feature_field: str = "species",
        policy: AlleleParsingPolicy | None = None,
    ) -> None:
        if not loci:
            msg = "At least one locus identifier is required to read profiles"
            raise ValueError(msg)
        self.identifier_field = identifier_field
        self.loci = tuple(loci)
        self.feature_field = feature_field
        self.policy = policy or AlleleParsingPolicy()
        self.prefix = profile_name_prefix(identifier_field)

    def read(self, path: Path) -> list[Profile]:
        """
        Read all profiles from the table.

        Raises:
            ProfileTableError: On duplicate header names, a missing identifier
                or locus column, a non-integer identifier, or an empty table.
        """
        header: list[str] | None = None
        profiles: dict[int, Profile] = {}
        pending_alleles: dict[int, list[Allele]] = {}

        with path.open() as handle:
            for line_num, line in enumerate(handle, start=1):
                line = line.rstrip("\n").rstrip("\r")
                if line == "":
                    logger.debug("Empty line in profile table (ignoring): %s", path)
                    continue

                fields = line.split("\t")
                if header is None:
                    header = self._validate_header(path, fields)
                    continue

                row = self._row_to_dict(header, fields)
                identifier = self._parse_identifier(path, row, line_num)
                alleles = self._parse_alleles(row)

                if identifier in profiles:
                    logger.warning(
                        "Duplicate profile identifier %s%d (merging alleles into first entry)",
                        self.prefix,
                        identifier,
                    )
                    pending_alleles[identifier].extend(alleles)
                    continue

                profiles[identifier] = Profile(
                    identifier=identifier,
                    name=f"{self.prefix}{identifier}",
                    feature=self._optional_cell(row, self.feature_field),
                    alias=self._optional_cell(row, ALIAS_COLUMN),
                )
                pending_alleles[identifier] = alleles

        if header is None or not profiles:
            raise ProfileTableError(path, "no profiles found")

        ordered = [
            profiles[identifier].with_alleles(pending_alleles[identifier])
            for identifier in sorted(profiles)
        ]
        logger.info("PROFILE COUNT: %d", len(ordered))
        return ordered

    def _validate_header(self, path: Path, fields: list[str]) -> list[str]:
        seen: set[str] = set()
        for name in fields:
            if name in seen:
                raise ProfileTableError(path, f"duplicate header column {name!r}")
            seen.add(name)

        if self.identifier_field not in seen:
            raise ProfileTableError(
                path, f"profile identifier field {self.identifier_field!r} is missing"
            )

        missing = [locus for locus in self.loci if locus not in seen]
        for locus in missing:
            logger.error("LOCUS NOT FOUND IN PROFILE TABLE: %s", locus)
        if missing:
            raise ProfileTableError(
                path, f"{len(missing)} requested locus column(s) missing: {', '.join(missing[:5])}"
            )
        return fields

    @staticmethod
    def _row_to_dict(header: list[str], fields: list[str]) -> dict[str, str]:
        # Short rows are padded with empty cells
        padded = fields + [""] * (len(header) - len(fields))
        return dict(zip(header, padded, strict=False))

    def _parse_identifier(self, path: Path, row: dict[str, str], line_num: int) -> int:
        raw = row[self.identifier_field].strip()
        try:
            identifier = int(raw)
        except ValueError:
            raise ProfileTableError(
                path,
                f"line {line_num}: profile identifier {raw!r} in column "
                f"{self.identifier_field!r} is not an integer",
            ) from None
        if identifier < 0:
            raise ProfileTableError(
                path,
                f"line {line_num}: profile identifier {raw!r} in column "
                f"{self.identifier_field!r} is negative",
            )
        return identifier

    def _parse_alleles(self, row: dict[str, str]) -> list[Allele]:
        alleles: list[Allele] = []
        for locus in self.loci:
            for value in row[locus].split(";"):
                value = value.strip()
                if self.policy.accepts(value):
                    alleles.append(Allele(locus_id=locus, index=value))
        return alleles

    @staticmethod
    def _optional_cell(row: dict[str, str], column: str) -> str:
        value = row.get(column, "")
        return value if value != "" else NOT_AVAILABLE


# =============================================================================
# Thresholds table
# =============================================================================


def read_thresholds(path: Path) -> dict[str, ThresholdEntry]:
    """
    Read a 7-column traffic light thresholds table.

    Comment lines ('#') and empty lines are skipped. Every line is validated
    and all problems are logged before failing, so a single run reports
    every bad entry. Duplicate profile names keep the first entry.

    Returns:
        Mapping of profile name to ThresholdEntry.

    Raises:
        ThresholdsTableError: If any line is invalid or the table is empty.
    """
    entries: dict[str, ThresholdEntry] = {}
    rejected: list[str] = []

    with path.open() as handle:
        for line_num, line in enumerate(handle, start=1):
            line = line.rstrip("\r\n").lstrip()
            if line == "" or line.startswith("#"):
                continue

            fields = line.split("\t")
            if len(fields) != _THRESHOLD_COLUMNS:
                logger.error(
                    "Thresholds line %d: expected %d columns, got %d",
                    line_num,
                    _THRESHOLD_COLUMNS,
                    len(fields),
                )
                rejected.append(f"line {line_num}")
                continue

            try:
                entry = ThresholdEntry(
                    profile_name=fields[0],
                    upper=fields[1],
                    upper_fraction=fields[2],
                    lower=fields[3],
                    lower_fraction=fields[4],
                    feature=fields[5],
                    comment=fields[6],
                )
            except ValidationError as e:
                for error in e.errors():
                    logger.error("Thresholds line %d [%s]: %s", line_num, fields[0], error["msg"])
                rejected.append(fields[0] or f"line {line_num}")
                continue

            if entry.profile_name in entries:
                logger.error("Duplicate thresholds entry (keeping first): %s", entry.profile_name)
                continue
            entries[entry.profile_name] = entry

    if rejected:
        raise ThresholdsTableError(path, f"{len(rejected)} invalid entries", rejected)
    if not entries:
        raise ThresholdsTableError(path, "no threshold entries found")

    return entries


def find_profiles_without_thresholds(
    profiles: Sequence[Profile],
    thresholds: dict[str, ThresholdEntry],
) -> list[str]:
    """Return names of profiles that have no threshold entry."""
    missing = [profile.name for profile in profiles if profile.name not in thresholds]
    for name in missing:
        logger.error("MISSING THRESHOLDS ENTRY: %s", name)
    return missing
