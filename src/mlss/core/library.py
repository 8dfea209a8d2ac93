"""
Loading and cross-validation of the reference inputs of a search run.

Everything that can make a run fail is checked here, once, before any job
starts: query files, the BLAST database index, allele lengths, the profile
table and the optional thresholds and loci files. Jobs then receive a
ReferenceLibrary that is known to be consistent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from mlss.core.constants import BLAST_NUCLEOTIDE_INDEX_SUFFIXES, RMLST_LOCI
from mlss.core.exceptions import (
    AlleleLengthError,
    BlastDatabaseError,
    MissingQueryFilesError,
    ThresholdsTableError,
)
from mlss.core.readers import (
    ProfileTableReader,
    find_missing_lengths,
    find_profiles_without_thresholds,
    read_allele_lengths,
    read_name_list,
    read_thresholds,
)
from mlss.models.config import SearchConfig
from mlss.models.profile import Profile
from mlss.models.thresholds import ThresholdEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchInputs:
    """File locations for a search run.

    Attributes:
        input_list: File listing query genome filenames.
        warehouse: Directory holding the query genome files.
        database: Indexed allele sequence FASTA file.
        profiles: Profile table.
        thresholds: Optional traffic light thresholds table.
        loci: Optional file overriding the default rMLST loci.
        first: First input list entry to process (1-based, 0 for all).
        last: Last input list entry to process (0 for all).
    """

    input_list: Path
    warehouse: Path
    database: Path
    profiles: Path
    thresholds: Path | None = None
    loci: Path | None = None
    first: int = 0
    last: int = 0


def check_database_index(database: Path) -> None:
    """
    Check that the allele database and its nucleotide index files exist.

    Raises:
        BlastDatabaseError: Listing every missing file.
    """
    missing = [] if database.exists() else [database.name]
    for suffix in BLAST_NUCLEOTIDE_INDEX_SUFFIXES:
        index_file = database.with_name(database.name + suffix)
        if not index_file.exists():
            missing.append(index_file.name)
    if missing:
        raise BlastDatabaseError(database, missing)


def find_missing_queries(warehouse: Path, queries: list[str]) -> list[str]:
    """Return query filenames absent from the warehouse directory."""
    missing = [name for name in queries if not (warehouse / name).exists()]
    for name in missing:
        logger.error("INPUT QUERY SEQUENCE FILE NOT FOUND: %s", name)
    return missing


@dataclass(frozen=True)
class ReferenceLibrary:
    """Validated reference data shared by every job of a run.

    Attributes:
        queries: Query genome filenames, in input order.
        warehouse: Directory holding the query genome files.
        database: Indexed allele sequence FASTA file.
        profiles: Profiles sorted by numeric identifier.
        allele_lengths: Reference length per allele identifier.
        thresholds: Thresholds per profile name, or None when not supplied.
        loci: Loci read from the profile table.
    """

    queries: list[str]
    warehouse: Path
    database: Path
    profiles: list[Profile]
    allele_lengths: dict[str, int]
    thresholds: dict[str, ThresholdEntry] | None = None
    loci: tuple[str, ...] = field(default=RMLST_LOCI)

    @property
    def allele_count(self) -> int:
        return len(self.allele_lengths)

    @classmethod
    def load(cls, inputs: SearchInputs, config: SearchConfig) -> ReferenceLibrary:
        """
        Read and cross-validate all reference inputs.

        Raises:
            MlssError: Any input problem; nothing is returned partially.
        """
        logger.info("START READING FILES AND RUNNING CHECKS")
        warehouse = inputs.warehouse.resolve()

        check_database_index(inputs.database)

        queries = read_name_list(inputs.input_list, inputs.first, inputs.last)
        logger.info("INPUT SEQUENCE FILE ENTRIES: %d", len(queries))

        missing_queries = find_missing_queries(warehouse, queries)
        if missing_queries:
            raise MissingQueryFilesError(warehouse, missing_queries)

        allele_lengths = read_allele_lengths(inputs.database)

        if inputs.loci is not None:
            loci = tuple(read_name_list(inputs.loci))
            logger.info("INPUT LOCI FILE ENTRIES: %d", len(loci))
        else:
            loci = RMLST_LOCI

        logger.info("READING PROFILE TABLE FILE: %s", inputs.profiles.name)
        reader = ProfileTableReader(
            identifier_field=config.identifier_field,
            loci=loci,
            feature_field=config.feature_field,
            policy=config.allele_policy,
        )
        profiles = reader.read(inputs.profiles)

        logger.info("CHECKING PROFILE ALLELES <-> SEQUENCE LENGTH DATA CONSISTENCY")
        missing_lengths = find_missing_lengths(profiles, allele_lengths)
        if missing_lengths:
            msg = "Profile alleles are missing from the allele sequence lengths"
            raise AlleleLengthError(msg, missing_lengths)
        logger.info("SEQUENCE LENGTH DATA: PASSED")

        thresholds = None
        if inputs.thresholds is not None:
            logger.info("READING THRESHOLDS FILE: %s", inputs.thresholds.name)
            thresholds = read_thresholds(inputs.thresholds)

            logger.info("CHECKING PROFILE NAMES <-> THRESHOLD DATA CONSISTENCY")
            missing_thresholds = find_profiles_without_thresholds(profiles, thresholds)
            if missing_thresholds:
                raise ThresholdsTableError(
                    inputs.thresholds, "profiles without threshold entries", missing_thresholds
                )
            logger.info("THRESHOLD DATA CONSISTENCY: PASSED")

        return cls(
            queries=queries,
            warehouse=warehouse,
            database=inputs.database,
            profiles=profiles,
            allele_lengths=allele_lengths,
            thresholds=thresholds,
            loci=loci,
        )
