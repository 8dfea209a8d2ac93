"""
Pydantic configuration models for MLSS.

SearchConfig gathers every parameter that shapes a search run: how the
profile table is interpreted, how alignment matches are filtered and scored,
how results are reported and how many jobs run in parallel. BlastConfig holds
the parameters passed to blastn when collecting matches.

Configuration can be loaded from a nested YAML file and overridden by
command-line options.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from mlss.models.profile import AlleleParsingPolicy
from mlss.models.scan import IdentityMethod

logger = logging.getLogger(__name__)

MAX_JOBS = 53
MAX_THREADS_PER_JOB = 8


class BlastConfig(BaseModel):
    """
    Configuration for blastn match collection.

    The collection thresholds are deliberately permissive; matches are
    filtered again during scoring with the stricter cutoffs of SearchConfig.

    Attributes:
        task: BLAST task, 'blastn' or 'megablast'
        word_size: Word size for seed matches (10-30)
        evalue: E-value threshold used to collect matches
        perc_identity: Minimum percent identity used to collect matches
        threads: CPU threads per blastn process (1-8)
        executable: Explicit blastn executable, overriding BLAST_BIN_PATH and PATH
        timeout: Maximum seconds for one blastn run (None for no limit)
    """

    task: Literal["blastn", "megablast"] = Field(
        default="blastn", description="BLAST task"
    )
    word_size: int = Field(
        default=30, ge=10, le=30, description="Word size for seed matches"
    )
    evalue: float = Field(default=10.0, gt=0, description="E-value collection threshold")
    perc_identity: float = Field(
        default=50.0, ge=0, le=100, description="Minimum percent identity to collect"
    )
    threads: int = Field(
        default=1, ge=1, le=MAX_THREADS_PER_JOB, description="Threads per blastn job"
    )
    executable: Path | None = Field(default=None, description="Explicit blastn path")
    timeout: float | None = Field(default=None, gt=0, description="Timeout in seconds")

    model_config = {"frozen": True}


class SearchConfig(BaseModel):
    """
    Configuration for a multilocus sequence search run.

    Attributes:
        identifier_field: Profile table column with numeric profile identifiers
        feature_field: Profile table column reported as profile feature
        identity_method: Denominator for the sequence identity calculation
        min_sequence_identity: Minimum identity (%) for a match to be scored
        min_match_overlap: Minimum allele coverage (%) for a match to be scored
        allele_policy: Which special allele cell values are read
        reporting_limit: Maximum rows per results file (0 for all)
        write_header: Start results files with a column header line
        jobs: Number of query files processed in parallel
        delete_intermediate: Remove raw alignment files after parsing
        blast: blastn collection parameters
    """

    identifier_field: str = Field(
        default="id", min_length=1, description="Profile identifier column"
    )
    feature_field: str = Field(default="species", description="Profile feature column")
    identity_method: IdentityMethod = Field(
        default=IdentityMethod.LOCAL, description="Identity calculation method"
    )
    min_sequence_identity: float = Field(
        default=50.0, ge=0, le=100, description="Match identity cutoff (%)"
    )
    min_match_overlap: float = Field(
        default=50.0, ge=0, le=100, description="Match overlap cutoff (%)"
    )
    allele_policy: AlleleParsingPolicy = Field(default_factory=AlleleParsingPolicy)
    reporting_limit: int = Field(default=0, ge=0, description="Rows per results file")
    write_header: bool = Field(default=False, description="Write a header line")
    jobs: int = Field(default=1, ge=1, le=MAX_JOBS, description="Parallel jobs")
    delete_intermediate: bool = Field(
        default=True, description="Delete raw alignment files"
    )
    blast: BlastConfig = Field(default_factory=BlastConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> SearchConfig:
        """
        Load a search configuration from a YAML file.

        Nested sections (profiles, scoring, output, scheduling, blast) are
        flattened onto the model fields. Unknown keys are ignored.

        Args:
            path: Path to YAML configuration file.

        Returns:
            SearchConfig populated from YAML values merged with defaults.

        Raises:
            FileNotFoundError: If the YAML file does not exist.
            ValueError: If the YAML content is not a mapping or holds
                out-of-range values.
        """
        import yaml

        raw = yaml.safe_load(path.read_text())
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            msg = f"YAML config must be a mapping, got {type(raw).__name__}"
            raise ValueError(msg)

        return cls(**_flatten_yaml_config(raw))

    def merged(self, **overrides: Any) -> SearchConfig:
        """
        Return a copy with non-None overrides applied.

        Keys prefixed with 'blast_' are applied to the nested BlastConfig,
        so command-line options can override individual YAML values.
        """
        blast_updates = {
            key.removeprefix("blast_"): value
            for key, value in overrides.items()
            if key.startswith("blast_") and value is not None
        }
        updates = {
            key: value
            for key, value in overrides.items()
            if not key.startswith("blast_") and value is not None
        }
        data = self.model_dump()
        data.update(updates)
        data["blast"] = {**data["blast"], **blast_updates}
        return SearchConfig(**data)

    def to_yaml(self, path: Path) -> None:
        """Write the configuration to a YAML file."""
        path.write_text(self.to_yaml_str())

    def to_yaml_str(self) -> str:
        """Serialize the configuration to a nested YAML string."""
        import yaml

        data = _build_yaml_structure(self)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    model_config = {"frozen": True}


def _flatten_yaml_config(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten the nested YAML structure into SearchConfig keyword arguments.

    Maps:
        profiles.identifier_field -> identifier_field
        profiles.accept.zero -> allele_policy.accept_zero
        scoring.min_sequence_identity -> min_sequence_identity
        blast.word_size -> blast.word_size
    """
    flat: dict[str, Any] = {}

    profiles = raw.get("profiles") or {}
    _map_if_present(profiles, "identifier_field", flat, "identifier_field")
    _map_if_present(profiles, "feature_field", flat, "feature_field")

    accept = profiles.get("accept") or {}
    policy: dict[str, Any] = {}
    _map_if_present(accept, "zero", policy, "accept_zero")
    _map_if_present(accept, "bracketed", policy, "accept_bracketed")
    _map_if_present(accept, "missing", policy, "accept_missing")
    _map_if_present(accept, "paralogous_flag", policy, "accept_paralogous_flag")
    if policy:
        flat["allele_policy"] = AlleleParsingPolicy(**policy)

    scoring = raw.get("scoring") or {}
    _map_if_present(scoring, "identity_method", flat, "identity_method")
    _map_if_present(scoring, "min_sequence_identity", flat, "min_sequence_identity")
    _map_if_present(scoring, "min_match_overlap", flat, "min_match_overlap")

    output = raw.get("output") or {}
    _map_if_present(output, "reporting_limit", flat, "reporting_limit")
    _map_if_present(output, "write_header", flat, "write_header")
    _map_if_present(output, "delete_intermediate", flat, "delete_intermediate")

    scheduling = raw.get("scheduling") or {}
    _map_if_present(scheduling, "jobs", flat, "jobs")

    blast_raw = raw.get("blast") or {}
    blast: dict[str, Any] = {}
    for key in ("task", "word_size", "evalue", "perc_identity", "threads", "executable", "timeout"):
        _map_if_present(blast_raw, key, blast, key)
    if blast:
        flat["blast"] = BlastConfig(**blast)

    return flat


def _map_if_present(
    source: dict[str, Any],
    source_key: str,
    target: dict[str, Any],
    target_key: str,
) -> None:
    """Copy value from source dict to target dict if key exists."""
    if source_key in source and source[source_key] is not None:
        target[target_key] = source[source_key]


def _build_yaml_structure(config: SearchConfig) -> dict[str, Any]:
    """Build nested YAML dict from a SearchConfig instance."""
    return {
        "profiles": {
            "identifier_field": config.identifier_field,
            "feature_field": config.feature_field,
            "accept": {
                "zero": config.allele_policy.accept_zero,
                "bracketed": config.allele_policy.accept_bracketed,
                "missing": config.allele_policy.accept_missing,
                "paralogous_flag": config.allele_policy.accept_paralogous_flag,
            },
        },
        "scoring": {
            "identity_method": config.identity_method.value,
            "min_sequence_identity": config.min_sequence_identity,
            "min_match_overlap": config.min_match_overlap,
        },
        "output": {
            "reporting_limit": config.reporting_limit,
            "write_header": config.write_header,
            "delete_intermediate": config.delete_intermediate,
        },
        "scheduling": {
            "jobs": config.jobs,
        },
        "blast": {
            "task": config.blast.task,
            "word_size": config.blast.word_size,
            "evalue": config.blast.evalue,
            "perc_identity": config.blast.perc_identity,
            "threads": config.blast.threads,
            "executable": str(config.blast.executable) if config.blast.executable else None,
            "timeout": config.blast.timeout,
        },
    }
