"""
Job claiming for crash-safe, resumable batch runs.

A job is claimed before its aligner run and released once it finishes,
whatever the outcome. LockFileClaim records a claim as a '.lock' marker
next to the job's results file, which lets separate invocations sharing a
working directory skip each other's jobs.

The marker check and the marker creation are two separate filesystem
operations, so two processes starting the same job at the same moment may
both succeed in claiming it. A marker left behind by a killed run looks
exactly like a marker of a live run and must be removed by hand before the
job can be retried.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from mlss.core.constants import LOCK_SUFFIX

logger = logging.getLogger(__name__)


@runtime_checkable
class JobClaim(Protocol):
    """Mutual exclusion for jobs identified by their results file."""

    def try_claim(self, job_id: Path) -> bool:
        """Claim a job; False if another worker already holds it."""
        ...

    def release(self, job_id: Path) -> None:
        """Release a claim so the job may be retried later."""
        ...


class LockFileClaim:
    """
    Lock-marker claims on the shared filesystem.

    The marker for results file 'X_RESULTS' is 'X_RESULTS.lock'.
    """

    def lock_path(self, job_id: Path) -> Path:
        return job_id.with_name(job_id.name + LOCK_SUFFIX)

    def is_locked(self, job_id: Path) -> bool:
        return self.lock_path(job_id).exists()

    def try_claim(self, job_id: Path) -> bool:
        if self.is_locked(job_id):
            return False
        self.lock_path(job_id).touch()
        logger.debug("Created lock marker %s", self.lock_path(job_id))
        return True

    def release(self, job_id: Path) -> None:
        self.lock_path(job_id).unlink(missing_ok=True)
        logger.debug("Removed lock marker %s", self.lock_path(job_id))

    def stale_locks(self, directory: Path) -> list[Path]:
        """List lock markers present in a working directory."""
        return sorted(directory.glob(f"*{LOCK_SUFFIX}"))
