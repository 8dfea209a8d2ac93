"""
Per-query jobs and their parallel execution.

One job processes one query genome file end to end:

    claim -> align -> collect best matches -> score -> rank -> classify -> write

A job whose results file already exists is skipped, which lets an
interrupted batch be resumed by running it again. A job whose lock marker
exists is skipped as well, since another worker (or a crashed run) owns it.
Whatever happens inside a job, its claim is released and sibling jobs keep
running.

Jobs are independent and share nothing but the working directory, so the
Scheduler runs them in a bounded pool of worker processes.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import time
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from mlss.core.claims import JobClaim, LockFileClaim
from mlss.core.classification import ThresholdClassifier
from mlss.core.collector import collect_best_matches
from mlss.core.constants import BLAST_SUFFIX, RESULTS_SUFFIX, TEMP_SUFFIX, root_name
from mlss.core.library import ReferenceLibrary
from mlss.core.parsers import PairwiseParser
from mlss.core.ranking import rank_profiles
from mlss.core.scoring import ProfileScorer
from mlss.core.writer import ResultsWriter
from mlss.external.blast import Aligner
from mlss.models.config import SearchConfig

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Lifecycle state of a job."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    SKIPPED_DONE = "skipped-done"
    SKIPPED_LOCKED = "skipped-locked"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self not in (JobStatus.PENDING, JobStatus.RUNNING)


@dataclass(frozen=True)
class Job:
    """One query genome file to process.

    Attributes:
        query: Query filename within the warehouse directory.
        position: 1-based position in the batch.
        total: Number of jobs in the batch.
    """

    query: str
    position: int = 1
    total: int = 1

    @property
    def label(self) -> str:
        return f"[FILE={self.position}/{self.total}]"


@dataclass(frozen=True)
class JobOutcome:
    """Terminal state of a job.

    Attributes:
        job: The job.
        status: Terminal status.
        results_path: Results file of the job.
        message: Reason for skips and failures.
        rows_written: Profile rows written to the results file.
        elapsed_seconds: Wall-clock time spent on the job.
    """

    job: Job
    status: JobStatus
    results_path: Path
    message: str = ""
    rows_written: int = 0
    elapsed_seconds: float = 0.0

    @property
    def query(self) -> str:
        return self.job.query


def results_path_for(workdir: Path, query: str) -> Path:
    """Results file of a query: '<workdir>/<query root>_RESULTS'."""
    return workdir / f"{root_name(query)}{RESULTS_SUFFIX}"


def _failure_message(error: BaseException) -> str:
    text = str(error)
    return text.splitlines()[0] if text else type(error).__name__


@dataclass
class JobRunner:
    """
    Runs single jobs against a validated reference library.

    Args:
        library: Reference data shared by all jobs.
        config: Search configuration.
        aligner: Collaborator producing sorted match records per query.
        workdir: Directory for results, lock markers and raw alignments.
        claim: Job claiming strategy (lock markers by default).
    """

    library: ReferenceLibrary
    config: SearchConfig
    aligner: Aligner
    workdir: Path
    claim: JobClaim = field(default_factory=LockFileClaim)

    def results_path(self, query: str) -> Path:
        return results_path_for(self.workdir, query)

    def alignment_path(self, query: str) -> Path:
        return self.workdir / f"{root_name(query)}_{root_name(self.library.database.name)}{BLAST_SUFFIX}"

    def run(self, job: Job) -> JobOutcome:
        """Run one job to a terminal state. Never raises for job-level failures."""
        start = time.perf_counter()
        results = self.results_path(job.query)
        query_path = self.library.warehouse / job.query
        logger.info("%s ENTRY: %s", job.label, job.query)

        try:
            if not query_path.exists() or query_path.stat().st_size == 0:
                logger.error("%s Missing or empty sequence file (skipping): %s", job.label, query_path)
                return JobOutcome(job, JobStatus.FAILED, results, "missing or empty query file")

            if results.exists():
                logger.info("%s Results file exists (skipping): %s", job.label, results.name)
                return JobOutcome(job, JobStatus.SKIPPED_DONE, results, "results file exists")

            claimed = self.claim.try_claim(results)
        except OSError as e:
            logger.error("%s Cannot claim job (skipping): %s: %s", job.label, job.query, e)
            return JobOutcome(
                job,
                JobStatus.FAILED,
                results,
                _failure_message(e),
                elapsed_seconds=time.perf_counter() - start,
            )

        if not claimed:
            logger.info("%s Lock file exists (skipping): %s", job.label, results.name)
            return JobOutcome(job, JobStatus.SKIPPED_LOCKED, results, "job is locked")

        try:
            rows = self._process(job, query_path, results)
        except Exception as e:
            logger.exception("%s FAILED: %s", job.label, job.query)
            return JobOutcome(
                job,
                JobStatus.FAILED,
                results,
                _failure_message(e),
                elapsed_seconds=time.perf_counter() - start,
            )
        finally:
            self.claim.release(results)

        logger.info("%s FINISHED: %s", job.label, job.query)
        return JobOutcome(
            job,
            JobStatus.DONE,
            results,
            rows_written=rows,
            elapsed_seconds=time.perf_counter() - start,
        )

    def _process(self, job: Job, query_path: Path, results: Path) -> int:
        alignment = self.alignment_path(job.query)
        alignment.unlink(missing_ok=True)

        logger.info("%s Starting alignment: %s", job.label, job.query)
        self.aligner.align(query_path, alignment)

        parser = PairwiseParser(alignment)
        if parser.is_empty():
            logger.info("%s NO RESULTS FROM ALIGNMENT: %s", job.label, job.query)
            matches = {}
        else:
            logger.info("%s Reading alignment output: %s", job.label, job.query)
            matches = collect_best_matches(parser.iter_matches())

        if self.config.delete_intermediate:
            alignment.unlink(missing_ok=True)

        logger.info("%s Calculating profile scores: %s", job.label, job.query)
        scorer = ProfileScorer(
            self.library.allele_lengths,
            method=self.config.identity_method,
            min_sequence_identity=self.config.min_sequence_identity,
            min_match_overlap=self.config.min_match_overlap,
        )
        ranked = rank_profiles(scorer.score_all(self.library.profiles, matches, job.query))

        if self.library.thresholds is not None:
            ranked = ThresholdClassifier(self.library.thresholds).classify_all(ranked)

        logger.info("%s Writing scan results: %s", job.label, job.query)
        # Written under a temporary name so an interrupted write never looks complete
        partial = results.with_name(results.name + TEMP_SUFFIX)
        writer = ResultsWriter(limit=self.config.reporting_limit, header=self.config.write_header)
        rows = writer.write_file(partial, ranked)
        partial.replace(results)

        if results.stat().st_size == 0:
            logger.error("%s SCAN OUTPUT FILE IS EMPTY: %s", job.label, results.name)
        return rows


# Set in each worker process by the pool initializer
_worker_runner: JobRunner | None = None


def _init_worker(runner: JobRunner, initializer: Callable[[], None] | None) -> None:
    global _worker_runner
    _worker_runner = runner
    if initializer is not None:
        initializer()


def _run_in_worker(job: Job) -> JobOutcome:
    if _worker_runner is None:
        msg = "Worker process was not initialized with a JobRunner"
        raise RuntimeError(msg)
    return _worker_runner.run(job)


def make_jobs(queries: Sequence[str]) -> list[Job]:
    """Create one job per query filename, numbered in input order."""
    total = len(queries)
    return [Job(query=query, position=i, total=total) for i, query in enumerate(queries, start=1)]


class Scheduler:
    """
    Runs jobs with bounded parallelism.

    With one worker, jobs run sequentially in the calling process. With
    more, each job runs in a worker process; the reference library is sent
    to each worker once, when the pool starts.

    Args:
        runner: Job runner shared by all workers.
        max_workers: Maximum number of concurrently running jobs.
        worker_initializer: Picklable callable run once in each worker
            process (e.g. to install log handlers).

    Example:
        scheduler = Scheduler(runner, max_workers=4)
        outcomes = scheduler.run(library.queries)
    """

    def __init__(
        self,
        runner: JobRunner,
        max_workers: int = 1,
        worker_initializer: Callable[[], None] | None = None,
    ) -> None:
        if max_workers < 1:
            msg = f"max_workers must be >= 1, got {max_workers}"
            raise ValueError(msg)
        self.runner = runner
        self.max_workers = max_workers
        self.worker_initializer = worker_initializer

    def run(
        self,
        queries: Sequence[str],
        progress_callback: Callable[[JobOutcome], None] | None = None,
    ) -> list[JobOutcome]:
        """
        Run one job per query and wait until every job is terminal.

        Args:
            queries: Query filenames.
            progress_callback: Called in the calling process as each job ends.

        Returns:
            Outcomes in input order.
        """
        jobs = make_jobs(queries)
        if not jobs:
            return []

        outcomes: list[JobOutcome] = []
        if self.max_workers == 1 or len(jobs) == 1:
            for job in jobs:
                outcome = self.runner.run(job)
                outcomes.append(outcome)
                if progress_callback:
                    progress_callback(outcome)
        else:
            processes = min(self.max_workers, len(jobs))
            with mp.Pool(
                processes=processes,
                initializer=_init_worker,
                initargs=(self.runner, self.worker_initializer),
            ) as pool:
                for outcome in pool.imap_unordered(_run_in_worker, jobs):
                    outcomes.append(outcome)
                    if progress_callback:
                        progress_callback(outcome)

        outcomes.sort(key=lambda outcome: outcome.job.position)
        return outcomes


def summarize_outcomes(outcomes: Sequence[JobOutcome]) -> dict[JobStatus, int]:
    """Count outcomes per terminal status."""
    counts = Counter(outcome.status for outcome in outcomes)
    return {status: counts.get(status, 0) for status in JobStatus if status.is_terminal}
