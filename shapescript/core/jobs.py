"""
Job registry: one ShapeEvaluator per job id, one lock per job.

Evaluators are not reentrant, so every call for a job runs under that job's
lock. Different jobs never wait on each other. Registry bookkeeping uses a
single short-held lock, like the in-memory concurrency counters.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from shapescript.core.config import settings
from shapescript.engines.evaluator import ShapeEvaluator

_log = logging.getLogger(__name__)


class JobLimitError(RuntimeError):
    """Raised when a new job would exceed MAX_JOBS."""

    pass


class _Job:
    __slots__ = ("evaluator", "lock")

    def __init__(self, evaluator: ShapeEvaluator) -> None:
        self.evaluator = evaluator
        self.lock = threading.Lock()


class JobRegistry:
    def __init__(
        self,
        max_jobs: int | None = None,
        factory: Callable[[], ShapeEvaluator] = ShapeEvaluator,
    ) -> None:
        self._max_jobs = settings.MAX_JOBS if max_jobs is None else max_jobs
        self._factory = factory
        self._jobs: dict[str, _Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def _get_or_create(self, job_id: str) -> _Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                return job
            if self._max_jobs > 0 and len(self._jobs) >= self._max_jobs:
                raise JobLimitError(f"Too many active jobs (max {self._max_jobs})")
            job = _Job(self._factory())
            self._jobs[job_id] = job
            _log.debug("[jobs] created job_id=%s active=%d", job_id, len(self._jobs))
            return job

    @contextmanager
    def acquire(self, job_id: str) -> Iterator[ShapeEvaluator]:
        """Hold the job's lock and yield its evaluator, creating the job if needed.

        Raises JobLimitError when creating would exceed MAX_JOBS.
        """
        job = self._get_or_create(job_id)
        with job.lock:
            yield job.evaluator

    @contextmanager
    def existing(self, job_id: str) -> Iterator[ShapeEvaluator | None]:
        """Like acquire() but never creates; yields None for an unknown job."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            yield None
            return
        with job.lock:
            yield job.evaluator

    def clear(self, job_id: str) -> bool:
        """Release the job's execution context and forget it. False if unknown."""
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        with job.lock:
            job.evaluator.clear_job()
        _log.debug("[jobs] cleared job_id=%s", job_id)
        return True

    def clear_all(self) -> None:
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for job in jobs:
            with job.lock:
                job.evaluator.clear_job()


_registry = JobRegistry()


def get_job_registry() -> JobRegistry:
    return _registry
