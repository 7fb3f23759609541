'''
Registry of accepted tracking jobs, keyed by job id.

Id uniqueness is a property of the collection of jobs, not of a single job, so
it is enforced here with insert-if-absent semantics rather than on `Job`.
'''


import logging
import threading
from typing import Dict, Iterator, List, Optional

from gstrack.debug import debug
from gstrack.exceptions import \
    JobValidationError, \
    JobValidationErrorKind, \
    UnknownJobError
from gstrack.job import Job


logger: logging.Logger = logging.getLogger(__name__)


class JobRegistry:
    '''
    Thread-safe mapping of job ids to jobs.
    '''

    def __init__(self):
        self._jobs: Dict[int, Job] = {}
        self._lock = threading.Lock()

    def insert(self, job: Job) -> None:
        '''
        Adds a job, unless a job with the same id is already registered.

        Args:
            job: The validated job to add.

        Raises:
            JobValidationError: If the id is already taken.
        '''

        with self._lock:
            if job.id in self._jobs:
                logger.warning('Rejected %s: id already registered', job)
                raise JobValidationError(
                    JobValidationErrorKind.DUPLICATE_ID,
                    f'Job id {job.id} is already assigned to another job'
                )
            self._jobs[job.id] = job

        logger.info('Registered %s', job)
        log_registry(self)

    def get(self, job_id: int) -> Job:
        '''
        Gets the job with the given id.

        Raises:
            UnknownJobError: If no job has that id.
        '''

        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise UnknownJobError(job_id)
        return job

    def find(self, job_id: int) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def remove(self, job_id: int) -> Job:
        '''
        Removes the job with the given id, freeing the id.

        Raises:
            UnknownJobError: If no job has that id.
        '''

        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            raise UnknownJobError(job_id)
        logger.info('Removed %s', job)
        return job

    def jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(self.jobs())


@debug
def log_registry(registry: JobRegistry):
    '''
    Logs every registered job.
    '''
    logger.debug(
        'Registered jobs (%d): %s',
        len(registry),
        sorted(job.id for job in registry)
    )
