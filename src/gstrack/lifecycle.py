'''
The lifecycle of a tracking job, from registration to completion or failure.

A job moves one way through the states

```
Received -> Scheduled -> Started -> Completed
```

and can fail into `Error` from any state that is not terminal. The current
state of each job is kept here, apart from the immutable `Job`, and only ever
changes through `JobLifecycle`'s transition methods. Every change is published
to the subscribed listeners as a `StatusEvent`.
'''


from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
import logging
import threading
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict

from gstrack.debug import debug
from gstrack.exceptions import \
    IllegalTransitionError, \
    ScheduleConflictError, \
    TransitionPreconditionError, \
    UnknownJobError
from gstrack.job import Job, ensure_utc
from gstrack.registry import JobRegistry
from gstrack.station_schedule import StationSchedule


logger: logging.Logger = logging.getLogger(__name__)


class JobStatus(Enum):
    '''
    The status of a job in the ground station pipeline.
    '''

    RECEIVED = 'Received'
    SCHEDULED = 'Scheduled'
    STARTED = 'Started'
    COMPLETED = 'Completed'
    ERROR = 'Error'

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.RECEIVED: frozenset({JobStatus.SCHEDULED, JobStatus.ERROR}),
    JobStatus.SCHEDULED: frozenset({JobStatus.STARTED, JobStatus.ERROR}),
    JobStatus.STARTED: frozenset({JobStatus.COMPLETED, JobStatus.ERROR}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.ERROR: frozenset(),
}
'''
The states each state can move to.
'''


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in TRANSITIONS[current]


class JobState(BaseModel):
    '''
    The runtime state of a registered job.
    '''

    model_config = ConfigDict(frozen=True)

    job_id: int
    '''
    The id of the job.
    '''

    status: JobStatus
    '''
    The current status of the job.
    '''

    ground_station_id: Optional[str] = None
    '''
    The ground station reserved for the job, once it has been scheduled.
    '''

    cause: Optional[str] = None
    '''
    Why the job failed. Only set when the status is `JobStatus.ERROR`.
    '''

    updated_at: datetime
    '''
    When the job entered its current status.
    '''


class StatusEvent(BaseModel):
    '''
    Notification that a job entered a new status, published to monitoring and
    API collaborators.
    '''

    model_config = ConfigDict(frozen=True)

    job_id: int
    status: JobStatus
    ground_station_id: Optional[str] = None
    cause: Optional[str] = None
    timestamp: datetime


StatusListener = Callable[[StatusEvent], None]

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobLifecycle:
    '''
    State machine tracking the status of every registered job.

    At most one transition runs per job at a time. Transitions of distinct jobs
    run concurrently.
    '''

    def __init__(
        self,
        clock: Optional[Clock] = None,
        schedule: Optional[StationSchedule] = None,
        registry: Optional[JobRegistry] = None
    ):
        '''
        Args:
            clock: Returns the current UTC time. It is read when a job starts
                or completes, and to timestamp states and events.

            schedule: The ground station reservations that scheduled jobs are
                entered into.

            registry: The registry that owns the jobs.
        '''

        self.clock: Clock = clock if clock is not None else utc_now
        self.station_schedule = schedule if schedule is not None else StationSchedule()
        self.registry = registry if registry is not None else JobRegistry()
        self._states: Dict[int, JobState] = {}
        self._job_locks: Dict[int, threading.Lock] = {}
        self._lock = threading.Lock()
        self._listeners: List[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> None:
        '''
        Adds a listener that is called with every status event. Listeners run
        synchronously, in subscription order, while the job is locked.
        Exceptions raised by a listener propagate to the caller of the
        transition.

        The job lock is not reentrant: a listener must not call a transition
        method for the job it is notified about from the same thread, or that
        call deadlocks. Hand such follow-ups to another thread instead.
        '''
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    def _publish(self, state: JobState) -> None:
        event = StatusEvent(
            job_id=state.job_id,
            status=state.status,
            ground_station_id=state.ground_station_id,
            cause=state.cause,
            timestamp=state.updated_at
        )
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(event)

    @contextmanager
    def _locked(self, job_id: int) -> Iterator[JobState]:
        with self._lock:
            job_lock = self._job_locks.get(job_id)
        if job_lock is None:
            raise UnknownJobError(job_id)
        with job_lock:
            with self._lock:
                current_lock = self._job_locks.get(job_id)
                state = self._states.get(job_id)
            # The job may have been purged, and its id reused, while this call
            # waited for the lock
            if current_lock is not job_lock or state is None:
                raise UnknownJobError(job_id)
            yield state

    def _set_state(
        self,
        current: JobState,
        target: JobStatus,
        cause: Optional[str] = None,
        ground_station_id: Optional[str] = None
    ) -> JobState:
        if not can_transition(current.status, target):
            raise IllegalTransitionError(current.job_id, current.status, target)

        state = JobState(
            job_id=current.job_id,
            status=target,
            ground_station_id=ground_station_id
                if ground_station_id is not None
                else current.ground_station_id,
            cause=cause,
            updated_at=self._now()
        )
        with self._lock:
            self._states[current.job_id] = state

        if target.is_terminal:
            self.station_schedule.release(current.job_id)
            if current.status == JobStatus.STARTED:
                self.station_schedule.close_pass(current.job_id, state.updated_at)

        if cause is None:
            logger.info(
                'Job %d: %s -> %s',
                current.job_id,
                current.status.value,
                target.value
            )
        else:
            logger.warning(
                'Job %d: %s -> %s (%s)',
                current.job_id,
                current.status.value,
                target.value,
                cause
            )
        self._publish(state)
        return state

    def register(self, job: Job) -> JobState:
        '''
        Registers a validated job. The job starts out as `Received`.

        Args:
            job: The job to register.

        Returns:
            The state of the newly registered job.

        Raises:
            JobValidationError: If another registered job has the same id.
        '''

        job_lock = threading.Lock()
        with job_lock:
            with self._lock:
                self.registry.insert(job)
                state = JobState(
                    job_id=job.id,
                    status=JobStatus.RECEIVED,
                    updated_at=self._now()
                )
                self._states[job.id] = state
                self._job_locks[job.id] = job_lock
            self._publish(state)
        log_states(self)
        return state

    def schedule(self, job_id: int, ground_station_id: str) -> JobState:
        '''
        Moves a received job to `Scheduled`, reserving the ground station for
        the job's window.

        Args:
            job_id: The id of the job.

            ground_station_id: The ground station that will execute the job.

        Returns:
            The new state of the job.

        Raises:
            ScheduleConflictError: If the window overlaps another scheduled or
                started job on the same ground station. The job is moved to
                `Error` before this is raised.
        '''

        with self._locked(job_id) as current:
            if not can_transition(current.status, JobStatus.SCHEDULED):
                raise IllegalTransitionError(
                    job_id,
                    current.status,
                    JobStatus.SCHEDULED
                )
            job = self.registry.get(job_id)
            try:
                self.station_schedule.reserve(job, ground_station_id)
            except ScheduleConflictError as e:
                self._set_state(current, JobStatus.ERROR, str(e))
                raise
            return self._set_state(
                current,
                JobStatus.SCHEDULED,
                ground_station_id=ground_station_id
            )

    def start(self, job_id: int) -> JobState:
        '''
        Moves a scheduled job to `Started`.

        Raises:
            TransitionPreconditionError: If the job's window has not opened
                yet. The job stays `Scheduled`.
        '''

        with self._locked(job_id) as current:
            if not can_transition(current.status, JobStatus.STARTED):
                raise IllegalTransitionError(
                    job_id,
                    current.status,
                    JobStatus.STARTED
                )
            job = self.registry.get(job_id)
            now = self._now()
            if now < job.start:
                raise TransitionPreconditionError(
                    job_id,
                    f'cannot start before {job.start.isoformat()} '
                        f'(now {now.isoformat()})'
                )
            self.station_schedule.open_pass(job_id)
            return self._set_state(current, JobStatus.STARTED)

    def complete(self, job_id: int) -> JobState:
        '''
        Moves a started job to `Completed`.

        Raises:
            TransitionPreconditionError: If the job's window has not closed
                yet. The job stays `Started`.
        '''

        with self._locked(job_id) as current:
            if not can_transition(current.status, JobStatus.COMPLETED):
                raise IllegalTransitionError(
                    job_id,
                    current.status,
                    JobStatus.COMPLETED
                )
            job = self.registry.get(job_id)
            now = self._now()
            if now < job.end:
                raise TransitionPreconditionError(
                    job_id,
                    f'cannot complete before {job.end.isoformat()} '
                        f'(now {now.isoformat()})'
                )
            return self._set_state(current, JobStatus.COMPLETED)

    def fail(self, job_id: int, cause: str) -> JobState:
        '''
        Moves a job that has not finished to `Error`.

        Args:
            job_id: The id of the job.

            cause: Human-readable description of what went wrong.

        Returns:
            The new state of the job.
        '''

        if not cause or not cause.strip():
            raise ValueError('A failed job needs a cause')

        with self._locked(job_id) as current:
            return self._set_state(current, JobStatus.ERROR, cause)

    def purge(self, job_id: int) -> Job:
        '''
        Forgets a finished job, freeing its id for reuse.

        Returns:
            The purged job.

        Raises:
            TransitionPreconditionError: If the job has not finished.
        '''

        with self._locked(job_id) as current:
            if not current.status.is_terminal:
                raise TransitionPreconditionError(
                    job_id,
                    f'cannot purge a job that is {current.status.value}'
                )
            with self._lock:
                del self._states[job_id]
                del self._job_locks[job_id]
                job = self.registry.remove(job_id)
            self.station_schedule.forget_pass(job_id)
        logger.info('Purged %s', job)
        return job

    def state(self, job_id: int) -> JobState:
        with self._lock:
            state = self._states.get(job_id)
        if state is None:
            raise UnknownJobError(job_id)
        return state

    def status(self, job_id: int) -> JobStatus:
        return self.state(job_id).status

    def job(self, job_id: int) -> Job:
        return self.registry.get(job_id)

    def states(self, status: Optional[JobStatus] = None) -> List[JobState]:
        '''
        Gets the states of all registered jobs, ordered by job id, optionally
        restricted to one status.
        '''

        with self._lock:
            states = list(self._states.values())
        if status is not None:
            states = [s for s in states if s.status == status]
        return sorted(states, key=lambda s: s.job_id)


@debug
def log_states(lifecycle: JobLifecycle):
    '''
    Logs how many jobs are in each status.
    '''
    counts = {status: 0 for status in JobStatus}
    for state in lifecycle.states():
        counts[state.status] += 1
    logger.debug(
        'Job statuses: %s',
        ', '.join(f'{status.value}={count}' for status, count in counts.items())
    )
