'''
Definitions of exceptions that can occur when validating tracking jobs and
moving them through their lifecycle.

None of these exceptions derive from `ValueError`, so Pydantic lets them escape
model validation unchanged instead of folding them into a `ValidationError`.
'''


from enum import Enum
from typing import Optional


class GroundStationError(Exception):
    '''
    Base class of every exception raised by the gstrack package.
    '''


class TleParseErrorKind(Enum):
    '''
    The reason a two-line element set was rejected.
    '''

    INSUFFICIENT_LINES = 'insufficient_lines'
    INVALID_TLE1_LENGTH = 'invalid_tle1_length'
    INVALID_TLE2_LENGTH = 'invalid_tle2_length'
    INVALID_TLE1_CHECKSUM = 'invalid_tle1_checksum'
    INVALID_TLE2_CHECKSUM = 'invalid_tle2_checksum'


_TLE_MESSAGES = {
    TleParseErrorKind.INSUFFICIENT_LINES:
        'Expected 3 lines (name, line 1, line 2)',
    TleParseErrorKind.INVALID_TLE1_LENGTH:
        'TLE line 1 must be exactly 69 characters',
    TleParseErrorKind.INVALID_TLE2_LENGTH:
        'TLE line 2 must be exactly 69 characters',
    TleParseErrorKind.INVALID_TLE1_CHECKSUM:
        'TLE line 1 checksum digit does not match its contents',
    TleParseErrorKind.INVALID_TLE2_CHECKSUM:
        'TLE line 2 checksum digit does not match its contents',
}


class TleParseError(GroundStationError):
    '''
    Exception raised when a two-line element set is structurally invalid.
    '''

    def __init__(self, kind: TleParseErrorKind, detail: Optional[str] = None):
        self.kind = kind
        message = _TLE_MESSAGES[kind]
        if detail:
            message = f'{message} ({detail})'
        super().__init__(message)


class JobValidationErrorKind(Enum):
    '''
    The reason a tracking job was rejected.
    '''

    INVALID_TIME_WINDOW = 'invalid_time_window'
    INVALID_RX_FREQUENCY = 'invalid_rx_frequency'
    INVALID_TX_FREQUENCY = 'invalid_tx_frequency'
    DUPLICATE_ID = 'duplicate_id'


class JobValidationError(GroundStationError):
    '''
    Exception raised when a tracking job violates one of its invariants.
    '''

    def __init__(self, kind: JobValidationErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


class JobLifecycleError(GroundStationError):
    '''
    Base class of the exceptions raised by the job lifecycle state machine.
    '''


class UnknownJobError(JobLifecycleError):
    '''
    Exception raised when a job id has never been registered.
    '''

    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f'Job {job_id} is not registered')


class IllegalTransitionError(JobLifecycleError):
    '''
    Exception raised when a job is asked to move to a state that cannot be
    reached from its current state.
    '''

    def __init__(self, job_id: int, current, target):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(
            f'Job {job_id} cannot move from {current.value} to {target.value}'
        )


class TransitionPreconditionError(JobLifecycleError):
    '''
    Exception raised when a transition is legal but its entry precondition
    does not hold yet, for example starting a job before its window opens.
    '''

    def __init__(self, job_id: int, message: str):
        self.job_id = job_id
        super().__init__(f'Job {job_id}: {message}')


class ScheduleConflictError(JobLifecycleError):
    '''
    Exception raised when a job's window overlaps a job that already holds the
    same ground station.
    '''

    def __init__(self, job_id: int, ground_station_id: str, conflicting_ids):
        self.job_id = job_id
        self.ground_station_id = ground_station_id
        self.conflicting_ids = sorted(conflicting_ids)
        super().__init__(
            f'Job {job_id} overlaps job(s) '
                f'{", ".join(str(i) for i in self.conflicting_ids)} on ground '
                f'station {ground_station_id}'
        )


class MissingEnvironmentVariableError(GroundStationError):
    '''
    Exception raised when a required environment variable is unset or empty.
    '''

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f'The environment variable {key} is either not set or is an empty '
                'string'
        )
