'''
Tracking jobs for a satellite ground station: validation of orbital elements
and job windows, the job lifecycle, and correlation of pass telemetry.
'''


from .exceptions import \
    GroundStationError, \
    IllegalTransitionError, \
    JobLifecycleError, \
    JobValidationError, \
    JobValidationErrorKind, \
    ScheduleConflictError, \
    TleParseError, \
    TleParseErrorKind, \
    TransitionPreconditionError, \
    UnknownJobError
from .job import Job
from .lifecycle import \
    JobLifecycle, \
    JobState, \
    JobStatus, \
    StatusEvent, \
    can_transition
from .registry import JobRegistry
from .station_schedule import Reservation, StationSchedule
from .telemetry import TelemetryCorrelator, TelemetryMessage, TelemetryRecord
from .tle import TleData, parse_tle, tle_checksum
