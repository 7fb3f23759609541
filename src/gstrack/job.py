'''
Definition of the tracking job: a request for the ground station to track one
satellite pass, with the time window, orbital elements and radio parameters it
needs.
'''


from datetime import datetime, timedelta, timezone
import math
from typing import Any, Optional

from intervaltree import Interval
from pydantic import \
    BaseModel, \
    ConfigDict, \
    field_serializer, \
    field_validator, \
    model_validator

from gstrack.exceptions import JobValidationError, JobValidationErrorKind
from gstrack.tle import CHECKSUM_CONTEXT_KEY, TleData


U64_MAX = 2**64 - 1
'''
Largest job id that fits in an unsigned 64-bit integer.
'''


def ensure_utc(v: datetime) -> datetime:
    '''
    Returns the datetime in UTC. Naive datetimes are taken to already be UTC.
    '''
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def coerce_byte_array(v: Any) -> Any:
    '''
    Converts an array of byte values, as raw bytes appear in JSON payloads, to
    `bytes`. Anything else is returned unchanged.
    '''
    if isinstance(v, (list, tuple)):
        if not all(isinstance(b, int) and not isinstance(b, bool) for b in v):
            raise ValueError('expected an array of integers')
        # bytes() raises ValueError for values outside 0-255
        return bytes(v)
    return v


class Job(BaseModel):
    '''
    Representation of a job that instructs the ground station to track a
    satellite pass.

    A job is immutable once it has been validated. Its runtime status is kept
    by `gstrack.lifecycle.JobLifecycle`, not on the job; a changed schedule is
    a new job with a new id.

    Example submission payload:

    ```
    {
      "id": 12345,
      "satellite_id": "ISS (ZARYA)",
      "start": "2025-09-19T12:00:00Z",
      "end": "2025-09-19T12:15:00Z",
      "tle": {
        "tle0": "ISS (ZARYA)",
        "tle1": "1 25544U 98067A   25235.75642456  .00011222  00000+0  20339-3 0  9993",
        "tle2": "2 25544  51.6355 332.1708 0003307 260.2831  99.7785 15.50129787525648"
      },
      "rx_frequency": 145800000,
      "tx_frequency": 437500000,
      "uplink": [72, 101, 108, 108, 111]
    }
    ```
    '''

    model_config = ConfigDict(
        frozen=True,
        json_encoders={datetime: lambda v: v.isoformat()}
    )

    id: int
    '''
    Caller-assigned identifier of the job. Uniqueness among live jobs is
    enforced by `gstrack.registry.JobRegistry`.
    '''

    satellite_id: str
    '''
    Identifier of the satellite to be tracked.
    '''

    start: datetime
    '''
    The time at which tracking begins (acquisition of signal).
    '''

    end: datetime
    '''
    The time at which tracking ends (loss of signal).
    '''

    tle: TleData
    '''
    The orbital elements of the satellite to be tracked.
    '''

    rx_frequency: float
    '''
    The downlink frequency in Hz.
    '''

    tx_frequency: float
    '''
    The uplink frequency in Hz.
    '''

    uplink: Optional[bytes] = None
    '''
    Raw bytes to transmit during the pass. `None` means the pass is
    receive-only.
    '''

    @field_validator('id', mode='after')
    @classmethod
    def ensure_u64_id(cls, v: int) -> int:
        '''
        Ensures that the id fits in an unsigned 64-bit integer.
        '''
        if not 0 <= v <= U64_MAX:
            raise ValueError(f'id must be between 0 and {U64_MAX}')
        return v

    @field_validator('start', 'end', mode='after')
    @classmethod
    def ensure_times_utc(cls, v: datetime) -> datetime:
        '''
        Ensures that the start and end times are in UTC.
        '''
        return ensure_utc(v)

    @field_validator('uplink', mode='before')
    @classmethod
    def ensure_uplink_bytes(cls, v: Any) -> Any:
        '''
        Accepts the uplink as an array of byte values, as it appears in a
        submission payload.
        '''
        return coerce_byte_array(v)

    @field_serializer('uplink')
    def serialize_uplink(self, v: Optional[bytes]):
        return None if v is None else list(v)

    @model_validator(mode='after')
    def ensure_invariants(self) -> 'Job':
        '''
        Ensures that the time window is ordered and that both frequencies are
        finite and positive, in that order.
        '''
        if self.start >= self.end:
            raise JobValidationError(
                JobValidationErrorKind.INVALID_TIME_WINDOW,
                f'Job {self.id} starts at {self.start.isoformat()} which is '
                    f'not before its end at {self.end.isoformat()}'
            )
        if not (math.isfinite(self.rx_frequency) and self.rx_frequency > 0):
            raise JobValidationError(
                JobValidationErrorKind.INVALID_RX_FREQUENCY,
                f'Job {self.id} has rx_frequency {self.rx_frequency}, '
                    'expected a finite positive number of Hz'
            )
        if not (math.isfinite(self.tx_frequency) and self.tx_frequency > 0):
            raise JobValidationError(
                JobValidationErrorKind.INVALID_TX_FREQUENCY,
                f'Job {self.id} has tx_frequency {self.tx_frequency}, '
                    'expected a finite positive number of Hz'
            )
        return self

    @classmethod
    def from_json(
        cls,
        data: str | bytes,
        verify_checksum: Optional[bool] = None
    ) -> 'Job':
        '''
        Validates a JSON submission payload.

        Args:
            data: The JSON document.

            verify_checksum: Whether the TLE checksums are verified. `None`
                defers to the `GSTRACK_ENFORCE_TLE_CHECKSUM` environment
                variable.

        Returns:
            The validated job.
        '''

        return cls.model_validate_json(
            data,
            context={CHECKSUM_CONTEXT_KEY: verify_checksum}
        )

    @property
    def has_uplink(self) -> bool:
        return self.uplink is not None

    @property
    def is_receive_only(self) -> bool:
        return self.uplink is None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def interval(self) -> Interval:
        return Interval(self.start, self.end, self.id)

    def __str__(self):
        return f'Job {self.id} ({self.satellite_id})'

    def __repr__(self) -> str:
        return str(self)
