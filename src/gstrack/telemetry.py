'''
Telemetry produced while a job is running, and its correlation back to the job
that produced it.

Telemetry carries no job id. A message is matched to a job by its ground
station and timestamp: it belongs to the job whose pass on that ground station
covers that time.
'''


from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from gstrack.job import coerce_byte_array, ensure_utc
from gstrack.station_schedule import StationSchedule


logger: logging.Logger = logging.getLogger(__name__)

IdSource = Callable[[], str]
'''
Zero-argument callable returning a new unique identifier.
'''


def uuid4_id() -> str:
    return str(uuid.uuid4())


class TelemetryMessage(BaseModel):
    '''
    Transport envelope of one received frame. The payload is not decoded.
    '''

    model_config = ConfigDict(frozen=True)

    ground_station_id: str
    '''
    The ground station that received the frame.
    '''

    timestamp: datetime
    '''
    When the frame was received.
    '''

    payload: bytes
    '''
    The raw frame.
    '''

    @field_validator('timestamp', mode='after')
    @classmethod
    def ensure_timestamp_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator('payload', mode='before')
    @classmethod
    def ensure_payload_bytes(cls, v: Any) -> Any:
        return coerce_byte_array(v)

    @field_serializer('payload')
    def serialize_payload(self, v: bytes):
        return list(v)


class TelemetryRecord(BaseModel):
    '''
    A decoded telemetry sample.

    Measurements are stored as received; values outside of physical ranges are
    left for downstream analysis.
    '''

    model_config = ConfigDict(frozen=True)

    id: str
    '''
    Unique identifier of the sample.
    '''

    timestamp: int
    '''
    When the sample was taken, in seconds since the Unix epoch.
    '''

    temperature: float
    voltage: float
    current: float
    battery_level: int

    @classmethod
    def new(
        cls,
        timestamp: int,
        temperature: float,
        voltage: float,
        current: float,
        battery_level: int,
        id_source: IdSource = uuid4_id
    ) -> 'TelemetryRecord':
        '''
        Creates a sample with a freshly generated identifier.

        Args:
            id_source: Generates the identifier. Defaults to random UUIDs.
        '''

        return cls(
            id=id_source(),
            timestamp=timestamp,
            temperature=temperature,
            voltage=voltage,
            current=current,
            battery_level=battery_level
        )

    @classmethod
    def with_id(
        cls,
        id: str,
        timestamp: int,
        temperature: float,
        voltage: float,
        current: float,
        battery_level: int
    ) -> 'TelemetryRecord':
        '''
        Creates a sample with a caller-supplied identifier, e.g. when reloading
        it from storage or replaying it.
        '''

        return cls(
            id=id,
            timestamp=timestamp,
            temperature=temperature,
            voltage=voltage,
            current=current,
            battery_level=battery_level
        )

    @property
    def observed_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class TelemetryCorrelator:
    '''
    Matches telemetry to the job whose pass covers it.
    '''

    def __init__(self, schedule: StationSchedule):
        self.schedule = schedule

    def correlate(self, message: TelemetryMessage) -> Optional[int]:
        '''
        Gets the id of the job that the message belongs to.

        Returns:
            The job id, or `None` if no job was running a pass on the ground
            station when the message was received.
        '''

        job_id = self.schedule.pass_at(
            message.ground_station_id,
            message.timestamp
        )
        if job_id is None:
            logger.debug(
                'No pass on %s at %s',
                message.ground_station_id,
                message.timestamp.isoformat()
            )
        return job_id

    def correlate_record(
        self,
        record: TelemetryRecord,
        ground_station_id: str
    ) -> Optional[int]:
        '''
        Gets the id of the job that a sample decoded at the given ground
        station belongs to.

        Returns:
            The job id, or `None` if no job was running a pass on the ground
            station at the sample's timestamp, or if the timestamp cannot be
            represented as a date (e.g. it is in milliseconds).
        '''

        try:
            observed_at = record.observed_at
        except (ValueError, OverflowError, OSError) as e:
            logger.debug(
                'Sample %s has unrepresentable timestamp %d: %s',
                record.id,
                record.timestamp,
                e
            )
            return None
        return self.schedule.pass_at(ground_station_id, observed_at)

    def group(
        self,
        messages: Iterable[TelemetryMessage]
    ) -> Dict[Optional[int], List[TelemetryMessage]]:
        '''
        Groups messages by the job they belong to. Messages that belong to no
        job are grouped under `None`.
        '''

        groups: Dict[Optional[int], List[TelemetryMessage]] = {}
        for message in messages:
            groups.setdefault(self.correlate(message), []).append(message)
        return groups
