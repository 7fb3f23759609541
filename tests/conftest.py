from datetime import datetime, timedelta, timezone

import pytest

from gstrack.env import ENV_KEY
from gstrack.job import Job
from gstrack.lifecycle import JobLifecycle
from gstrack.tle import TleData


ISS_NAME = 'ISS (ZARYA)'
ISS_LINE1 = '1 25544U 98067A   25235.75642456  .00011222  00000+0  20339-3 0  9993'
ISS_LINE2 = '2 25544  51.6355 332.1708 0003307 260.2831  99.7785 15.50129787525648'

PASS_START = datetime(2025, 9, 19, 12, 0, tzinfo=timezone.utc)
PASS_END = datetime(2025, 9, 19, 12, 15, tzinfo=timezone.utc)


class FakeClock:
    '''
    Clock that only moves when told to.
    '''

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def no_checksum_env(monkeypatch):
    """Keep the checksum flag of the outer environment out of the tests."""
    monkeypatch.delenv(ENV_KEY.ENFORCE_TLE_CHECKSUM, raising=False)


@pytest.fixture
def iss_tle_text():
    return f'{ISS_NAME}\n{ISS_LINE1}\n{ISS_LINE2}'


@pytest.fixture
def iss_tle():
    return TleData(tle0=ISS_NAME, tle1=ISS_LINE1, tle2=ISS_LINE2)


@pytest.fixture
def job_payload():
    """Submission payload of a 15 minute ISS pass with an uplink."""
    return {
        'id': 12345,
        'satellite_id': ISS_NAME,
        'start': '2025-09-19T12:00:00Z',
        'end': '2025-09-19T12:15:00Z',
        'tle': {'tle0': ISS_NAME, 'tle1': ISS_LINE1, 'tle2': ISS_LINE2},
        'rx_frequency': 145800000,
        'tx_frequency': 437500000,
        'uplink': [72, 101, 108, 108, 111],
    }


@pytest.fixture
def make_job(iss_tle):
    """Builds jobs on the ISS TLE, with the window given in minutes after
    12:00 UTC on 2025-09-19."""

    def _make_job(job_id, start_minute=0, end_minute=15, **kwargs):
        fields = dict(
            id=job_id,
            satellite_id=ISS_NAME,
            start=PASS_START + timedelta(minutes=start_minute),
            end=PASS_START + timedelta(minutes=end_minute),
            tle=iss_tle,
            rx_frequency=145_800_000.0,
            tx_frequency=437_500_000.0,
        )
        fields.update(kwargs)
        return Job(**fields)

    return _make_job


@pytest.fixture
def clock():
    return FakeClock(PASS_START - timedelta(hours=1))


@pytest.fixture
def lifecycle(clock):
    return JobLifecycle(clock=clock)


@pytest.fixture
def events(lifecycle):
    received = []
    lifecycle.subscribe(received.append)
    return received
