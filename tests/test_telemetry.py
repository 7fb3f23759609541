"""Tests for telemetry values and their correlation with jobs."""

from datetime import timedelta, timezone
import itertools
import json

import pytest

from gstrack.telemetry import \
    TelemetryCorrelator, \
    TelemetryMessage, \
    TelemetryRecord

from conftest import PASS_END, PASS_START


def record_fields(timestamp=1758283200):
    return dict(
        timestamp=timestamp,
        temperature=21.5,
        voltage=7.4,
        current=0.35,
        battery_level=87,
    )


def message(ground_station_id, at, payload=b'\x00\xff'):
    return TelemetryMessage(
        ground_station_id=ground_station_id,
        timestamp=at,
        payload=payload
    )


@pytest.fixture
def correlator(lifecycle):
    return TelemetryCorrelator(lifecycle.station_schedule)


@pytest.fixture
def running_job(lifecycle, clock, make_job):
    lifecycle.register(make_job(1))
    lifecycle.schedule(1, 'GS-1')
    clock.now = PASS_START
    lifecycle.start(1)
    return 1


def test_message_wraps_any_bytes():
    payload = bytes(range(256))

    msg = message('GS-1', PASS_START, payload)

    assert msg.ground_station_id == 'GS-1'
    assert msg.timestamp == PASS_START
    assert msg.payload == payload


def test_message_from_byte_array():
    msg = message('GS-1', PASS_START.replace(tzinfo=None), [1, 2, 3])

    assert msg.payload == b'\x01\x02\x03'
    assert msg.timestamp.tzinfo == timezone.utc
    assert json.loads(msg.model_dump_json())['payload'] == [1, 2, 3]


def test_record_with_same_id():
    first = TelemetryRecord.with_id('sample-1', **record_fields())
    second = TelemetryRecord.with_id('sample-1', **record_fields(1758283260))

    assert first.id == second.id == 'sample-1'


def test_generated_ids_are_distinct():
    first = TelemetryRecord.new(**record_fields())
    second = TelemetryRecord.new(**record_fields())

    assert first.id != second.id


def test_injected_id_source():
    counter = itertools.count(1)

    def next_id():
        return f'rec-{next(counter)}'

    records = [
        TelemetryRecord.new(**record_fields(), id_source=next_id)
            for _ in range(3)
    ]

    assert [r.id for r in records] == ['rec-1', 'rec-2', 'rec-3']


def test_out_of_range_measurements_are_kept():
    record = TelemetryRecord.with_id(
        'odd',
        timestamp=-1,
        temperature=-1000.0,
        voltage=1e9,
        current=-5.0,
        battery_level=250
    )

    assert record.temperature == -1000.0
    assert record.battery_level == 250


def test_observed_at():
    record = TelemetryRecord.new(**record_fields(int(PASS_START.timestamp())))

    assert record.observed_at == PASS_START


def test_correlate_during_pass(correlator, running_job):
    msg = message('GS-1', PASS_START + timedelta(minutes=3))

    assert correlator.correlate(msg) == running_job


def test_correlate_other_station(correlator, running_job):
    assert correlator.correlate(message('GS-2', PASS_START)) is None


def test_correlate_outside_window(correlator, running_job):
    assert correlator.correlate(message('GS-1', PASS_START - timedelta(seconds=1))) is None
    assert correlator.correlate(message('GS-1', PASS_END)) is None


def test_scheduled_job_has_no_pass(correlator, lifecycle, make_job):
    lifecycle.register(make_job(1))
    lifecycle.schedule(1, 'GS-1')

    assert correlator.correlate(message('GS-1', PASS_START)) is None


def test_correlate_after_completion(correlator, lifecycle, clock, running_job):
    clock.now = PASS_END
    lifecycle.complete(running_job)

    msg = message('GS-1', PASS_START + timedelta(minutes=14))

    assert correlator.correlate(msg) == running_job


def test_failed_pass_is_cut_short(correlator, lifecycle, clock, running_job):
    clock.now = PASS_START + timedelta(minutes=5)
    lifecycle.fail(running_job, 'rotator fault')

    assert correlator.correlate(message('GS-1', PASS_START + timedelta(minutes=4))) == running_job
    assert correlator.correlate(message('GS-1', PASS_START + timedelta(minutes=10))) is None


def test_correlate_record(correlator, running_job):
    record = TelemetryRecord.new(
        **record_fields(int((PASS_START + timedelta(minutes=2)).timestamp()))
    )

    assert correlator.correlate_record(record, 'GS-1') == running_job
    assert correlator.correlate_record(record, 'GS-2') is None


def test_correlate_record_with_millisecond_timestamp(correlator, running_job):
    record = TelemetryRecord.new(
        **record_fields(int((PASS_START + timedelta(minutes=2)).timestamp()) * 1000)
    )

    assert correlator.correlate_record(record, 'GS-1') is None


def test_group(correlator, running_job):
    inside = message('GS-1', PASS_START + timedelta(minutes=1))
    outside = message('GS-1', PASS_END + timedelta(minutes=1))

    groups = correlator.group([inside, outside])

    assert groups == {running_job: [inside], None: [outside]}
