"""Tests for tracking job validation."""

from datetime import datetime, timedelta, timezone
import json
import math

import pytest
from pydantic import ValidationError

from gstrack.exceptions import \
    JobValidationError, \
    JobValidationErrorKind, \
    TleParseError, \
    TleParseErrorKind
from gstrack.job import U64_MAX, Job

from conftest import ISS_LINE1, ISS_NAME, PASS_END, PASS_START


def test_submission_payload_scenario(job_payload):
    job = Job.model_validate(job_payload)

    assert job.id == 12345
    assert job.satellite_id == ISS_NAME
    assert job.start == PASS_START
    assert job.end == PASS_END
    assert job.tle.tle0 == ISS_NAME
    assert job.rx_frequency == 145_800_000
    assert job.tx_frequency == 437_500_000
    assert job.uplink == b'Hello'
    assert job.has_uplink
    assert not job.is_receive_only
    assert job.duration == timedelta(minutes=15)


def test_from_json(job_payload):
    job = Job.from_json(json.dumps(job_payload))

    assert job.uplink == b'Hello'
    assert job.start.tzinfo is not None


def test_uplink_serialized_as_byte_values(job_payload):
    job = Job.model_validate(job_payload)

    dumped = json.loads(job.model_dump_json())

    assert dumped['uplink'] == [72, 101, 108, 108, 111]
    assert Job.from_json(job.model_dump_json()) == job


def test_receive_only(make_job):
    job = make_job(1)

    assert job.uplink is None
    assert job.is_receive_only
    assert job.model_dump()['uplink'] is None


def test_uplink_bytes_have_no_upper_bound(make_job):
    job = make_job(1, uplink=bytes(range(256)) * 1000)

    assert len(job.uplink) == 256_000


def test_empty_uplink_is_not_receive_only(make_job):
    job = make_job(1, uplink=[])

    assert job.uplink == b''
    assert job.has_uplink


@pytest.mark.parametrize('uplink', [[256], [-1], ['a'], [True]])
def test_uplink_values_must_be_bytes(job_payload, uplink):
    job_payload['uplink'] = uplink

    with pytest.raises(ValidationError):
        Job.model_validate(job_payload)


@pytest.mark.parametrize('end_minute', [0, -1, -60])
def test_window_must_be_ordered(make_job, end_minute):
    with pytest.raises(JobValidationError) as e:
        make_job(1, start_minute=0, end_minute=end_minute)

    assert e.value.kind == JobValidationErrorKind.INVALID_TIME_WINDOW


def test_one_second_window_is_valid(iss_tle):
    job = Job(
        id=1,
        satellite_id=ISS_NAME,
        start=PASS_START,
        end=PASS_START + timedelta(seconds=1),
        tle=iss_tle,
        rx_frequency=1.0,
        tx_frequency=1.0,
    )

    assert job.duration == timedelta(seconds=1)


@pytest.mark.parametrize('frequency', [0.0, -145_800_000.0, math.nan, math.inf, -math.inf])
def test_rx_frequency_must_be_finite_and_positive(make_job, frequency):
    with pytest.raises(JobValidationError) as e:
        make_job(1, rx_frequency=frequency)

    assert e.value.kind == JobValidationErrorKind.INVALID_RX_FREQUENCY


@pytest.mark.parametrize('frequency', [0.0, -1.0, math.nan, math.inf])
def test_tx_frequency_must_be_finite_and_positive(make_job, frequency):
    with pytest.raises(JobValidationError) as e:
        make_job(1, tx_frequency=frequency)

    assert e.value.kind == JobValidationErrorKind.INVALID_TX_FREQUENCY


def test_window_is_checked_before_frequencies(make_job):
    with pytest.raises(JobValidationError) as e:
        make_job(1, end_minute=0, rx_frequency=0.0, tx_frequency=0.0)

    assert e.value.kind == JobValidationErrorKind.INVALID_TIME_WINDOW


def test_rx_is_checked_before_tx(make_job):
    with pytest.raises(JobValidationError) as e:
        make_job(1, rx_frequency=-1.0, tx_frequency=-1.0)

    assert e.value.kind == JobValidationErrorKind.INVALID_RX_FREQUENCY


@pytest.mark.parametrize('job_id', [0, 1, U64_MAX])
def test_id_range(make_job, job_id):
    assert make_job(job_id).id == job_id


@pytest.mark.parametrize('job_id', [-1, U64_MAX + 1])
def test_id_out_of_range(job_payload, job_id):
    job_payload['id'] = job_id

    with pytest.raises(ValidationError):
        Job.model_validate(job_payload)


def test_missing_field(job_payload):
    del job_payload['rx_frequency']

    with pytest.raises(ValidationError):
        Job.model_validate(job_payload)


def test_invalid_tle_in_payload(job_payload):
    job_payload['tle']['tle1'] = ISS_LINE1[:60]

    with pytest.raises(TleParseError) as e:
        Job.model_validate(job_payload)

    assert e.value.kind == TleParseErrorKind.INVALID_TLE1_LENGTH


def test_invalid_tle_wins_over_field_errors(job_payload):
    job_payload['id'] = -1
    job_payload['tle']['tle2'] = 'short'

    with pytest.raises(TleParseError) as e:
        Job.model_validate(job_payload)

    assert e.value.kind == TleParseErrorKind.INVALID_TLE2_LENGTH


def test_from_json_checksum(job_payload):
    job_payload['tle']['tle1'] = ISS_LINE1[:68] + '0'
    payload = json.dumps(job_payload)

    assert Job.from_json(payload, verify_checksum=False).tle.tle1.endswith('0')

    with pytest.raises(TleParseError) as e:
        Job.from_json(payload, verify_checksum=True)
    assert e.value.kind == TleParseErrorKind.INVALID_TLE1_CHECKSUM


def test_naive_times_are_utc(make_job):
    job = make_job(
        1,
        start=datetime(2025, 9, 19, 12, 0),
        end=datetime(2025, 9, 19, 12, 15)
    )

    assert job.start == PASS_START
    assert job.start.tzinfo == timezone.utc


def test_aware_times_are_converted_to_utc(make_job):
    cest = timezone(timedelta(hours=2))

    job = make_job(
        1,
        start=datetime(2025, 9, 19, 14, 0, tzinfo=cest),
        end=datetime(2025, 9, 19, 14, 15, tzinfo=cest)
    )

    assert job.start == PASS_START
    assert job.start.utcoffset() == timedelta(0)


def test_immutable(make_job):
    job = make_job(1)

    with pytest.raises(ValidationError):
        job.end = PASS_END + timedelta(hours=1)


def test_interval(make_job):
    interval = make_job(7).interval()

    assert interval.begin == PASS_START
    assert interval.end == PASS_END
    assert interval.data == 7
