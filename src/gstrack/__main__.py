'''
Command line entry point for validating tracking jobs and TLEs, and for dry
running a set of jobs through their lifecycle on one ground station.

Examples:

```
python -m gstrack tle data/tles/iss.tle
python -m gstrack job data/jobs
python -m gstrack schedule data/jobs --station GS-1
```
'''


import argparse
import logging
import logging.config
from pathlib import Path
import sys
from typing import List, Optional

from colorama import Fore
from pydantic import ValidationError

from gstrack.env import ENV_KEY, get_env
from gstrack.exceptions import GroundStationError, MissingEnvironmentVariableError
from gstrack.job import Job
from gstrack.lifecycle import JobLifecycle
from gstrack.utils import \
    load_job, \
    load_tle, \
    parse_jobs, \
    print_job, \
    print_state, \
    print_tle


DEFAULT_LOGGING_CONFIG = 'logging_config.ini'

logger: logging.Logger = logging.getLogger('gstrack')


def configure_logging() -> None:
    '''
    Configures logging from the file named by `GSTRACK_LOGGING_CONFIG`, or from
    `logging_config.ini` in the working directory. Falls back to basic
    configuration if the file does not exist.
    '''
    try:
        config_file = get_env(ENV_KEY.LOGGING_CONFIG)
    except MissingEnvironmentVariableError:
        config_file = DEFAULT_LOGGING_CONFIG

    if Path(config_file).is_file():
        logging.config.fileConfig(config_file, disable_existing_loggers=False)
    else:
        logging.basicConfig(level=logging.INFO)


def job_paths(paths: List[Path]) -> List[Path]:
    '''
    Expands directories into the JSON files they contain.
    '''
    expanded: List[Path] = []
    for path in paths:
        if path.is_dir():
            expanded.extend(sorted(path.glob('*.json')))
        else:
            expanded.append(path)
    return expanded


def validate_tles(paths: List[Path], verify_checksum: Optional[bool]) -> int:
    failures = 0
    for path in paths:
        try:
            tle = load_tle(path, verify_checksum)
        except GroundStationError as e:
            failures += 1
            print(Fore.LIGHTRED_EX + f'{path}: {e}')
            continue
        print(Fore.GREEN + f'{path}: OK')
        print_tle(tle)
    return failures


def validate_jobs(paths: List[Path], verify_checksum: Optional[bool]) -> int:
    failures = 0
    for path in job_paths(paths):
        try:
            job = load_job(path, verify_checksum)
        except (GroundStationError, ValidationError) as e:
            failures += 1
            print(Fore.LIGHTRED_EX + f'{path}: {e}')
            continue
        print(Fore.GREEN + f'{path}: OK')
        print_job(job)
    return failures


def schedule_jobs(
    paths: List[Path],
    ground_station_id: str,
    verify_checksum: Optional[bool]
) -> int:
    '''
    Registers every job and schedules it on the ground station, printing each
    job's resulting state. Jobs that fail validation are reported and skipped.
    '''
    jobs: List[Job] = []
    failures = 0
    for path in paths:
        try:
            if path.is_dir():
                jobs.extend(parse_jobs(path, verify_checksum))
            else:
                jobs.append(load_job(path, verify_checksum))
        except (GroundStationError, ValidationError) as e:
            failures += 1
            print(Fore.LIGHTRED_EX + f'{path}: {e}')

    lifecycle = JobLifecycle()
    for job in sorted(jobs, key=lambda job: (job.start, job.id)):
        try:
            lifecycle.register(job)
            lifecycle.schedule(job.id, ground_station_id)
        except GroundStationError as e:
            failures += 1
            logger.warning('%s: %s', job, e)

    for state in lifecycle.states():
        print_state(state)

    return failures


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog='gstrack')
    parser.add_argument(
        '--checksum',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='verify TLE checksums (defaults to GSTRACK_ENFORCE_TLE_CHECKSUM)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    tle_parser = subparsers.add_parser('tle', help='validate TLE text files')
    tle_parser.add_argument('paths', nargs='+', type=Path)

    job_parser = subparsers.add_parser(
        'job',
        help='validate job submission payloads (files or directories)'
    )
    job_parser.add_argument('paths', nargs='+', type=Path)

    schedule_parser = subparsers.add_parser(
        'schedule',
        help='register and schedule jobs on one ground station'
    )
    schedule_parser.add_argument('paths', nargs='+', type=Path)
    schedule_parser.add_argument('--station', required=True)

    args = parser.parse_args(argv)

    if args.command == 'tle':
        failures = validate_tles(args.paths, args.checksum)
    elif args.command == 'job':
        failures = validate_jobs(args.paths, args.checksum)
    else:
        failures = schedule_jobs(args.paths, args.station, args.checksum)

    return 1 if failures else 0


if __name__ == '__main__':
    configure_logging()
    sys.exit(main())
