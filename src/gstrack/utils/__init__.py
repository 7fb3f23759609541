'''
Utilities for loading tracking jobs and TLEs from files and printing them from
the command line.
'''


import os
from pathlib import Path
from typing import List, Optional

from colorama import Fore, init as colorama_init

from gstrack.job import Job
from gstrack.lifecycle import JobState, JobStatus
from gstrack.tle import TleData, parse_tle


FORMAT = '%B %d %Y @ %I:%M:%S %p UTC'
'''
Format string for dates.
'''

TAB = '    '
'''
Tab character to be used when formatting text.
'''

STATUS_COLORS = {
    JobStatus.RECEIVED: Fore.WHITE,
    JobStatus.SCHEDULED: Fore.CYAN,
    JobStatus.STARTED: Fore.YELLOW,
    JobStatus.COMPLETED: Fore.GREEN,
    JobStatus.ERROR: Fore.LIGHTRED_EX,
}
'''
Color each job status is printed in.
'''

# Make sure colorama resets the color code after every print statement
colorama_init(autoreset=True)


def load_job(path: Path, verify_checksum: Optional[bool] = None) -> Job:
    '''
    Loads a job from a JSON submission payload.

    Args:
        path: The JSON file.

    Returns:
        The validated job.
    '''
    with open(path, 'r') as f:
        return Job.from_json(f.read(), verify_checksum)


def load_tle(path: Path, verify_checksum: Optional[bool] = None) -> TleData:
    with open(path, 'r') as f:
        return parse_tle(f.read(), verify_checksum)


def parse_jobs(
    job_data_dir: Path,
    verify_checksum: Optional[bool] = None
) -> List[Job]:
    '''
    Parses jobs from a directory of JSON files.

    Args:
        job_data_dir: The directory containing the JSON submission payloads.

    Returns:
        The list of parsed jobs, in file name order.
    '''
    jobs: List[Job] = []

    for filename in sorted(os.listdir(job_data_dir)):
        if filename.endswith('.json'):
            jobs.append(load_job(job_data_dir / filename, verify_checksum))

    return jobs


def print_job(job: Job, style: str = '') -> None:
    '''
    Prints a job's window and radio parameters.
    '''
    print(style + f'{job} tracking {job.tle}')
    print(
        style +
            f'{TAB}from {job.start.strftime(FORMAT)} '
            f'to {job.end.strftime(FORMAT)}'
    )
    print(
        style +
            f'{TAB}rx {job.rx_frequency / 1e6:.4f} MHz, '
            f'tx {job.tx_frequency / 1e6:.4f} MHz'
    )
    if job.uplink is None:
        print(style + f'{TAB}receive only')
    else:
        print(style + f'{TAB}uplink {len(job.uplink)} byte(s)')


def print_tle(tle: TleData, style: str = '') -> None:
    print(style + tle.tle0)
    print(style + f'{TAB}{tle.tle1}')
    print(style + f'{TAB}{tle.tle2}')


def print_state(state: JobState) -> None:
    color = STATUS_COLORS[state.status]
    line = f'Job {state.job_id}: {state.status.value}'
    if state.ground_station_id is not None:
        line += f' on {state.ground_station_id}'
    if state.cause is not None:
        line += f' ({state.cause})'
    print(color + line)

