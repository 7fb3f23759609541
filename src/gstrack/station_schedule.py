'''
Reservations of ground station time.

Each ground station gets an interval tree holding the windows of the jobs that
are scheduled or running on it. A window may only be reserved if it overlaps no
other reservation on the same station.

Once a job starts, its window is also recorded as a pass. Reservations are
released when a job finishes; passes are kept so that telemetry received
during the pass can still be matched to the job afterwards.
'''


from dataclasses import dataclass
from datetime import datetime
import logging
import threading
from typing import Dict, List, Optional, Tuple

from intervaltree import Interval, IntervalTree

from gstrack.debug import debug
from gstrack.exceptions import ScheduleConflictError
from gstrack.job import Job, ensure_utc


logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    '''
    A job's claim on a ground station for the duration of its window.
    '''

    job_id: int
    '''
    The id of the job holding the reservation.
    '''

    ground_station_id: str
    '''
    The ground station that is reserved.
    '''

    begin: datetime
    '''
    The beginning of the reserved window.
    '''

    end: datetime
    '''
    The end of the reserved window. The window excludes this instant.
    '''


class StationSchedule:
    '''
    Thread-safe set of reservations and passes, indexed by ground station.
    '''

    def __init__(self):
        self._trees: Dict[str, IntervalTree] = {}
        self._reservations: Dict[int, Reservation] = {}
        self._passes: Dict[str, IntervalTree] = {}
        self._pass_index: Dict[int, Tuple[str, Interval]] = {}
        self._lock = threading.Lock()

    def conflicts(self, job: Job, ground_station_id: str) -> List[int]:
        '''
        Gets the ids of the jobs whose reservations on the ground station
        overlap the job's window. The job's own reservation is never reported.
        '''

        with self._lock:
            return self._conflicts(job, ground_station_id)

    def _conflicts(self, job: Job, ground_station_id: str) -> List[int]:
        tree = self._trees.get(ground_station_id)
        if tree is None:
            return []
        return sorted(
            interval.data for interval in tree.overlap(job.start, job.end)
                if interval.data != job.id
        )

    def reserve(self, job: Job, ground_station_id: str) -> Reservation:
        '''
        Reserves the ground station for the job's window.

        Args:
            job: The job to reserve the ground station for.

            ground_station_id: The ground station to reserve.

        Returns:
            The new reservation.

        Raises:
            ScheduleConflictError: If the window overlaps another reservation
                on the same ground station.
        '''

        with self._lock:
            conflicting_ids = self._conflicts(job, ground_station_id)
            if conflicting_ids:
                logger.warning(
                    '%s conflicts with job(s) %s on %s',
                    job,
                    conflicting_ids,
                    ground_station_id
                )
                raise ScheduleConflictError(
                    job.id,
                    ground_station_id,
                    conflicting_ids
                )

            previous = self._reservations.get(job.id)
            if previous is not None:
                self._discard(previous)

            tree = self._trees.setdefault(ground_station_id, IntervalTree())
            tree.add(job.interval())
            reservation = Reservation(
                job.id,
                ground_station_id,
                job.start,
                job.end
            )
            self._reservations[job.id] = reservation

        logger.info(
            'Reserved %s from %s to %s for %s',
            ground_station_id,
            job.start.isoformat(),
            job.end.isoformat(),
            job
        )
        log_schedule(self)
        return reservation

    def release(self, job_id: int) -> Optional[Reservation]:
        '''
        Releases the job's reservation, if it holds one.

        Returns:
            The released reservation, or `None` if the job held none.
        '''

        with self._lock:
            reservation = self._reservations.pop(job_id, None)
            if reservation is not None:
                self._discard(reservation)

        if reservation is not None:
            logger.info(
                'Released %s held by job %d',
                reservation.ground_station_id,
                job_id
            )
        return reservation

    def _discard(self, reservation: Reservation) -> None:
        tree = self._trees[reservation.ground_station_id]
        tree.discard(
            Interval(reservation.begin, reservation.end, reservation.job_id)
        )
        if not tree:
            del self._trees[reservation.ground_station_id]

    def open_pass(self, job_id: int) -> Reservation:
        '''
        Records that the job holding a reservation has started its pass. Passes
        outlive reservations, so telemetry can be matched to a job after the job
        has finished.

        Raises:
            KeyError: If the job holds no reservation.
        '''

        with self._lock:
            reservation = self._reservations[job_id]
            tree = self._passes.setdefault(
                reservation.ground_station_id,
                IntervalTree()
            )
            interval = Interval(reservation.begin, reservation.end, job_id)
            tree.add(interval)
            self._pass_index[job_id] = (reservation.ground_station_id, interval)
        return reservation

    def close_pass(self, job_id: int, at: datetime) -> None:
        '''
        Cuts the job's pass short if it ended before the end of its window. A
        pass that ended before it began is dropped.
        '''

        at = ensure_utc(at)
        with self._lock:
            entry = self._pass_index.get(job_id)
            if entry is None:
                return
            ground_station_id, interval = entry
            if at >= interval.end:
                return
            tree = self._passes[ground_station_id]
            tree.discard(interval)
            if at > interval.begin:
                shortened = Interval(interval.begin, at, job_id)
                tree.add(shortened)
                self._pass_index[job_id] = (ground_station_id, shortened)
            else:
                del self._pass_index[job_id]

    def forget_pass(self, job_id: int) -> None:
        with self._lock:
            entry = self._pass_index.pop(job_id, None)
            if entry is not None:
                ground_station_id, interval = entry
                self._passes[ground_station_id].discard(interval)

    def pass_at(self, ground_station_id: str, timestamp: datetime) -> Optional[int]:
        '''
        Gets the id of the job whose pass on the ground station covers the
        given time. If several do, the one that began last wins.

        Args:
            ground_station_id: The ground station.

            timestamp: The instant to look up. Naive datetimes are taken to be
                UTC.

        Returns:
            The job id, or `None` if no pass covers that time.
        '''

        timestamp = ensure_utc(timestamp)
        with self._lock:
            tree = self._passes.get(ground_station_id)
            if tree is None:
                return None
            matches = sorted(tree.at(timestamp), key=lambda i: i.begin)
        if not matches:
            return None
        return matches[-1].data

    def reservation(self, job_id: int) -> Optional[Reservation]:
        with self._lock:
            return self._reservations.get(job_id)

    def reservations(self, ground_station_id: Optional[str] = None) -> List[Reservation]:
        '''
        Gets the reservations, ordered by start time, optionally restricted
        to one ground station.
        '''

        with self._lock:
            reservations = [
                r for r in self._reservations.values()
                    if ground_station_id is None
                        or r.ground_station_id == ground_station_id
            ]
        return sorted(reservations, key=lambda r: (r.begin, r.job_id))

    def job_at(self, ground_station_id: str, timestamp: datetime) -> Optional[int]:
        '''
        Gets the id of the job holding the ground station at the given time.

        Args:
            ground_station_id: The ground station.

            timestamp: The instant to look up. Naive datetimes are taken to be
                UTC.

        Returns:
            The job id, or `None` if the ground station is free at that time.
        '''

        timestamp = ensure_utc(timestamp)
        with self._lock:
            tree = self._trees.get(ground_station_id)
            if tree is None:
                return None
            # Reservations never overlap, so at most one interval matches
            for interval in tree.at(timestamp):
                return interval.data
        return None


@debug
def log_schedule(schedule: StationSchedule):
    '''
    Logs every reservation.
    '''
    for reservation in schedule.reservations():
        logger.debug(
            '%s: job %d from %s to %s',
            reservation.ground_station_id,
            reservation.job_id,
            reservation.begin.isoformat(),
            reservation.end.isoformat()
        )
