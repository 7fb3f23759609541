'''
Definitions of the two-line element (TLE) data type and the validation that a
TLE must pass before a tracking job can be built from it.
'''


import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, model_validator
from skyfield.api import EarthSatellite, Timescale, load

from gstrack.env import ENV_KEY, get_env_flag
from gstrack.exceptions import TleParseError, TleParseErrorKind


TLE_LINE_LENGTH = 69
'''
Length of each of the two data lines of a TLE, checksum digit included.
'''

CHECKSUM_CONTEXT_KEY = 'verify_checksum'
'''
Key of the Pydantic validation context entry that overrides whether checksums
are verified.
'''

logger: logging.Logger = logging.getLogger(__name__)


def tle_checksum(line: str) -> int:
    '''
    Computes the NORAD checksum of a TLE data line.

    Every digit in the first 68 characters counts its value, every minus sign
    counts 1 and every other character counts 0. The checksum is the total
    modulo 10.

    Args:
        line: A TLE data line. Only its first 68 characters are read.

    Returns:
        The checksum digit the line should end with.
    '''

    total = 0
    for ch in line[:TLE_LINE_LENGTH - 1]:
        if ch.isdigit():
            total += int(ch)
        elif ch == '-':
            total += 1
    return total % 10


def _checksum_matches(line: str) -> bool:
    last = line[TLE_LINE_LENGTH - 1:]
    return last.isdigit() and int(last) == tle_checksum(line)


def _should_verify_checksum(verify_checksum: Optional[bool]) -> bool:
    if verify_checksum is None:
        return get_env_flag(ENV_KEY.ENFORCE_TLE_CHECKSUM)
    return verify_checksum


def check_tle_lines(
    tle1: str,
    tle2: str,
    verify_checksum: Optional[bool] = None
) -> None:
    '''
    Checks the two data lines of a TLE, raising on the first violation.

    Args:
        tle1: The first data line.

        tle2: The second data line.

        verify_checksum: Whether the trailing checksum digits are verified.
            `None` defers to the `GSTRACK_ENFORCE_TLE_CHECKSUM` environment
            variable.

    Raises:
        TleParseError: If a line has the wrong length or, when enabled, a
            checksum digit that does not match.
    '''

    if len(tle1) != TLE_LINE_LENGTH:
        raise TleParseError(
            TleParseErrorKind.INVALID_TLE1_LENGTH,
            f'got {len(tle1)}'
        )

    if len(tle2) != TLE_LINE_LENGTH:
        raise TleParseError(
            TleParseErrorKind.INVALID_TLE2_LENGTH,
            f'got {len(tle2)}'
        )

    if not _should_verify_checksum(verify_checksum):
        return

    if not _checksum_matches(tle1):
        raise TleParseError(
            TleParseErrorKind.INVALID_TLE1_CHECKSUM,
            f'expected {tle_checksum(tle1)}'
        )

    if not _checksum_matches(tle2):
        raise TleParseError(
            TleParseErrorKind.INVALID_TLE2_CHECKSUM,
            f'expected {tle_checksum(tle2)}'
        )


class TleData(BaseModel):
    '''
    Representation of a two-line element set: a name line followed by two
    69-character data lines.

    Both data lines are checked whenever a `TleData` is constructed, so every
    instance is structurally valid.
    '''

    model_config = ConfigDict(frozen=True)

    tle0: str
    '''
    The name (or catalog identifier) of the satellite.
    '''

    tle1: str
    '''
    The first data line of the TLE.
    '''

    tle2: str
    '''
    The second data line of the TLE.
    '''

    @model_validator(mode='after')
    def ensure_valid_lines(self, info: ValidationInfo) -> 'TleData':
        '''
        Ensures that both data lines have the right length and, when enabled,
        the right checksum digits.
        '''
        verify_checksum = None
        if info.context:
            verify_checksum = info.context.get(CHECKSUM_CONTEXT_KEY)
        check_tle_lines(self.tle1, self.tle2, verify_checksum)
        return self

    @property
    def name(self) -> str:
        return self.tle0

    @property
    def line1(self) -> str:
        return self.tle1

    @property
    def line2(self) -> str:
        return self.tle2

    @property
    def catalog_number(self) -> str:
        '''
        The NORAD catalog number of the satellite, read from columns 3 to 7 of
        the first data line.
        '''
        return self.tle1[2:7].strip()

    @classmethod
    def from_text(
        cls,
        text: str,
        verify_checksum: Optional[bool] = None
    ) -> 'TleData':
        return parse_tle(text, verify_checksum)

    def to_text(self) -> str:
        return '\n'.join((self.tle0, self.tle1, self.tle2))

    def to_earth_satellite(self, ts: Optional[Timescale] = None) -> EarthSatellite:
        '''
        Builds the Skyfield satellite that orbit propagation is delegated to.

        Args:
            ts: The timescale used to compute the epoch. A built-in timescale
                is loaded if none is given.

        Returns:
            The satellite described by this TLE.
        '''

        if ts is None:
            ts = load.timescale()
        return EarthSatellite(self.tle1, self.tle2, self.tle0, ts)

    def __str__(self):
        return f'{self.tle0} ({self.catalog_number})'

    def __repr__(self) -> str:
        return str(self)


def parse_tle(text: str, verify_checksum: Optional[bool] = None) -> TleData:
    '''
    Parses newline-separated TLE text into a `TleData`.

    The text must hold at least three lines: the satellite name, then the two
    data lines. Each of the three is stripped of surrounding whitespace before
    it is checked; anything after the third line is ignored.

    Args:
        text: The raw TLE text.

        verify_checksum: Whether the checksum digits are verified. `None`
            defers to the `GSTRACK_ENFORCE_TLE_CHECKSUM` environment variable.

    Returns:
        The parsed TLE.

    Raises:
        TleParseError: On the first failed check, in the order: line count,
            line 1 length, line 2 length, line 1 checksum, line 2 checksum.
    '''

    # Only "\n" and "\r\n" break lines; a final line break ends the last line
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()

    if len(lines) < 3:
        logger.warning('Rejected TLE with %d line(s)', len(lines))
        raise TleParseError(
            TleParseErrorKind.INSUFFICIENT_LINES,
            f'got {len(lines)}'
        )

    tle0, tle1, tle2 = (line.strip() for line in lines[:3])

    try:
        return TleData.model_validate(
            {'tle0': tle0, 'tle1': tle1, 'tle2': tle2},
            context={CHECKSUM_CONTEXT_KEY: verify_checksum}
        )
    except TleParseError as e:
        logger.warning('Rejected TLE for %s: %s', tle0, e)
        raise
