'''
Environment-variable configuration for the gstrack package.
'''


import os

from gstrack.exceptions import MissingEnvironmentVariableError


class ENV_KEY:
    ENFORCE_TLE_CHECKSUM = 'GSTRACK_ENFORCE_TLE_CHECKSUM'

    LOGGING_CONFIG = 'GSTRACK_LOGGING_CONFIG'


TRUTHY = frozenset({'1', 'true', 'yes', 'on'})
'''
Lower-cased values that turn a flag on.
'''


def get_env(key: str) -> str:
    if not (key in os.environ and len(os.environ[key]) > 0):
        raise MissingEnvironmentVariableError(key)

    return os.environ[key]


def get_env_flag(key: str, default: bool = False) -> bool:
    '''
    Reads a boolean flag from the environment.

    Args:
        key: The name of the environment variable.

        default: The value used when the variable is unset or empty.

    Returns:
        Whether the variable holds one of the `TRUTHY` values.
    '''

    try:
        value = get_env(key)
    except MissingEnvironmentVariableError:
        return default

    return value.strip().lower() in TRUTHY
