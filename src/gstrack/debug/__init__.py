'''
Debugging utilities to be used throughout the gstrack package.
'''

import logging
from functools import wraps


def debug(func):
    '''
    Executes the decorated function only if the function's module logger is in
    debug mode. If the module logger is not in debug mode, the function is not
    executed and `None` is returned. Use this for generation of complex logs.
    '''
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        if logger.isEnabledFor(logging.DEBUG):
            return func(*args, **kwargs)
    return wrapper
