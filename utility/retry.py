import time
import traceback
from functools import wraps

from utility.log import Log

logger = Log(__name__)


def retry(exception_to_check, tries=4, delay=3, backoff=2):
    """
    Retry calling the decorated function using exponential backoff.

    Args:
        exception_to_check: the exception to check. may be a tuple of exceptions to check
        tries: number of times to try (not retry) before giving up
        delay: initial delay between retries in seconds
        backoff: backoff multiplier e.g. value of 2 will double the delay each retry
    """

    def deco_retry(f):
        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exception_to_check as e:
                    exception_name = type(e).__name__
                    caller_info = f.__name__
                    if args and not isinstance(args[0], (str, int, float)):
                        caller_info = f"{args[0].__class__.__name__}.{f.__name__}"

                    logger.warning(
                        f"{caller_info} raised {exception_name}, "
                        f"Retrying in {mdelay} seconds... "
                        f"(Attempt {tries - mtries + 1}/{tries})"
                    )
                    logger.debug(
                        f"Full exception details for {caller_info}:\n"
                        f"Message: {str(e)}\n"
                        f"Traceback:\n{traceback.format_exc()}"
                    )

                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)

        return f_retry

    return deco_retry
