# -*- code: utf-8 -*-

"""
This module provides a context manager for running methods concurrently.

Functions are added with the spawn method and results are collected when the
with block ends::

    with parallel(max_workers=4) as p:
        for vm in vms:
            p.spawn(tracer.trace_outcome, vm)

    for outcome in p.results:
        print(outcome)

Results are kept in spawn order. If one of the spawned functions raises, the
remaining ones still complete and the first exception is raised when the with
block ends. Callers which must not abort on a failure catch it inside the
spawned function.
"""

from concurrent.futures import ThreadPoolExecutor, wait

from utility.log import Log

log = Log(__name__)


class parallel:
    """This class is a context manager for bounded concurrent execution."""

    def __init__(self, max_workers=4, timeout=None):
        """Object initialization method.

        Args:
            max_workers (int)       Maximum number of concurrent threads.
            timeout (int | float)   Maximum allowed time for all functions.
        """
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._timeout = timeout
        self._futures = list()
        self._results = list()

    def spawn(self, fun, *args, **kwargs):
        """Submit a function for execution.

        Args:
            fun:        Function to be executed.
            args:       A list of variables to be passed to the function.
            kwargs      A dictionary of named variables.
        """
        self._futures.append(self._executor.submit(fun, *args, **kwargs))

    @property
    def results(self):
        return list(self._results)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        done, not_done = wait(self._futures, timeout=self._timeout)
        if not_done:
            log.error(f"{len(not_done)} functions not completed within {self._timeout} sec")
        # running functions are abandoned on timeout, queued ones are cancelled
        self._executor.shutdown(wait=not not_done, cancel_futures=bool(not_done))

        if exc_type is not None:
            return False

        _exceptions = []
        for _f in self._futures:
            if _f not in done:
                _exceptions.append(TimeoutError(f"Not completed within {self._timeout} sec"))
                continue
            try:
                self._results.append(_f.result())
            except Exception as e:
                log.exception(e)
                _exceptions.append(e)

        if _exceptions:
            raise _exceptions[0]

        return False
