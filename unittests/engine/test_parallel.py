import threading
import time

import pytest

from cowbench.parallel import parallel


def double(value, delay=0.0):
    time.sleep(delay)
    return value * 2


def test_results_keep_spawn_order():
    with parallel(max_workers=3) as p:
        for value, delay in ((1, 0.2), (2, 0.0), (3, 0.1)):
            p.spawn(double, value, delay=delay)

    assert p.results == [2, 4, 6]


def test_first_exception_is_raised_after_all_complete():
    finished = []

    def fail(message):
        raise ValueError(message)

    def slow():
        time.sleep(0.1)
        finished.append(True)

    with pytest.raises(ValueError, match="first"):
        with parallel(max_workers=2) as p:
            p.spawn(fail, "first")
            p.spawn(slow)

    assert finished == [True]


def test_timeout_abandons_running_work():
    release = threading.Event()

    start = time.monotonic()
    with pytest.raises(TimeoutError):
        with parallel(max_workers=1, timeout=0.2) as p:
            p.spawn(release.wait, 5)
            p.spawn(double, 1)

    assert time.monotonic() - start < 2
    release.set()
