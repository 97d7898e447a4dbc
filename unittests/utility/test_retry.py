import mock
import pytest

from cli.exceptions import CommandFailed
from utility.retry import retry


class FlakyQuery:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    @retry(CommandFailed, tries=3, delay=2, backoff=2)
    def run(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise CommandFailed(1, "ceph df detail", err="timed out")
        return "ok"


@mock.patch("utility.retry.time.sleep")
def test_retry_until_success(mock_sleep):
    query = FlakyQuery(failures=2)

    assert query.run() == "ok"
    assert query.calls == 3
    assert [c[0][0] for c in mock_sleep.call_args_list] == [2, 4]


@mock.patch("utility.retry.time.sleep")
def test_retry_gives_up(mock_sleep):
    query = FlakyQuery(failures=5)

    with pytest.raises(CommandFailed):
        query.run()
    assert query.calls == 3


@mock.patch("utility.retry.time.sleep")
def test_other_exceptions_are_not_retried(mock_sleep):
    @retry(CommandFailed, tries=3)
    def broken():
        raise ValueError("bad json")

    with pytest.raises(ValueError):
        broken()
    mock_sleep.assert_not_called()
