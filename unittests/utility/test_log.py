# -*- code: utf-8 -*-
"""Unit testing modules for log filters.

This test module uses pytest to unit test the sensitive data log filter
and the log environment of the command line tools.
"""

import logging
import os
from copy import deepcopy

import pytest

from utility.log import Log, SensitiveLogFilter, set_logging_env

str_data = "oc login --token sha256~abcdef https://api.lab.example.com:6443"
str_data_no_secret = "oc get vm clone-vm-001 --namespace vm-storage-test --output json"
bastion_data = {
    "host": "bastion.lab.example.com",
    "username": "cloud-user",
    "password": "Should be masked",
    "toolbox": {"keyring": "AQBx1234==", "pod": "pod/rook-ceph-tools-abc"},
    "commands": ["password hunter2", "ceph osd df tree", 10],
    "args": ("nrt-2", "access_key AKIA1234"),
}

LOGNAME = "unit-testing-cowbench-log"


@pytest.fixture
def logger(tmp_path):
    """Returns the logger object writing into a temp directory."""
    log = Log()
    log.configure_logger(LOGNAME, str(tmp_path), True)
    log.logger.setLevel(logging.INFO)
    yield log
    log.close_and_remove_filehandlers()


def read_log(logger):
    """Read the logfile contents."""
    with open(os.path.join(logger.log_dir, f"{LOGNAME}.log"), "r") as fh:
        return fh.read(-1)


def test_log_filter_token(logger):
    _test_data = deepcopy(str_data)

    logger.info(_test_data)

    assert _test_data == str_data
    assert "--token <masked>" in read_log(logger)
    assert "sha256~abcdef" not in read_log(logger)


def test_log_filter_non_sensitive_data(logger):
    logger.info(str_data_no_secret)

    assert str_data_no_secret in read_log(logger)


def test_log_filter_dict(logger):
    _test_data = deepcopy(bastion_data)

    logger.info(_test_data)
    log_contents = read_log(logger)

    assert "'password': '<masked>'" in log_contents
    assert "'keyring': '<masked>'" in log_contents
    assert "'password <masked>'" in log_contents
    assert "access_key <masked>" in log_contents
    assert "pod/rook-ceph-tools-abc" in log_contents

    # Ensure no variable modification
    assert _test_data == bastion_data


def test_errors_are_tracked(logger):
    logger.log_error("Ceph toolbox pod not found")

    assert logger.errors == ["Ceph toolbox pod not found"]
    with open(os.path.join(logger.log_dir, f"{LOGNAME}.err"), "r") as fh:
        assert "Ceph toolbox pod not found" in fh.read()


def test_configure_logger_without_directory(tmp_path):
    assert Log().configure_logger(LOGNAME, str(tmp_path / "absent")) is None


def test_redact_leaves_basic_types():
    assert SensitiveLogFilter().redact(42) == 42


def test_set_logging_env(tmp_path):
    log = set_logging_env("show_vm_placement", level="debug", path=str(tmp_path / "logs"))

    try:
        assert log.logger.level == logging.DEBUG
        assert log.log_dir == str(tmp_path / "logs")
        assert any(f.startswith("show_vm_placement-") for f in os.listdir(log.log_dir))
    finally:
        log.close_and_remove_filehandlers()
        log.logger.setLevel(logging.INFO)
