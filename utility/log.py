import datetime
import logging
import logging.handlers
import os
import re
import tempfile
from copy import deepcopy
from typing import List

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(module)s:%(lineno)d - %(levelname)s - %(message)s"
)

ROOT_LOGGER = "cowbench"


class Log(logging.Logger):
    """Cowbench logger object to help streamline logging."""

    def __init__(self, name=None) -> None:
        """
        Initializes the logging mechanism.
        Args:
            name (str): Logger name (module name or other identifier).
        """
        super().__init__(name or ROOT_LOGGER)
        logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)
        self._logger = logging.getLogger(ROOT_LOGGER)

        # Set logger name
        if name:
            self.name = f"{ROOT_LOGGER}.{name}"

        # Additional attributes
        self._log_level = self.getEffectiveLevel()
        self._log_dir = None
        self.log_format = LOG_FORMAT
        self._log_errors = []
        self.info = self._logger.info
        self.debug = self._logger.debug
        self.warning = self._logger.warning
        self.error = self._logger.error
        self.exception = self._logger.exception

    @property
    def log_dir(self) -> str:
        """Return the absolute path to the logging folder."""
        return self._log_dir

    @property
    def log_level(self) -> int:
        """Return the logging level."""
        return self._log_level

    @property
    def logger(self) -> logging.Logger:
        """Return the logger."""
        return self._logger

    @property
    def errors(self) -> List[str]:
        """Return the errors tracked through log_error."""
        return list(self._log_errors)

    def log_error(self, message: str) -> None:
        """Logs an error and appends it to the internal error tracker.

        Args:
            message (str): The error message to log and track.
        """
        self._log_errors.append(message)
        self.error(message)

    def configure_logger(self, name, run_dir, disable_console_log=False):
        """Configures a new FileHandler for the root logger.

        Args:
            name: name of the tool being executed. used for naming the logfile
            run_dir: directory where logs are being placed
            disable_console_log: stop propagating records to the console
        Returns:
            path of the log file or None if the run_dir does not exist
        """
        if not os.path.isdir(run_dir):
            self._logger.error(
                f"Run directory '{run_dir}' does not exist, logs will not output to file."
            )
            return None

        self.close_and_remove_filehandlers()
        pass_filter = SensitiveLogFilter(name="cowbench_filter")

        log_format = logging.Formatter(self.log_format)
        logfile = os.path.join(run_dir, f"{name}.log")
        self._logger.info(f"Logfile: {logfile}")
        self._log_dir = run_dir

        if disable_console_log:
            self._logger.propagate = False

        _handler = logging.handlers.RotatingFileHandler(
            logfile,
            maxBytes=10 * 1024 * 1024,
            backupCount=20,
        )
        _handler.setFormatter(log_format)
        _handler.addFilter(pass_filter)
        self._logger.addHandler(_handler)

        # error file handler
        err_logfile = os.path.join(run_dir, f"{name}.err")
        _err_handler = logging.FileHandler(err_logfile)
        _err_handler.setFormatter(log_format)
        _err_handler.setLevel(logging.ERROR)
        _err_handler.addFilter(pass_filter)
        self._logger.addHandler(_err_handler)

        self._logger.debug("Completed log configuration")
        return logfile

    def close_and_remove_filehandlers(self):
        """Close FileHandlers and then remove them from the logger's handlers list."""
        handlers = self._logger.handlers[:]
        for handler in handlers:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                self._logger.removeHandler(handler)


class SensitiveLogFilter(logging.Filter):
    """Filter known sensitive data from being logged."""

    excluded_words = [
        "access-key",
        "access_key",
        "keyring",
        "password",
        "token",
    ]

    def redact_list(self, data):
        """Redact values in the iterator."""
        for i, v in enumerate(data):
            if isinstance(v, list):
                self.redact_list(data[i])
            elif isinstance(v, dict):
                self.redact_dict(data[i])
            elif isinstance(v, tuple):
                data[i] = self.redact(v)
            elif isinstance(v, (str, bytearray, bytes)):
                data[i] = self.redact_str(v)

    def redact_dict(self, data):
        """Redact values based on keys"""
        for _key in data.keys():
            if _key in self.excluded_words:
                data[_key] = "<masked>"
            elif isinstance(data[_key], dict):
                self.redact_dict(data[_key])
            elif isinstance(data[_key], list):
                self.redact_list(data[_key])
            elif isinstance(data[_key], tuple):
                data[_key] = self.redact(data[_key])
            elif isinstance(data[_key], (str, bytearray, bytes)):
                data[_key] = self.redact_str(data[_key])

    def redact_str(self, data):
        """Redact strings containing sensitive keys."""
        if not isinstance(data, str):
            data = str(data, "utf-8")

        _words = "|".join(self.excluded_words)
        return re.sub(
            rf'({_words})\s*[:=]?\s*(["\']?)([^\s"\']+)(\2)(\s|$)',
            r"\1 <masked>\5",
            data,
            flags=re.IGNORECASE,
        )

    def redact(self, msg):
        """Return the redacted message if sensitive data found.

        Strings are masked after known words, dict keys matching the known
        words have their values masked. The original object is never touched.
        """
        data = deepcopy(msg)

        if isinstance(data, dict):
            self.redact_dict(data)
            return data

        if isinstance(data, list):
            self.redact_list(data)
            return data

        if isinstance(data, tuple):
            return tuple(self.redact(arg) for arg in data)

        if isinstance(data, (str, bytearray, bytes)):
            return self.redact_str(data)

        # Basic types that require no processing
        return data

    def filter(self, record):
        """Modifies the log record by masking sensitive values."""
        record.msg = self.redact(record.msg)
        if isinstance(record.args, dict):
            for k in record.args.keys():
                record.args[k] = self.redact(record.args[k])
        elif record.args:
            record.args = tuple(self.redact(arg) for arg in record.args)

        return True


def set_logging_env(name, level=None, path=None):
    """Prepare the log directory and file for a command line tool.

    Args:
        name (str): tool name, used as log file prefix
        level (str): log level, INFO by default
        path (str): log directory, a temp directory by default
    Returns:
        Log object of the tool
    """
    log = Log(name)
    log.info("Setting up log environment")

    if not path:
        path = os.path.join(tempfile.gettempdir(), "cowbench")
        log.info(f"Generating log directory - {path}")

    if not os.path.exists(path):
        log.info(f"Setting up log directory - {path}")
        os.makedirs(path)

    logname = f"{name}-{datetime.datetime.now().strftime('%m%d%Y-%H%M%S')}"
    log.configure_logger(logname, path)

    level = level.upper() if level else "INFO"
    log.logger.setLevel(level)
    log.info(f"Log level - {level}")

    return log
