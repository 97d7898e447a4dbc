"""Boundary setup shared by the command line tools."""

import sys
from datetime import datetime, timezone

from cli.ceph.ceph import Ceph
from cli.connectible import connect
from cli.exceptions import ResourceNotFoundError
from cli.openshift.oc import Oc
from cli.rbd.rbd import Rbd
from utility.config import load_config
from utility.log import Log, set_logging_env

log = Log(__name__)

COMMON_OPTIONS = """\
        --config <YAML>     Configuration file, ~/.cowbench.yaml when not given
        --log-level <LOG>   Log level e.g. DEBUG, INFO [default: INFO]
        --log-dir <PATH>    Directory for log files
"""


def setup(name, args, overrides=None):
    """Configure logging and read the configuration of a tool run.

    Args:
        name (str): tool name
        args (dict): docopt arguments
        overrides (dict): configuration values given on the command line
    Returns:
        (log, BenchConfig)
    """
    log = set_logging_env(name, level=args.get("--log-level"), path=args.get("--log-dir"))
    return log, load_config(args.get("--config"), overrides)


def clients(config):
    """Oc client plus Ceph and Rbd clients running inside the toolbox pod.

    Raises:
        ResourceNotFoundError when no toolbox pod is running
    """
    ctx = connect(config)
    oc = Oc(ctx, timeout=config.command_timeout)
    pod = oc.pod(config.toolbox_namespace, config.toolbox_selector)
    if not pod:
        raise ResourceNotFoundError(
            f"Ceph toolbox pod not found in {config.toolbox_namespace} ({config.toolbox_selector})"
        )

    prefix = oc.exec_prefix(config.toolbox_namespace, pod)
    ceph = Ceph(ctx, base_cmd=prefix, timeout=config.command_timeout)
    rbd = Rbd(ctx, base_cmd=prefix, timeout=config.command_timeout)
    return oc, ceph, rbd


def file_timestamp():
    return datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")


def error(message):
    """Print an operator message to stderr and track it in the error log."""
    log.log_error(message)
    print(message, file=sys.stderr)
