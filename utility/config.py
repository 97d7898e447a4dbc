"""
Benchmark configuration model.

The configuration is read once from a yaml file at the tool boundary and then
handed to each component explicitly. Nothing below keeps module level state.

Example of ~/.cowbench.yaml::

    namespace: vm-storage-test
    pool: nrt-2
    golden_vm: golden-template
    sample_size: 20
    balance_thresholds: [5, 15]
    bastion:
      host: bastion.lab.example.com
      username: cloud-user
      ssh_key: ~/.ssh/id_ed25519
"""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Optional, Tuple

import yaml

from cli.exceptions import ConfigError
from utility.log import Log

log = Log(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".cowbench.yaml")


@dataclass(frozen=True)
class BenchConfig:
    """
    Immutable benchmark configuration.

    Attributes:
        namespace: namespace holding the golden and cloned VMs.
        pool: ceph pool backing the storage class.
        storage_class: storage class used for the VM disks.
        golden_vm: template VM traced when no clone exists.
        golden_dv: data volume of the golden image.
        clone_prefix: name prefix of cloned VMs.
        clone_selector: label selector identifying cloned VMs.
        toolbox_namespace: namespace of the ceph toolbox pod.
        toolbox_selector: label selector of the ceph toolbox pod.
        results_dir: directory for csv, json and saved reports.
        sample_size: number of objects sampled per image.
        balance_thresholds: (well balanced, slightly uneven) spread limits in points.
        capacity_thresholds: (OK, WATCH) utilization limits in percent.
        pg_spread_thresholds: (even, moderate) PG variance limits in percent.
        hotspot_ratio: max/avg PG count ratio above which an OSD is a hotspot.
        command_timeout: seconds before an external call is abandoned.
        max_workers: concurrent traces when tracing many VMs.
        bastion: optional ssh details of the host running oc.
    """

    namespace: str = "vm-storage-test"
    pool: str = "nrt-2"
    storage_class: str = "nrt-2-rbd"
    golden_vm: str = "golden-template"
    golden_dv: str = "golden-image-dv"
    clone_prefix: str = "clone-vm"
    clone_selector: str = "role=clone"
    toolbox_namespace: str = "openshift-storage"
    toolbox_selector: str = "app=rook-ceph-tools"
    results_dir: str = "./results"
    sample_size: int = 20
    balance_thresholds: Tuple[float, float] = (5.0, 15.0)
    capacity_thresholds: Tuple[float, float] = (65.0, 80.0)
    pg_spread_thresholds: Tuple[float, float] = (20.0, 50.0)
    hotspot_ratio: float = 1.5
    command_timeout: int = 600
    max_workers: int = 4
    bastion: Optional[Dict] = field(default=None, compare=False)


_THRESHOLDS = ("balance_thresholds", "capacity_thresholds", "pg_spread_thresholds")


def _normalize(values):
    """Validate keys and coerce yaml values to the config field types."""
    known = {f.name for f in fields(BenchConfig)}
    _dict = {}
    for key, value in values.items():
        key = key.replace("-", "_")
        if key not in known:
            raise ConfigError(f"Unknown configuration key '{key}'")

        if value is None:
            continue

        if key in _THRESHOLDS:
            try:
                low, high = (float(v) for v in value)
            except (TypeError, ValueError):
                raise ConfigError(f"'{key}' expects two numbers, got '{value}'")
            if low > high:
                raise ConfigError(f"'{key}' lower limit {low} exceeds upper limit {high}")
            value = (low, high)
        elif key in ("sample_size", "command_timeout", "max_workers"):
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ConfigError(f"'{key}' expects an integer, got '{value}'")
            if value < 1:
                raise ConfigError(f"'{key}' must be positive, got {value}")
        elif key == "hotspot_ratio":
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ConfigError(f"'{key}' expects a number, got '{value}'")
            if value <= 0:
                raise ConfigError(f"'{key}' must be positive, got {value}")
        elif key == "bastion":
            if not isinstance(value, dict) or "host" not in value:
                raise ConfigError("'bastion' expects a mapping with at least 'host'")
        else:
            value = str(value)

        _dict[key] = value

    return _dict


def load_config(config=None, overrides=None):
    """Read configurations from yaml

    Args:
        config (str): Config file path, ~/.cowbench.yaml when not given
        overrides (dict): values taking precedence over the file (e.g. cli options)
    Returns:
        BenchConfig
    """
    path = config if config else DEFAULT_CONFIG_PATH
    values = {}

    if os.path.exists(path):
        log.info(f"Loading config file - {path}")
        with open(path, "r") as _stream:
            try:
                values = yaml.safe_load(_stream) or {}
            except yaml.YAMLError:
                raise ConfigError(f"Invalid configuration file '{path}'")

        if not isinstance(values, dict):
            raise ConfigError(f"Configuration file '{path}' must contain a mapping")
    elif config:
        raise ConfigError(f"Configuration file '{config}' not found")
    else:
        log.debug(f"No config file at {path}, using defaults")

    bench_config = BenchConfig(**_normalize(values))
    if overrides:
        bench_config = replace(bench_config, **_normalize(overrides))

    return bench_config
