import os
import sys

from docopt import docopt

from benchctl.common import COMMON_OPTIONS, clients, error, file_timestamp, setup
from cli.exceptions import (
    CommandFailed,
    ConfigError,
    DataUnavailable,
    OperationFailedError,
    RemoteConnectionError,
    ResourceNotFoundError,
)
from cowbench.distribution import analyze_distribution
from cowbench.reports.distribution import render_distribution
from cowbench.reports.text import save_report
from cowbench.topology import build_topology

doc = f"""
Show how data is distributed across the nodes and OSDs of the cluster.

    Usage:
        show_node_distribution [--pool <pool>] [--save]
            [--config <YAML>] [--log-level <LOG>] [--log-dir <PATH>]
        show_node_distribution (-h | --help)

    Options:
        -h --help           Shows the command usage
        --pool <pool>       Pool of the PG and activity sections
        --save              Also save the report without colours to the results directory
{COMMON_OPTIONS}"""


def optional(query, *args):
    """Result of a query, None when the cluster did not answer."""
    try:
        return query(*args)
    except (CommandFailed, DataUnavailable) as e:
        error(f"WARNING: {e}")
        return None


def run(args):
    log, config = setup("show_node_distribution", args, {"pool": args.get("--pool")})
    _, ceph, _ = clients(config)

    topology = build_topology(ceph.osd_df_tree())
    pg_doc = optional(ceph.pg_ls_by_pool, config.pool)
    stats_doc = optional(ceph.pool_stats, config.pool)

    dist = analyze_distribution(topology, pg_doc, stats_doc, config)
    log.info(f"{len(dist.hosts)} nodes, {dist.device_count} OSDs, balance {dist.balance}")

    text = render_distribution(dist, config.capacity_thresholds)
    print(text)

    if args.get("--save"):
        path = os.path.join(config.results_dir, f"node-distribution-{file_timestamp()}.txt")
        save_report(text, path)
        print(f"\nReport saved to: {path}")
    return 0


def main(argv=None):
    args = docopt(doc, argv=argv)
    try:
        return run(args)
    except (
        ConfigError,
        ResourceNotFoundError,
        CommandFailed,
        DataUnavailable,
        OperationFailedError,
        RemoteConnectionError,
    ) as e:
        error(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
