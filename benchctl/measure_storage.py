import sys

from docopt import docopt

from benchctl.common import COMMON_OPTIONS, clients, error, setup
from cli.exceptions import (
    CommandFailed,
    ConfigError,
    DataUnavailable,
    OperationFailedError,
    RemoteConnectionError,
    ResourceNotFoundError,
)
from cowbench.efficiency import GIB, compression
from cowbench.measurement import capture

doc = f"""
Capture a labeled pool usage measurement into the summary csv.

    Usage:
        measure_storage <label> [--config <YAML>] [--log-level <LOG>] [--log-dir <PATH>]
        measure_storage (-h | --help)

    Options:
        -h --help           Shows the command usage
        <label>             Phase label, e.g. baseline, after-100-clones, drift-5pct
{COMMON_OPTIONS}"""


def run(args):
    log, config = setup("measure_storage", args)
    oc, ceph, rbd = clients(config)

    snapshot, summary_csv, detail_json = capture(oc, ceph, rbd, config, args["<label>"])

    print(f"  Data stored (before replication): {snapshot.stored_bytes / GIB:.3f} GB")
    print(f"  Disk used   (after replication):  {snapshot.used_bytes / GIB:.3f} GB")
    if snapshot.compressible_bytes > 0:
        saved, ratio = compression(snapshot)
        print(f"  Compression: saved {saved / GIB:.3f} GB, {ratio:.2f}% of original")
    print(f"  VM disks (PVCs): {snapshot.claim_count}  images: {snapshot.image_count}")
    if snapshot.csi_clones or snapshot.copy_clones:
        print(f"  Clones: {snapshot.csi_clones} copy-on-write, {snapshot.copy_clones} full copy")
    print(f"  Summary: {summary_csv}")
    print(f"  Detail:  {detail_json}")
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
