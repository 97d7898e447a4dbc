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
    ResolutionError,
    ResourceNotFoundError,
)
from cowbench.reports.placement import render_placement
from cowbench.reports.text import save_report
from cowbench.resolver import select_vm
from cowbench.trace import PlacementTracer, trace_many

doc = f"""
Trace where a VM disk's data physically lives, from the VM down to OSDs and nodes.

    Usage:
        show_vm_placement [<vm>] [--disk <name>] [--namespace <ns>] [--save]
            [--config <YAML>] [--log-level <LOG>] [--log-dir <PATH>]
        show_vm_placement --all [--namespace <ns>] [--save]
            [--config <YAML>] [--log-level <LOG>] [--log-dir <PATH>]
        show_vm_placement (-h | --help)

    Options:
        -h --help           Shows the command usage
        <vm>                VM to trace, first clone (or the golden VM) when not given
        --disk <name>       PVC of the VM disk, needed when the VM has several disks
        --namespace <ns>    Namespace of the VMs
        --save              Also save the report without colours to the results directory
        --all               Trace every VM of the namespace
{COMMON_OPTIONS}"""


def save(text, config, vm_name):
    path = os.path.join(config.results_dir, f"vm-placement-{vm_name}-{file_timestamp()}.txt")
    save_report(text, path)
    print(f"\nReport saved to: {path}")


def run(args):
    log, config = setup("show_vm_placement", args, {"namespace": args.get("--namespace")})
    oc, ceph, rbd = clients(config)
    tracer = PlacementTracer(oc, ceph, rbd, config)

    if args.get("--all"):
        vm_names = oc.names("vm", namespace=config.namespace)
        if not vm_names:
            error(f"ERROR: No VMs found in namespace {config.namespace}")
            return 1

        rc = 0
        for outcome in trace_many(tracer, vm_names, config.max_workers):
            if not outcome.ok:
                error(outcome.describe())
                rc = 1
                continue
            text = render_placement(outcome.result)
            print(text)
            if args.get("--save"):
                save(text, config, outcome.vm_name)
        return rc

    vm_name = args.get("<vm>") or select_vm(oc, config)
    log.info(f"Tracing VM {vm_name} in {config.namespace}")
    try:
        result = tracer.trace(vm_name, args.get("--disk"))
    except ResolutionError as e:
        log.error(str(e))
        error(e.describe())
        return 1

    text = render_placement(result)
    print(text)
    if args.get("--save"):
        save(text, config, vm_name)
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
