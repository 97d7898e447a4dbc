"""
Placement trace of one VM disk.

    resolve chain -> sample objects -> map objects (one round-trip)
        -> decode -> aggregate with topology

External call failures on the placement and topology queries degrade the
trace: whatever records arrived are aggregated and the coverage is flagged
incomplete. Resolution failures abort the trace.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from cli.exceptions import (
    CommandFailed,
    DataUnavailable,
    OperationFailedError,
    RemoteConnectionError,
    ResolutionError,
)
from cowbench.aggregator import CoverageReport, aggregate
from cowbench.models import DeviceTopology, ImageUsage, OwnershipChain, PlacementRecord
from cowbench.parallel import parallel
from cowbench.placement import decode_placements, missing_objects, order_by_sample
from cowbench.resolver import DiskPathResolver
from cowbench.sampler import sample_object_names
from cowbench.topology import build_topology
from utility.log import Log

log = Log(__name__)

EXTERNAL_FAILURES = (CommandFailed, DataUnavailable, OperationFailedError, RemoteConnectionError)


@dataclass(frozen=True)
class TraceResult:
    """
    Everything known about where one VM disk lives.

    Attributes:
        vm_name: traced VM.
        chain: resolved ownership chain.
        usage: thin provisioning figures of the image.
        sample: sampled object names, in sample order.
        records: decoded placements, in sample order.
        topology: device topology used for aggregation.
        coverage: per host coverage report.
        missing: sampled objects without a placement.
    """

    vm_name: str
    chain: OwnershipChain
    usage: ImageUsage
    sample: Tuple[str, ...]
    records: Tuple[PlacementRecord, ...]
    topology: DeviceTopology
    coverage: CoverageReport
    missing: Tuple[str, ...] = field(default=())

    @property
    def image(self):
        return self.chain.image


@dataclass(frozen=True)
class TraceOutcome:
    """Result, or the error which stopped the trace, of one VM in a batch."""

    vm_name: str
    result: Optional[TraceResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    def describe(self) -> str:
        """Operator message of a failed trace."""
        if isinstance(self.error, ResolutionError):
            return self.error.describe()
        return f"ERROR: Trace of VM '{self.vm_name}' failed: {self.error}"


class PlacementTracer:
    """Traces VM disks down to OSDs and hosts."""

    def __init__(self, oc, ceph, rbd, config):
        self.ceph = ceph
        self.config = config
        self.resolver = DiskPathResolver(oc, rbd, config)

    def topology(self) -> Tuple[DeviceTopology, bool]:
        """Device topology, empty and incomplete when the query fails."""
        try:
            return build_topology(self.ceph.osd_df_tree()), True
        except EXTERNAL_FAILURES as e:
            log.error(f"OSD topology unavailable: {e}")
            return DeviceTopology(), False

    def placements(self, pool, names):
        """Decoded placements of the sampled objects, and whether all arrived."""
        try:
            response = self.ceph.osd_map(pool, names)
        except EXTERNAL_FAILURES as e:
            log.error(f"Placement data unavailable: {e}")
            return [], [], False

        records, skipped = decode_placements(response)
        records = order_by_sample(records, names)
        return records, skipped, len(missing_objects(records, names)) == 0

    def trace(self, vm_name: str, disk: Optional[str] = None) -> TraceResult:
        """Trace one VM disk.

        Raises:
            ResolutionError when the ownership chain cannot be resolved
        """
        chain = self.resolver.resolve(vm_name, disk)
        image = chain.image
        usage = self.resolver.usage(image)

        names = sample_object_names(image, self.config.sample_size)
        log.info(f"Sampling {len(names)} of {image.total_objects} objects of {image.spec}")

        records, skipped, arrived = self.placements(image.pool, names)
        topology, topology_ok = self.topology()
        missing = missing_objects(records, names)
        if missing:
            log.warning(f"{len(missing)} of {len(names)} sampled objects have no placement")

        coverage = aggregate(
            records,
            topology,
            thresholds=self.config.balance_thresholds,
            hotspot_ratio=self.config.hotspot_ratio,
            complete=arrived and topology_ok,
            skipped=skipped,
        )

        return TraceResult(
            vm_name=vm_name,
            chain=chain,
            usage=usage,
            sample=tuple(names),
            records=tuple(records),
            topology=topology,
            coverage=coverage,
            missing=tuple(missing),
        )

    def trace_outcome(self, vm_name: str) -> TraceOutcome:
        """Trace capturing resolution and cluster query errors instead of raising them."""
        try:
            return TraceOutcome(vm_name, result=self.trace(vm_name))
        except (ResolutionError,) + EXTERNAL_FAILURES as e:
            log.error(f"Trace of {vm_name} failed: {e}")
            return TraceOutcome(vm_name, error=e)


def trace_many(tracer: PlacementTracer, vm_names: List[str], max_workers: int = 4) -> List[TraceOutcome]:
    """Trace several VMs concurrently; outcomes keep the order of vm_names."""
    with parallel(max_workers=max_workers) as p:
        for vm_name in vm_names:
            p.spawn(tracer.trace_outcome, vm_name)
    return p.results
