"""
Per host coverage of sampled placements.

Utilization here is a host's share of the sampled total count, not its
physical fill level. The balance label is advisory and never changes the
counts it is derived from.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cowbench.models import (
    UNKNOWN_DEVICE,
    UNKNOWN_HOST,
    CoverageStats,
    DecodeResult,
    DeviceTopology,
    PlacementRecord,
)
from utility.log import Log

log = Log(__name__)

WELL_BALANCED = "well balanced"
SLIGHTLY_UNEVEN = "slightly uneven"
UNBALANCED = "unbalanced"
NO_REDUNDANCY = "no redundancy"
NO_DATA = "no data"
NO_TOPOLOGY = "topology unavailable"


@dataclass(frozen=True)
class CoverageReport:
    """
    Coverage of one image's sampled objects across the cluster.

    Attributes:
        hosts: host -> counts; every known host is present, plus the unknown
            host when a device without host was hit.
        shares: host -> percent of the sampled total count.
        placement_groups: distinct placement groups touched.
        devices_touched: distinct devices touched.
        devices_known: devices in the topology.
        hosts_touched: hosts with a non zero total count.
        balance: balance label of the shares.
        spread: highest minus lowest share, in points.
        hotspots: (device, count) pairs well above the average device count.
        records: number of decoded placements.
        complete: False when part of the placement data did not arrive.
        skipped: lines which could not be decoded.
        unknown_is_host: True when the topology itself groups devices under
            the unknown host (flat tree).
    """

    hosts: Dict[str, CoverageStats]
    shares: Dict[str, float]
    placement_groups: int
    devices_touched: int
    devices_known: int
    hosts_touched: int
    balance: str
    spread: float
    hotspots: Tuple[Tuple[int, int], ...] = ()
    records: int = 0
    complete: bool = True
    skipped: Tuple[DecodeResult, ...] = field(default=(), compare=False)
    unknown_is_host: bool = False

    @property
    def available(self) -> bool:
        return self.records > 0

    @property
    def host_count(self) -> int:
        return len([h for h in self.hosts if h != UNKNOWN_HOST or self.unknown_is_host])

    @property
    def spread_label(self) -> str:
        """How widely the image's data is spread over the hosts."""
        hosts = self.host_count
        if not self.available:
            return "undetermined"
        if self.hosts_touched == hosts and hosts > 1:
            return "all"
        if self.hosts_touched > 1:
            return "partial"
        if hosts == 1:
            return "single-node"
        return "undetermined"

    @property
    def resilience(self) -> str:
        hosts = self.host_count
        if hosts >= 3:
            return "resilient"
        if hosts == 2:
            return "marginal"
        if hosts == 1:
            return "none"
        return "unknown"


def classify_balance(values: Sequence[float], thresholds: Tuple[float, float] = (5.0, 15.0)) -> Tuple[str, float]:
    """Balance label of per host percentages.

    Args:
        values: one percentage per host
        thresholds: (well balanced, slightly uneven) upper limits of the spread
    Returns:
        (label, spread in points)
    """
    if not values:
        return NO_DATA, 0.0
    if len(values) == 1:
        return NO_REDUNDANCY, 0.0

    spread = max(values) - min(values)
    low, high = thresholds
    if spread < low:
        return WELL_BALANCED, spread
    if spread <= high:
        return SLIGHTLY_UNEVEN, spread
    return UNBALANCED, spread


def find_hotspots(counts: Dict, ratio: float = 1.5) -> List[Tuple]:
    """Items whose count exceeds ratio times the average count."""
    if len(counts) < 2:
        return []
    average = sum(counts.values()) / len(counts)
    if average <= 0:
        return []
    return sorted(
        ((item, count) for item, count in counts.items() if count / average > ratio),
        key=lambda x: (-x[1], x[0]),
    )


def primary_host(record: PlacementRecord, topology: DeviceTopology) -> Optional[str]:
    if record.primary_device == UNKNOWN_DEVICE:
        return None
    return topology.host_of(record.primary_device)


def aggregate(
    records: Iterable[PlacementRecord],
    topology: DeviceTopology,
    thresholds: Tuple[float, float] = (5.0, 15.0),
    hotspot_ratio: float = 1.5,
    complete: bool = True,
    skipped: Iterable[DecodeResult] = (),
) -> CoverageReport:
    """Aggregate placements into per host coverage.

    Args:
        records: decoded placements, possibly partial
        topology: device topology of the cluster
        thresholds: balance thresholds in points
        hotspot_ratio: device count over average count marking a hotspot
        complete: whether every sampled placement arrived
        skipped: undecoded lines, reported as coverage gaps
    """
    records = list(records)
    primary, total, device_counts = Counter(), Counter(), Counter()
    placement_groups = set()

    for record in records:
        placement_groups.add(record.placement_group)
        for device in record.all_devices:
            total[topology.host_of(device)] += 1
            device_counts[device] += 1
        host = primary_host(record, topology)
        if host is not None:
            primary[host] += 1

    hosts = {h: CoverageStats(primary[h], total[h]) for h in topology.hosts}
    unknown_is_host = UNKNOWN_HOST in hosts
    if total[UNKNOWN_HOST] and not unknown_is_host:
        log.warning(f"{total[UNKNOWN_HOST]} placements on devices without a known host")
        hosts[UNKNOWN_HOST] = CoverageStats(primary[UNKNOWN_HOST], total[UNKNOWN_HOST])

    grand_total = sum(total.values())
    shares = {
        h: (stats.total_count / grand_total * 100 if grand_total else 0.0)
        for h, stats in hosts.items()
    }

    if records and not topology.hosts:
        log.warning("No device topology available, skipping balance assessment")
        balance, spread = NO_TOPOLOGY, 0.0
    elif records:
        balance, spread = classify_balance(
            [shares[h] for h in topology.hosts], thresholds
        )
    else:
        log.warning("No placement data available, skipping balance assessment")
        balance, spread = NO_DATA, 0.0

    return CoverageReport(
        hosts=hosts,
        shares=shares,
        placement_groups=len(placement_groups),
        devices_touched=len(device_counts),
        devices_known=len(topology.devices),
        hosts_touched=len([h for h, s in hosts.items() if s.total_count > 0]),
        balance=balance,
        spread=spread,
        hotspots=tuple(find_hotspots(device_counts, hotspot_ratio)),
        records=len(records),
        complete=complete and bool(records),
        skipped=tuple(skipped),
        unknown_is_host=unknown_is_host,
    )
