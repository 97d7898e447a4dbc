"""
Cluster wide data distribution across nodes and OSDs.

Capacity figures come from 'ceph osd df tree' in KiB; placement group counts
from 'ceph pg ls-by-pool'; client and recovery rates from 'ceph osd pool stats'.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from cowbench.aggregator import NO_DATA, classify_balance
from cowbench.models import DeviceTopology
from utility.log import Log

log = Log(__name__)

OK = "OK"
WATCH = "WATCH"
FULL = "FULL"

EVEN = "even"
MODERATE = "moderate"
UNEVEN = "uneven"

# (upper limit in percent, level)
HEADROOM_LEVELS = (
    (65.0, "plenty"),
    (75.0, "plan"),
    (80.0, "expand-soon"),
    (85.0, "critical"),
)
HEADROOM_EMERGENCY = "emergency"


def _percent(used, total):
    return used / total * 100 if total > 0 else 0.0


@dataclass(frozen=True)
class DeviceUsage:
    """
    Capacity of one OSD.

    Attributes:
        device: OSD id.
        kb: capacity in KiB.
        kb_used: used KiB.
        pg_count: placement groups of the pool whose acting set holds the OSD.
    """

    device: int
    kb: int = 0
    kb_used: int = 0
    pg_count: int = 0

    @property
    def name(self) -> str:
        return f"osd.{self.device}"

    @property
    def kb_avail(self) -> int:
        return max(self.kb - self.kb_used, 0)

    @property
    def pct_used(self) -> float:
        return _percent(self.kb_used, self.kb)


@dataclass(frozen=True)
class HostUsage:
    """
    Capacity of one node and its OSDs.

    Attributes:
        host: host name.
        kb: capacity in KiB, the sum of the OSDs when the node reports none.
        kb_used: used KiB.
        devices: per OSD usage, sorted by id.
    """

    host: str
    kb: int
    kb_used: int
    devices: Tuple[DeviceUsage, ...] = ()

    @property
    def kb_avail(self) -> int:
        return max(self.kb - self.kb_used, 0)

    @property
    def pct_used(self) -> float:
        return _percent(self.kb_used, self.kb)


@dataclass(frozen=True)
class PoolActivity:
    """
    Client and recovery rates of a pool.

    Attributes:
        read_bytes_sec / write_bytes_sec: client throughput.
        read_ops_sec / write_ops_sec: client operations.
        recovering_bytes_sec / recovering_objects_sec / recovering_keys_sec:
            recovery rates, all zero on a clean pool.
        available: False when the pool reported no stats.
    """

    read_bytes_sec: float = 0
    write_bytes_sec: float = 0
    read_ops_sec: float = 0
    write_ops_sec: float = 0
    recovering_bytes_sec: float = 0
    recovering_objects_sec: float = 0
    recovering_keys_sec: float = 0
    available: bool = False

    @property
    def client_io(self) -> bool:
        return any([self.read_bytes_sec, self.write_bytes_sec, self.read_ops_sec, self.write_ops_sec])

    @property
    def recovering(self) -> bool:
        return any([self.recovering_bytes_sec, self.recovering_objects_sec, self.recovering_keys_sec])


@dataclass(frozen=True)
class NodeDistribution:
    """
    Distribution of one pool's cluster across nodes.

    Attributes:
        pool: pool the PG and activity figures belong to.
        hosts: per node usage, sorted by host name.
        balance: balance label of the node utilizations.
        spread: highest minus lowest node utilization, in points.
        pg_counts: OSD id -> PG count.
        pg_spread: (max - min) / average PG count, in percent.
        pg_spread_label: even, moderate or uneven; None without PG data.
        hotspot: (OSD id, PG count, average) when one OSD carries too many PGs.
        activity: pool client and recovery rates.
        headroom: capacity headroom level of the whole cluster.
    """

    pool: str
    hosts: Tuple[HostUsage, ...]
    balance: str
    spread: float
    pg_counts: Dict[int, int]
    pg_spread: float
    pg_spread_label: Optional[str]
    hotspot: Optional[Tuple[int, int, float]]
    activity: PoolActivity
    headroom: Optional[str]

    @property
    def total_kb(self) -> int:
        return sum(h.kb for h in self.hosts)

    @property
    def total_kb_used(self) -> int:
        return sum(h.kb_used for h in self.hosts)

    @property
    def total_pct_used(self) -> float:
        return _percent(self.total_kb_used, self.total_kb)

    @property
    def device_count(self) -> int:
        return sum(len(h.devices) for h in self.hosts)

    @property
    def total_pgs(self) -> int:
        return sum(self.pg_counts.values())

    @property
    def average_pgs(self) -> float:
        return self.total_pgs / len(self.pg_counts) if self.pg_counts else 0.0


def status(pct: float, thresholds: Tuple[float, float] = (65.0, 80.0)) -> str:
    """Fill status of a node or OSD."""
    ok, watch = thresholds
    if pct < ok:
        return OK
    if pct < watch:
        return WATCH
    return FULL


def headroom(pct: float) -> str:
    """Capacity headroom level of the cluster."""
    for limit, level in HEADROOM_LEVELS:
        if pct < limit:
            return level
    return HEADROOM_EMERGENCY


def count_pgs(pg_doc) -> Dict[int, int]:
    """Per OSD placement group count, every OSD of each acting set counted.

    Args:
        pg_doc: 'pg ls-by-pool' json, a list of PGs or {"pg_stats": [...]}
    """
    if isinstance(pg_doc, dict):
        pgs = pg_doc.get("pg_stats", [])
    else:
        pgs = pg_doc or []

    counts = Counter()
    for pg in pgs:
        for device in pg.get("acting", []):
            if isinstance(device, int) and device >= 0:
                counts[device] += 1
    return dict(counts)


def pg_spread(counts: Dict[int, int], thresholds: Tuple[float, float] = (20.0, 50.0)) -> Tuple[float, Optional[str]]:
    """PG count variance across OSDs.

    Returns:
        (spread in percent of the average, label); the label is None when
        fewer than two OSDs hold PGs
    """
    if len(counts) < 2:
        return 0.0, None

    values = list(counts.values())
    average = sum(values) / len(values)
    if average <= 0:
        return 0.0, None

    spread = (max(values) - min(values)) / average * 100
    even, moderate = thresholds
    if spread < even:
        return spread, EVEN
    if spread < moderate:
        return spread, MODERATE
    return spread, UNEVEN


def find_hotspot(counts: Dict[int, int], ratio: float = 1.5) -> Optional[Tuple[int, int, float]]:
    """The OSD with the most PGs when it exceeds ratio times the average."""
    if len(counts) < 2:
        return None

    average = sum(counts.values()) / len(counts)
    device = max(sorted(counts), key=counts.get)
    if average > 0 and counts[device] / average > ratio:
        return device, counts[device], average
    return None


def pool_activity(stats_doc, pool: str) -> PoolActivity:
    """Client and recovery rates of a pool from 'osd pool stats' json."""
    if isinstance(stats_doc, dict):
        stats_doc = [stats_doc]

    entry = next((s for s in stats_doc or [] if s.get("pool_name") == pool), None)
    if entry is None:
        log.debug(f"No pool stats reported for {pool}")
        return PoolActivity()

    client = entry.get("client_io_rate") or {}
    recovery = entry.get("recovery_rate") or {}
    return PoolActivity(
        read_bytes_sec=client.get("read_bytes_sec", 0),
        write_bytes_sec=client.get("write_bytes_sec", 0),
        read_ops_sec=client.get("read_op_per_sec", 0),
        write_ops_sec=client.get("write_op_per_sec", 0),
        recovering_bytes_sec=recovery.get("recovering_bytes_per_sec", 0),
        recovering_objects_sec=recovery.get("recovering_objects_per_sec", 0),
        recovering_keys_sec=recovery.get("recovering_keys_per_sec", 0),
        available=True,
    )


def host_usage(topology: DeviceTopology, pg_counts: Optional[Dict[int, int]] = None) -> List[HostUsage]:
    """Per node capacity; a node without its own figures sums its OSDs."""
    pg_counts = pg_counts or {}
    usage = []
    for host in topology.hosts:
        devices = []
        for device in topology.host_devices[host]:
            node = topology.nodes.get(device, {})
            devices.append(
                DeviceUsage(
                    device=device,
                    kb=node.get("kb", 0),
                    kb_used=node.get("kb_used", 0),
                    pg_count=pg_counts.get(device, 0),
                )
            )

        node = next(
            (n for n in topology.nodes.values() if n.get("type") == "host" and n.get("name") == host),
            {},
        )
        kb, kb_used = node.get("kb", 0), node.get("kb_used", 0)
        if kb <= 0 and devices:
            kb = sum(d.kb for d in devices)
            kb_used = sum(d.kb_used for d in devices)

        usage.append(HostUsage(host, kb, kb_used, tuple(devices)))
    return usage


def analyze_distribution(topology: DeviceTopology, pg_doc, stats_doc, config) -> NodeDistribution:
    """Build the distribution report of the configured pool.

    Args:
        topology: device topology with capacity nodes
        pg_doc: 'pg ls-by-pool' json of the pool, None when unavailable
        stats_doc: 'osd pool stats' json of the pool, None when unavailable
        config: BenchConfig supplying pool and thresholds
    """
    pg_counts = count_pgs(pg_doc)
    hosts = host_usage(topology, pg_counts)

    if hosts:
        balance, spread = classify_balance([h.pct_used for h in hosts], config.balance_thresholds)
    else:
        log.warning("Topology has no nodes, skipping balance assessment")
        balance, spread = NO_DATA, 0.0

    spread_pct, spread_label = pg_spread(pg_counts, config.pg_spread_thresholds)
    total_kb = sum(h.kb for h in hosts)

    return NodeDistribution(
        pool=config.pool,
        hosts=tuple(hosts),
        balance=balance,
        spread=spread,
        pg_counts=dict(sorted(pg_counts.items())),
        pg_spread=spread_pct,
        pg_spread_label=spread_label,
        hotspot=find_hotspot(pg_counts, config.hotspot_ratio),
        activity=pool_activity(stats_doc, config.pool),
        headroom=headroom(_percent(sum(h.kb_used for h in hosts), total_kb)) if total_kb > 0 else None,
    )
