"""
Data model shared by the analysis engine.

Every record is immutable once built. Sizes are in bytes unless the field name
says otherwise (``kb`` fields carry KiB as reported by ``ceph osd df``).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

UNKNOWN_DEVICE = -1
UNKNOWN_HOST = "unknown"


@dataclass(frozen=True)
class ParentRef:
    """
    Snapshot an image was cloned from.

    Attributes:
        pool: pool of the parent image.
        image: parent image name.
        snapshot: snapshot the clone was created from.
    """

    pool: str
    image: str
    snapshot: str

    @property
    def spec(self) -> str:
        return f"{self.pool}/{self.image}@{self.snapshot}"


@dataclass(frozen=True)
class ImageRef:
    """
    Backing RBD image of a VM disk.

    Attributes:
        pool: pool holding the image.
        image_name: image name inside the pool.
        block_prefix: prefix of the RADOS objects of the image.
        object_size: size of one object, a power of two.
        size_bytes: virtual size of the image.
        parent: CoW parent, None for root images.
    """

    pool: str
    image_name: str
    block_prefix: str
    object_size: int
    size_bytes: int
    parent: Optional[ParentRef] = None

    @property
    def spec(self) -> str:
        return f"{self.pool}/{self.image_name}"

    @property
    def total_objects(self) -> int:
        return max(1, self.size_bytes // self.object_size)

    @property
    def is_clone(self) -> bool:
        return self.parent is not None


@dataclass(frozen=True)
class ImageUsage:
    """
    Thin provisioning figures of one image (rbd du).

    Attributes:
        used_bytes: bytes actually allocated.
        provisioned_bytes: declared size of the image.
    """

    used_bytes: int = 0
    provisioned_bytes: int = 0

    @property
    def available(self) -> bool:
        return self.used_bytes > 0

    @property
    def usage_pct(self) -> float:
        if self.provisioned_bytes <= 0:
            return 0.0
        return self.used_bytes / self.provisioned_bytes * 100


@dataclass(frozen=True)
class OwnershipChain:
    """
    Resolved path from a VM down to its backing image.

    Attributes:
        layers: ordered (layer, identifier) pairs, e.g. ("vm", "clone-vm-001").
        image: the image the chain terminates in.
    """

    layers: Tuple[Tuple[str, str], ...]
    image: ImageRef

    def identifier(self, layer: str) -> Optional[str]:
        for name, identifier in self.layers:
            if name == layer:
                return identifier
        return None

    def __str__(self):
        return " → ".join(identifier for _, identifier in self.layers)


@dataclass(frozen=True)
class PlacementRecord:
    """
    Location of one sampled object.

    Attributes:
        object_name: RADOS object name.
        placement_group: placement group id, e.g. 6.7ec23c01.
        primary_device: OSD id serving the object, -1 when unknown.
        replica_devices: OSD ids holding copies, in acting set order.
    """

    object_name: str
    placement_group: str
    primary_device: int = UNKNOWN_DEVICE
    replica_devices: Tuple[int, ...] = ()

    @classmethod
    def from_acting(cls, object_name, placement_group, acting):
        """Build a record from an acting set; its first entry is the primary."""
        acting = tuple(acting)
        if not acting:
            return cls(object_name, placement_group)
        return cls(object_name, placement_group, acting[0], acting[1:])

    @property
    def all_devices(self) -> Tuple[int, ...]:
        if self.primary_device == UNKNOWN_DEVICE:
            return self.replica_devices
        return (self.primary_device,) + self.replica_devices


@dataclass(frozen=True)
class DecodeResult:
    """
    Outcome of decoding one placement response line.

    Attributes:
        line: the raw line.
        record: decoded record, None when the line was skipped.
        reason: why the line was skipped.
    """

    line: str
    record: Optional[PlacementRecord] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class DeviceTopology:
    """
    Device to host mapping built from an OSD tree.

    Attributes:
        device_host: OSD id -> host name.
        host_devices: host name -> sorted OSD ids.
        nodes: raw tree nodes by id, used for capacity figures.
        unreachable: OSD ids not reachable from any host.
    """

    device_host: Dict[int, str] = field(default_factory=dict)
    host_devices: Dict[str, List[int]] = field(default_factory=dict)
    nodes: Dict[int, Dict] = field(default_factory=dict)
    unreachable: Tuple[int, ...] = ()

    def host_of(self, device: int) -> str:
        return self.device_host.get(device, UNKNOWN_HOST)

    @property
    def hosts(self) -> List[str]:
        return sorted(self.host_devices)

    @property
    def devices(self) -> List[int]:
        known = set(self.unreachable)
        for devices in self.host_devices.values():
            known.update(devices)
        return sorted(known)


@dataclass(frozen=True)
class CoverageStats:
    """
    Sampled placement counts of one host.

    Attributes:
        primary_count: sampled objects whose primary lives on the host.
        total_count: primary plus replica appearances on the host.
    """

    primary_count: int = 0
    total_count: int = 0

    @property
    def replica_count(self) -> int:
        return self.total_count - self.primary_count


@dataclass(frozen=True)
class UsageSnapshot:
    """
    One labeled pool usage measurement.

    Attributes:
        label: phase label, e.g. baseline, after-100-clones, drift-5pct.
        timestamp: capture time, ISO 8601.
        stored_bytes: unique data in the pool before replication.
        used_bytes: raw bytes consumed after replication.
        claim_count: VM disks (PVCs) present at capture time.
        compressible_bytes: data handed to the compressor.
        compressed_bytes: size of that data after compression.
        objects: RADOS objects in the pool.
        image_count: RBD images in the pool.
        csi_clones: clones created with CSI copy-on-write.
        copy_clones: clones created by full copy.
    """

    label: str
    timestamp: str
    stored_bytes: float
    used_bytes: float
    claim_count: int
    compressible_bytes: float = 0
    compressed_bytes: float = 0
    objects: int = 0
    image_count: int = 0
    csi_clones: int = 0
    copy_clones: int = 0


@dataclass(frozen=True)
class EfficiencyRecord:
    """
    Derived efficiency figures of one snapshot.

    Attributes:
        snapshot: the measurement the record is derived from.
        phase: baseline, clone, drift or other.
        delta_bytes: stored bytes above the baseline.
        full_copy_cost_bytes: stored bytes if every claim were a full copy.
        efficiency_ratio: full copy cost over actual stored, 0 when not applicable.
        savings_bytes: full copy cost minus actual stored, 0 when not applicable.
        drift_bytes: unique data written after cloning (drift phases only).
        compression_saved_bytes: bytes saved by inline compression.
        compression_ratio_pct: compressed size as percent of compressible size.
    """

    snapshot: UsageSnapshot
    phase: str
    delta_bytes: float
    full_copy_cost_bytes: float
    efficiency_ratio: float
    savings_bytes: float
    drift_bytes: float = 0
    compression_saved_bytes: float = 0
    compression_ratio_pct: float = 0

    @property
    def label(self) -> str:
        return self.snapshot.label
