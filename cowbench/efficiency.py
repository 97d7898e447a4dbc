"""
Storage efficiency of copy-on-write clones.

Efficiency records are a pure fold over the snapshot sequence: nothing is
cached and rerunning on the same sequence gives identical records. Phase
classification keys on a label substring convention that the measurement
collector has to follow (baseline, clone, drift).

The summary csv written by the measurement step is the snapshot feed::

    timestamp,label,pool_stored_bytes,pool_stored_gb,...,csi_clones,copy_clones
"""

import csv
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from cowbench.models import EfficiencyRecord, UsageSnapshot
from utility.log import Log

log = Log(__name__)

GIB = 1073741824

BASELINE = "baseline"
CLONE = "clone"
DRIFT = "drift"
OTHER = "other"
PHASES = (BASELINE, CLONE, DRIFT)

CSV_FIELDS = [
    "timestamp",
    "label",
    "pool_stored_bytes",
    "pool_stored_gb",
    "pool_used_bytes",
    "pool_used_gb",
    "pool_objects",
    "compress_under_bytes",
    "compress_under_gb",
    "compress_used_bytes",
    "compress_used_gb",
    "compress_saved_gb",
    "compress_ratio_pct",
    "pvc_count",
    "image_count",
    "csi_clones",
    "copy_clones",
]

CSI_CLONE = "csi-clone"
COPY = "copy"
NO_CLONES = "none"


def classify_phase(label: str) -> str:
    """Phase category of a snapshot label, first matching substring wins."""
    label = (label or "").lower()
    for phase in PHASES:
        if phase in label:
            return phase
    return OTHER


def find_baseline(snapshots: Sequence[UsageSnapshot]) -> Optional[UsageSnapshot]:
    """First baseline snapshot, else the very first snapshot."""
    for snapshot in snapshots:
        if classify_phase(snapshot.label) == BASELINE:
            return snapshot
    return snapshots[0] if snapshots else None


def compression(snapshot: UsageSnapshot) -> Tuple[float, float]:
    """(saved bytes, compressed size as percent of compressible size)"""
    if snapshot.compressible_bytes <= 0:
        return 0, 0.0
    saved = max(snapshot.compressible_bytes - snapshot.compressed_bytes, 0)
    return saved, snapshot.compressed_bytes / snapshot.compressible_bytes * 100


def compute_efficiency(snapshots: Iterable[UsageSnapshot]) -> List[EfficiencyRecord]:
    """One efficiency record per snapshot, in input order.

    Drift data is unique per clone, so it is added to the hypothetical full
    copy cost as well as being part of the actual stored bytes; only the
    shared golden image portion is saved by cloning.
    """
    snapshots = list(snapshots)
    baseline = find_baseline(snapshots)
    if baseline is None:
        return []

    baseline_stored = baseline.stored_bytes
    post_clone_stored = None
    records = []

    for snapshot in snapshots:
        phase = classify_phase(snapshot.label)
        stored, claims = snapshot.stored_bytes, snapshot.claim_count
        drift = 0

        if phase == CLONE:
            post_clone_stored = stored

        if phase == DRIFT:
            reference = baseline_stored if post_clone_stored is None else post_clone_stored
            drift = max(stored - reference, 0)
            full_copy_cost = claims * baseline_stored + drift
        else:
            full_copy_cost = claims * baseline_stored if claims > 0 else stored

        ratio = full_copy_cost / stored if stored > 0 and claims > 1 else 0.0
        savings = full_copy_cost - stored if claims > 1 else 0
        saved, ratio_pct = compression(snapshot)

        records.append(
            EfficiencyRecord(
                snapshot=snapshot,
                phase=phase,
                delta_bytes=stored - baseline_stored,
                full_copy_cost_bytes=full_copy_cost,
                efficiency_ratio=ratio,
                savings_bytes=savings,
                drift_bytes=drift,
                compression_saved_bytes=saved,
                compression_ratio_pct=ratio_pct,
            )
        )

    return records


@dataclass(frozen=True)
class DriftRow:
    """
    Drift impact of one drift snapshot.

    Attributes:
        label: snapshot label.
        new_bytes: stored bytes added since the previous clone or drift snapshot.
        stored_bytes: stored bytes at capture.
        efficiency_ratio: efficiency at capture.
    """

    label: str
    new_bytes: float
    stored_bytes: float
    efficiency_ratio: float


@dataclass(frozen=True)
class EfficiencySummary:
    """
    Headline figures of an efficiency run.

    Attributes:
        baseline_stored: stored bytes of the golden image alone.
        peak_clone: last clone phase record, None before cloning.
        last_drift: last drift phase record, None without drift.
        last: last record of the run.
        clone_method: csi-clone, copy or none.
        overhead_pct: stored growth from cloning as percent of the baseline.
        drift_rows: drift impact table.
        findings: key findings, one sentence each.
    """

    baseline_stored: float
    peak_clone: Optional[EfficiencyRecord]
    last_drift: Optional[EfficiencyRecord]
    last: Optional[EfficiencyRecord]
    clone_method: str
    overhead_pct: float
    drift_rows: Tuple[DriftRow, ...]
    findings: Tuple[str, ...]

    @property
    def clone_method_ok(self) -> bool:
        return self.clone_method == CSI_CLONE

    @property
    def compression_enabled(self) -> bool:
        return bool(self.last and self.last.snapshot.compressible_bytes > 0)


def clone_method(record: Optional[EfficiencyRecord]) -> str:
    if record is None:
        return NO_CLONES
    snapshot = record.snapshot
    if snapshot.copy_clones > 0:
        return COPY
    if snapshot.csi_clones > 0:
        return CSI_CLONE
    return NO_CLONES


def summarize(records: Sequence[EfficiencyRecord]) -> EfficiencySummary:
    """Headline efficiency, clone overhead, drift impact and findings."""
    clones = [r for r in records if r.phase == CLONE]
    drifts = [r for r in records if r.phase == DRIFT]
    baseline = next((r for r in records if r.phase == BASELINE), records[0] if records else None)
    baseline_stored = baseline.snapshot.stored_bytes if baseline else 0

    peak = clones[-1] if clones else None
    last = records[-1] if records else None
    method = clone_method(peak)
    overhead = peak.delta_bytes / baseline_stored * 100 if peak and baseline_stored > 0 else 0.0

    rows = []
    previous = peak.snapshot.stored_bytes if peak else baseline_stored
    for record in drifts:
        stored = record.snapshot.stored_bytes
        rows.append(DriftRow(record.label, stored - previous, stored, record.efficiency_ratio))
        previous = stored

    findings = []
    if peak:
        findings.append(
            f"{peak.snapshot.claim_count} VM disks were cloned from a "
            f"{baseline_stored / GIB:.1f} GB golden image."
        )
        if baseline_stored > 0:
            findings.append(
                f"Cloning added only {peak.delta_bytes / GIB:.2f} GB of additional storage, "
                f"{overhead:.1f}% overhead."
            )
        findings.append(
            f"Without copy-on-write, full copies would have consumed "
            f"{peak.full_copy_cost_bytes / GIB:.0f} GB. The pool stored "
            f"{peak.snapshot.stored_bytes / GIB:.1f} GB."
        )
        if method != CSI_CLONE:
            findings.append(
                f"WARNING: {peak.snapshot.copy_clones} clone(s) used full copy instead of "
                f"copy-on-write. Results may overstate storage usage."
            )
    if drifts:
        findings.append(
            f"After maximum drift ({drifts[-1].label}), efficiency is still "
            f"{drifts[-1].efficiency_ratio:.1f}x better than full copies."
        )
    if last and last.compression_saved_bytes > 0:
        findings.append(
            f"Compression saved an additional {last.compression_saved_bytes / GIB:.1f} GB "
            f"of physical disk space."
        )

    return EfficiencySummary(
        baseline_stored=baseline_stored,
        peak_clone=peak,
        last_drift=drifts[-1] if drifts else None,
        last=last,
        clone_method=method,
        overhead_pct=overhead,
        drift_rows=tuple(rows),
        findings=tuple(findings),
    )


def _number(row, key, cast=float):
    value = row.get(key)
    if value in (None, "", "N/A"):
        return cast(0)
    try:
        return cast(float(value))
    except ValueError:
        log.warning(f"Unparseable {key} '{value}' in row {row.get('label')}, using 0")
        return cast(0)


def _bytes(row, name):
    """Byte column, else the GB column of the same figure."""
    if row.get(f"{name}_bytes") not in (None, ""):
        return _number(row, f"{name}_bytes")
    return _number(row, f"{name}_gb") * GIB


def snapshot_from_row(row) -> UsageSnapshot:
    return UsageSnapshot(
        label=row.get("label") or "",
        timestamp=row.get("timestamp") or "",
        stored_bytes=_bytes(row, "pool_stored"),
        used_bytes=_bytes(row, "pool_used"),
        claim_count=_number(row, "pvc_count", int),
        compressible_bytes=_bytes(row, "compress_under"),
        compressed_bytes=_bytes(row, "compress_used"),
        objects=_number(row, "pool_objects", int),
        image_count=_number(row, "image_count", int),
        csi_clones=_number(row, "csi_clones", int),
        copy_clones=_number(row, "copy_clones", int),
    )


def load_snapshots(path: str) -> List[UsageSnapshot]:
    """Read the summary csv, ordered by timestamp (stable)."""
    with open(path, "r", newline="") as _file:
        snapshots = [snapshot_from_row(row) for row in csv.DictReader(_file)]
    return sorted(snapshots, key=lambda s: s.timestamp)


def snapshot_row(snapshot: UsageSnapshot) -> dict:
    """Summary csv row of a snapshot."""
    saved, ratio = compression(snapshot)
    return {
        "timestamp": snapshot.timestamp,
        "label": snapshot.label,
        "pool_stored_bytes": int(snapshot.stored_bytes),
        "pool_stored_gb": f"{snapshot.stored_bytes / GIB:.3f}",
        "pool_used_bytes": int(snapshot.used_bytes),
        "pool_used_gb": f"{snapshot.used_bytes / GIB:.3f}",
        "pool_objects": snapshot.objects,
        "compress_under_bytes": int(snapshot.compressible_bytes),
        "compress_under_gb": f"{snapshot.compressible_bytes / GIB:.3f}",
        "compress_used_bytes": int(snapshot.compressed_bytes),
        "compress_used_gb": f"{snapshot.compressed_bytes / GIB:.3f}",
        "compress_saved_gb": f"{saved / GIB:.3f}",
        "compress_ratio_pct": f"{ratio:.2f}" if snapshot.compressible_bytes > 0 else "N/A",
        "pvc_count": snapshot.claim_count,
        "image_count": snapshot.image_count,
        "csi_clones": snapshot.csi_clones,
        "copy_clones": snapshot.copy_clones,
    }


def append_snapshot(path: str, snapshot: UsageSnapshot) -> None:
    """Append a snapshot to the summary csv, writing the header on a new file."""
    new_file = not os.path.exists(path) or os.path.getsize(path) == 0
    with open(path, "a", newline="") as _file:
        writer = csv.DictWriter(_file, fieldnames=CSV_FIELDS)
        if new_file:
            writer.writeheader()
        writer.writerow(snapshot_row(snapshot))
    log.info(f"Appended measurement '{snapshot.label}' to {path}")
