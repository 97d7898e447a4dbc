"""
Pool usage capture.

One capture reads pool statistics (ceph df detail), the images of the pool
(rbd du), the VM disks of the namespace and the clone method annotations of
its DataVolumes, then appends a row to the summary csv and writes a detail
json next to it.
"""

import json
import os
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, Tuple

from cli.exceptions import CommandFailed, DataUnavailable, ResourceNotFoundError
from cowbench.efficiency import GIB, append_snapshot, compression
from cowbench.models import UsageSnapshot
from utility.log import Log

log = Log(__name__)

CLONE_TYPE_ANNOTATION = "cdi.kubevirt.io/cloneType"

EXPLANATION = {
    "pool_stored_gb": "Unique data in the pool before replication.",
    "pool_used_gb": "Disk space consumed after replication (stored x replica count).",
    "pool_objects": "Number of RADOS objects (typically 4 MiB each) holding the data.",
    "pvc_count": "Number of VM disks (PersistentVolumeClaims) in the test namespace.",
    "image_count": "Number of RBD images in the pool. Each VM disk is one image.",
    "csi_clones": "Clones created with copy-on-write. Only differences are stored.",
    "copy_clones": "Clones created by full data copy. Each uses as much space as the original.",
    "compress_under_gb": "Uncompressed size of the data Ceph compressed.",
    "compress_used_gb": "Size of that data after compression.",
    "compress_saved_gb": "Disk space saved by compression.",
    "compress_ratio_pct": "Compressed size as a percentage of original. Lower is better.",
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def pool_entry(df_doc: Dict, pool: str) -> Dict:
    """Stats of a pool from 'ceph df detail' json."""
    for entry in (df_doc or {}).get("pools", []):
        if entry.get("name") == pool:
            return entry.get("stats", {})
    raise DataUnavailable("ceph df", f"pool '{pool}' not reported")


def snapshot_from_df(
    df_doc,
    pool,
    label,
    timestamp=None,
    claim_count=0,
    image_count=0,
    csi_clones=0,
    copy_clones=0,
) -> UsageSnapshot:
    """Usage snapshot of a pool.

    Args:
        df_doc (dict): 'ceph df detail' json
        pool (str): pool name
        label (str): phase label
        timestamp (str): capture time, now when not given
        claim_count (int): VM disks in the namespace
        image_count (int): images in the pool
        csi_clones (int): copy-on-write clones
        copy_clones (int): full copy clones
    Raises:
        DataUnavailable when the pool is not in the document
    """
    stats = pool_entry(df_doc, pool)
    return UsageSnapshot(
        label=label,
        timestamp=timestamp or utc_timestamp(),
        stored_bytes=stats.get("stored", 0),
        used_bytes=stats.get("bytes_used", 0),
        claim_count=claim_count,
        compressible_bytes=stats.get("compress_under_bytes", 0),
        compressed_bytes=stats.get("compress_bytes_used", 0),
        objects=stats.get("objects", 0),
        image_count=image_count,
        csi_clones=csi_clones,
        copy_clones=copy_clones,
    )


def count_clone_types(dv_docs: Iterable[Dict]) -> Tuple[int, int]:
    """(csi clones, copy clones) from DataVolume annotations.

    A namespace holding only the golden DataVolume has no clones to count.
    """
    dv_docs = list(dv_docs)
    if len(dv_docs) <= 1:
        return 0, 0

    csi, copy = 0, 0
    for dv in dv_docs:
        clone_type = dv.get("metadata", {}).get("annotations", {}).get(CLONE_TYPE_ANNOTATION)
        if clone_type == "csi-clone":
            csi += 1
        elif clone_type == "copy":
            copy += 1

    if copy:
        log.warning(f"{copy} clone(s) used full copy instead of copy-on-write")
    return csi, copy


def safe_label(label: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", label)


def detail_document(snapshot: UsageSnapshot, pool: str, df_doc, du_doc) -> Dict:
    saved, ratio = compression(snapshot)
    return {
        "measurement_label": snapshot.label,
        "timestamp": snapshot.timestamp,
        "ceph_pool": pool,
        "explanation": EXPLANATION,
        "summary": {
            "pool_stored_gb": round(snapshot.stored_bytes / GIB, 3),
            "pool_used_gb": round(snapshot.used_bytes / GIB, 3),
            "pool_objects": snapshot.objects,
            "compress_under_gb": round(snapshot.compressible_bytes / GIB, 3),
            "compress_used_gb": round(snapshot.compressed_bytes / GIB, 3),
            "compress_saved_gb": round(saved / GIB, 3),
            "compress_ratio_pct": f"{ratio:.2f}" if snapshot.compressible_bytes > 0 else "N/A",
            "pvc_count": snapshot.claim_count,
            "image_count": snapshot.image_count,
            "csi_clones": snapshot.csi_clones,
            "copy_clones": snapshot.copy_clones,
        },
        "raw_data": {"ceph_df": df_doc, "rbd_du": du_doc},
    }


def capture(oc, ceph, rbd, config, label, timestamp=None):
    """Capture one labeled measurement.

    Args:
        oc (Oc): openshift client
        ceph (Ceph): ceph client running inside the toolbox
        rbd (Rbd): rbd client running inside the toolbox
        config (BenchConfig): benchmark configuration
        label (str): phase label, e.g. baseline or after-50-clones
        timestamp (str): capture time, now when not given
    Returns:
        (snapshot, summary csv path, detail json path)
    """
    df_doc = ceph.df_detail()

    try:
        du_doc = rbd.du(config.pool)
    except (CommandFailed, ResourceNotFoundError, DataUnavailable) as e:
        log.warning(f"Per image usage of {config.pool} unavailable: {e}")
        du_doc = {"images": []}

    claims = oc.names("pvc", namespace=config.namespace)
    dvs = oc.get("dv", namespace=config.namespace).get("items", [])
    csi, copy = count_clone_types(dvs)

    snapshot = snapshot_from_df(
        df_doc,
        config.pool,
        label,
        timestamp=timestamp,
        claim_count=len(claims),
        image_count=len(du_doc.get("images", [])),
        csi_clones=csi,
        copy_clones=copy,
    )

    os.makedirs(config.results_dir, exist_ok=True)
    summary_csv = os.path.join(config.results_dir, "summary.csv")
    append_snapshot(summary_csv, snapshot)

    detail_json = os.path.join(config.results_dir, f"{safe_label(label)}_detail.json")
    with open(detail_json, "w") as _file:
        json.dump(detail_document(snapshot, config.pool, df_doc, du_doc), _file, indent=2)
    log.info(f"Measurement detail written to {detail_json}")

    return snapshot, summary_csv, detail_json
