"""
HTML storage efficiency report.

Figures come from the efficiency records and summary; the page layout lives in
templates/efficiency-report.html and charts are rendered with plotly.
"""

import os
import re
from datetime import datetime, timezone

import plotly.graph_objects as go
from jinja2 import Environment, FileSystemLoader, select_autoescape

from cowbench.efficiency import CLONE, CSI_CLONE, COPY, DRIFT, GIB
from utility.log import Log

log = Log(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
TEMPLATE = "efficiency-report.html"

ENV_PATTERNS = {
    "odf_version": r"ODF Version:\s*(.*)",
    "ceph_version": r"Ceph Version:\s*(.*)",
    "cluster_health": r"Cluster Health:\s*(.*)",
    "osd_count": r"Physical Disks \(OSDs\):\s*(\d+)",
    "raw_capacity": r"Total Raw Capacity:\s*(.*)",
    "usable_capacity": r"Usable Capacity:\s*(.*)",
    "failure_domain": r"Failure Domain:\s*(.*)",
    "replication": r"Replication:\s*(.*)",
    "compression": r"Compression:\s*(.*)",
    "pool_name": r"Storage Pool:\s*(.*)",
    "storage_class": r"StorageClass:\s*(.*)\)",
}

ENV_LABELS = {
    "odf_version": "ODF Version",
    "ceph_version": "Ceph Version",
    "cluster_health": "Cluster Health",
    "osd_count": "Physical Disks (OSDs)",
    "raw_capacity": "Total Raw Capacity",
    "usable_capacity": "Usable Capacity",
    "failure_domain": "Failure Domain",
    "replication": "Replication",
    "compression": "Compression",
    "pool_name": "Storage Pool",
    "storage_class": "StorageClass",
}

CLONE_METHOD_LABELS = {
    CSI_CLONE: "CSI Clone (CoW)",
    COPY: "Full Copy",
}

GLOSSARY = (
    ("Copy-on-Write (CoW)", "A cloning technique where clones share the original disk data and only store blocks that change."),
    ("Golden Image", "The VM template all clones are based on. Clones reference this image rather than copying it."),
    ("OSD (Object Storage Device)", "A Ceph storage daemon, each typically managing one physical disk."),
    ("Ceph Pool", "A logical partition of the cluster with its own replication and compression settings."),
    ("Data Stored", "Unique data in the pool, measured before Ceph replicates it."),
    ("Disk Used", "Physical disk space consumed including all replicas."),
    ("Efficiency Ratio", "Full-copy cost divided by actual stored data."),
    ("PVC (Persistent Volume Claim)", "A Kubernetes storage request. Each VM disk is one PVC backed by one RBD image."),
    ("RBD (RADOS Block Device)", "Ceph block storage. Each VM disk is an RBD image split into RADOS objects."),
    ("CSI Clone", "A clone created through CSI using Ceph's native CoW, annotated as csi-clone."),
    ("Drift", "Unique data written to a clone after creation, e.g. OS updates, logs and application data."),
    ("Inline Compression", "Ceph compresses data before writing it to disk, saving physical space."),
    ("Failure Domain", "The boundary within which Ceph places replicas, e.g. host or rack."),
)


def parse_env_summary(env_text):
    """Key facts of an environment summary text.

    Args:
        env_text (str): content of environment-summary.txt, may be None
    Returns:
        dict of the facts found
    """
    facts = {}
    if not env_text:
        return facts
    for key, pattern in ENV_PATTERNS.items():
        match = re.search(pattern, env_text)
        if match:
            facts[key] = match.group(1).strip()
    return facts


def _gb(value):
    return round(value / GIB, 3)


def build_charts(records):
    """Plotly figures keyed by chart name."""
    labels = [r.label for r in records]

    stored_used = go.Figure(
        data=[
            go.Bar(name="Data Stored", x=labels, y=[_gb(r.snapshot.stored_bytes) for r in records]),
            go.Bar(name="Disk Used", x=labels, y=[_gb(r.snapshot.used_bytes) for r in records]),
        ]
    )
    stored_used.update_layout(title="Storage per phase", barmode="group", yaxis_title="GB")

    efficiency = go.Figure(
        data=[
            go.Scatter(
                x=labels,
                y=[round(r.efficiency_ratio, 2) for r in records],
                mode="lines+markers",
                name="Efficiency",
            )
        ]
    )
    efficiency.update_layout(title="Efficiency vs full copies", yaxis_title="x")

    delta = go.Figure(
        data=[go.Bar(x=labels, y=[_gb(r.delta_bytes) for r in records], name="Growth over baseline")]
    )
    delta.update_layout(title="Storage growth over baseline", yaxis_title="GB")

    charts = {"stored_used": stored_used, "efficiency": efficiency, "delta": delta}

    compressed = [r for r in records if r.snapshot.compressible_bytes > 0]
    if compressed:
        compression = go.Figure(
            data=[
                go.Bar(
                    name="Before compression",
                    x=[r.label for r in compressed],
                    y=[_gb(r.snapshot.compressible_bytes) for r in compressed],
                ),
                go.Bar(
                    name="After compression",
                    x=[r.label for r in compressed],
                    y=[_gb(r.snapshot.compressed_bytes) for r in compressed],
                ),
            ]
        )
        compression.update_layout(title="Inline compression", barmode="group", yaxis_title="GB")
        charts["compression"] = compression

    return charts


def _cards(summary):
    peak = summary.peak_clone
    cards = [
        ("green", f"{peak.efficiency_ratio:.0f}x" if peak else "N/A", "Storage Efficiency"),
        ("blue", f"{peak.savings_bytes / GIB:.1f} GB" if peak else "N/A", "Space Saved vs Full Copies"),
        ("purple", CLONE_METHOD_LABELS.get(summary.clone_method, "No clones yet"), "Clone Method"),
    ]
    if summary.compression_enabled:
        cards.append(("orange", f"{summary.last.compression_ratio_pct:.0f}%", "Compression Ratio"))
    else:
        cards.append(("orange", "Off", "Compression"))
    return cards


def _rows(records):
    return [
        {
            "label": r.label,
            "phase": r.phase,
            "timestamp": r.snapshot.timestamp,
            "stored_gb": r.snapshot.stored_bytes / GIB,
            "used_gb": r.snapshot.used_bytes / GIB,
            "delta_gb": r.delta_bytes / GIB,
            "claims": r.snapshot.claim_count,
            "full_copy_gb": r.full_copy_cost_bytes / GIB,
            "efficiency": r.efficiency_ratio,
            "savings_gb": r.savings_bytes / GIB,
            "compress_saved_gb": r.compression_saved_bytes / GIB,
        }
        for r in records
    ]


def render_efficiency_html(records, summary, env_text=None, generated=None):
    """Render the efficiency report page.

    Args:
        records (list): EfficiencyRecord sequence
        summary (EfficiencySummary): summary of the records
        env_text (str): environment summary text, optional
        generated (str): generation time shown in the header, now when not given
    Returns:
        html string
    """
    jinja_env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(["html", "xml"]),
    )
    template = jinja_env.get_template(TEMPLATE)

    charts = {}
    for i, (name, fig) in enumerate(build_charts(records).items()):
        charts[name] = fig.to_html(full_html=False, include_plotlyjs=(i == 0))

    facts = parse_env_summary(env_text)
    html = template.render(
        generated=generated or datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        cards=_cards(summary),
        findings=summary.findings,
        facts=[(ENV_LABELS[k], v) for k, v in facts.items()],
        env_text=env_text,
        rows=_rows(records),
        summary=summary,
        clone_phase=CLONE,
        drift_phase=DRIFT,
        gib=GIB,
        charts=charts,
        glossary=GLOSSARY,
    )
    log.debug(f"Rendered efficiency report of {len(records)} measurements")
    return html
