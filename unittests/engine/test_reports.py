import os

import pytest

from cli.utilities.utils import strip_ansi
from cowbench.aggregator import aggregate
from cowbench.distribution import analyze_distribution
from cowbench.efficiency import compute_efficiency, load_snapshots, summarize
from cowbench.models import ImageRef, ImageUsage, OwnershipChain, ParentRef, PlacementRecord
from cowbench.reports.distribution import render_distribution
from cowbench.reports.efficiency import build_charts, parse_env_summary, render_efficiency_html
from cowbench.reports.placement import render_placement
from cowbench.reports.text import bar_chart, fmt_size, save_report
from cowbench.topology import build_topology
from cowbench.trace import TraceResult
from utility.config import BenchConfig

MIB = 1024 * 1024

TREE = {
    "nodes": [
        {"id": -2, "name": "worker-0", "type": "host", "children": [0], "kb": 1000, "kb_used": 250},
        {"id": -3, "name": "worker-1", "type": "host", "children": [1], "kb": 1000, "kb_used": 700},
        {"id": -4, "name": "worker-2", "type": "host", "children": [2], "kb": 1000, "kb_used": 300},
        {"id": 0, "name": "osd.0", "type": "osd", "kb": 1000, "kb_used": 250},
        {"id": 1, "name": "osd.1", "type": "osd", "kb": 1000, "kb_used": 700},
        {"id": 2, "name": "osd.2", "type": "osd", "kb": 1000, "kb_used": 300},
    ]
}


@pytest.mark.parametrize(
    "size,text",
    [(0, "0 B"), (512, "512 B"), (1024, "1.0 KiB"), (4 * MIB, "4.0 MiB"), (30 * 1024 * MIB, "30.0 GiB"), (2 * 1024 ** 4, "2.00 TiB")],
)
def test_fmt_size(size, text):
    assert fmt_size(size) == text


def test_bar_chart():
    bar = strip_ansi(bar_chart(5, 10, width=10))

    assert bar == "█" * 5 + "░" * 5
    assert bar_chart(1, 0) == ""


def test_save_report_strips_colours(tmp_path):
    path = save_report("\033[1mBold\033[0m text", str(tmp_path / "reports" / "out.txt"))

    with open(path, "r") as _file:
        assert _file.read() == "Bold text\n"


def make_trace(records, parent=True, used=64 * MIB, vm_name="clone-vm-001"):
    image = ImageRef(
        pool="nrt-2",
        image_name="csi-vol-7d8e",
        block_prefix="rbd_data.1f2a",
        object_size=4 * MIB,
        size_bytes=30 * 1024 * MIB,
        parent=ParentRef("nrt-2", "csi-vol-golden", "csi-snap-1") if parent else None,
    )
    chain = OwnershipChain(
        layers=(("vm", vm_name), ("claim", f"{vm_name}-disk"), ("volume", "pvc-5b1c"), ("image", "csi-vol-7d8e")),
        image=image,
    )
    topology = build_topology(TREE)
    return TraceResult(
        vm_name=vm_name,
        chain=chain,
        usage=ImageUsage(used, 30 * 1024 * MIB),
        sample=tuple(r.object_name for r in records),
        records=tuple(records),
        topology=topology,
        coverage=aggregate(records, topology, complete=bool(records)),
    )


class TestPlacementReport:
    def test_full_report(self):
        records = [
            PlacementRecord("rbd_data.1f2a.0000000000000000", "6.1", 0, (1, 2)),
            PlacementRecord("rbd_data.1f2a.0000000000000180", "6.2", 1, (2, 0)),
            PlacementRecord("rbd_data.1f2a.0000000000000300", "6.3", 2, (0, 1)),
        ]

        text = strip_ansi(render_placement(make_trace(records)))

        for title in ("1. VM IDENTITY", "2. CLONE LINEAGE", "3. DATA ANATOMY", "4. SAMPLE PLACEMENT", "5. NODE COVERAGE", "6. WHAT THIS MEANS"):
            assert title in text
        assert "RBD Image   nrt-2/csi-vol-7d8e" in text
        assert "Parent image:  nrt-2/csi-vol-golden@csi-snap-1" in text
        assert "7,680 objects" in text
        assert "touches ALL 3 nodes" in text
        assert "Balance: well balanced" in text
        assert "Unique PGs in sample: 3 | OSDs touched: 3 of 3" in text
        assert "Only 64.0 MiB (0.2%) is unique to this VM." in text
        assert "No single node failure would lose this data." in text

    def test_no_placement_data(self):
        text = strip_ansi(render_placement(make_trace([], parent=False, used=0, vm_name="golden-template")))

        assert "Placement data unavailable." in text
        assert "root image" in text
        assert "As the golden template" in text
        assert "Actual usage data not available" in text
        assert "touches ALL" not in text


def test_distribution_report():
    config = BenchConfig()
    dist = analyze_distribution(build_topology(TREE), [{"acting": [0, 1, 2]}, {"acting": [0, 1, 2]}], None, config)

    text = strip_ansi(render_distribution(dist, config.capacity_thresholds))

    assert "1. PER-NODE STORAGE SUMMARY" in text
    assert "6. WHAT DOES THIS MEAN?" in text
    assert "UNBALANCED" in text
    assert "45.0 percentage points" in text
    assert "osd.1" in text
    assert "WATCH" in text
    assert "No active I/O" in text
    assert "No pool activity data available for 'nrt-2'" in text
    assert "No hotspots detected." in text
    assert "41.7% used, plenty of headroom." in text


class TestEfficiencyReport:
    @pytest.fixture
    def records(self, fixtures_dir):
        return compute_efficiency(load_snapshots(os.path.join(fixtures_dir, "summary.csv")))

    @pytest.fixture
    def env_text(self, fixtures_dir):
        with open(os.path.join(fixtures_dir, "environment-summary.txt"), "r") as _file:
            return _file.read()

    def test_parse_env_summary(self, env_text):
        facts = parse_env_summary(env_text)

        assert facts["odf_version"] == "4.18.2"
        assert facts["osd_count"] == "6"
        assert facts["pool_name"] == "nrt-2"
        assert facts["storage_class"] == "nrt-2-rbd"
        assert facts["failure_domain"] == "host"
        assert parse_env_summary(None) == {}

    def test_build_charts(self, records):
        charts = build_charts(records)

        assert list(charts) == ["stored_used", "efficiency", "delta", "compression"]
        assert list(charts["efficiency"].data[0].x) == ["baseline", "after-100-clones", "drift-5pct"]

    def test_render(self, records, env_text):
        html = render_efficiency_html(records, summarize(records), env_text, generated="2026-10-01 12:00:00 UTC")

        assert "Generated 2026-10-01 12:00:00 UTC" in html
        assert "CSI Clone (CoW)" in html
        assert "101 VM disks were cloned" in html
        assert "after-100-clones" in html
        assert 'id="chart-compression"' in html
        assert "4.18.2" in html
        assert "Copy-on-Write (CoW)" in html

    def test_render_baseline_only(self, records):
        html = render_efficiency_html(records[:1], summarize(records[:1]))

        assert "Only baseline measurements are available." in html
        assert 'id="chart-compression"' not in html
