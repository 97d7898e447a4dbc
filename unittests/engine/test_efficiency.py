import os

import pytest

from cowbench.efficiency import (
    BASELINE,
    CLONE,
    COPY,
    CSI_CLONE,
    CSV_FIELDS,
    DRIFT,
    GIB,
    NO_CLONES,
    OTHER,
    append_snapshot,
    classify_phase,
    compression,
    compute_efficiency,
    find_baseline,
    load_snapshots,
    summarize,
)
from cowbench.models import UsageSnapshot


def snap(label, stored, claims, **kwargs):
    kwargs.setdefault("timestamp", "2026-10-01T10:00:00Z")
    return UsageSnapshot(label=label, stored_bytes=stored, used_bytes=stored * 3, claim_count=claims, **kwargs)


@pytest.fixture
def run():
    # figures in GB, the calculator is unit agnostic
    return [
        snap("baseline", 5.734, 1),
        snap("after-100-clones", 5.74, 101, csi_clones=100),
        snap("drift-5pct", 32.3, 101, csi_clones=100),
    ]


@pytest.mark.parametrize(
    "label,phase",
    [
        ("baseline", BASELINE),
        ("Baseline-golden", BASELINE),
        ("after-50-clones", CLONE),
        ("drift-10pct", DRIFT),
        ("clone-drift", CLONE),
        ("post-upgrade", OTHER),
        ("", OTHER),
    ],
)
def test_classify_phase(label, phase):
    assert classify_phase(label) == phase


def test_find_baseline_falls_back_to_first():
    first = snap("initial", 5.0, 1)
    assert find_baseline([first, snap("after-10-clones", 5.1, 11)]) is first
    assert find_baseline([]) is None


class TestComputeEfficiency:
    def test_drift_accounting(self, run):
        records = compute_efficiency(run)
        drift = records[2]

        assert drift.phase == DRIFT
        assert drift.drift_bytes == pytest.approx(26.56)
        assert drift.full_copy_cost_bytes == pytest.approx(605.694, abs=0.01)
        assert drift.efficiency_ratio == pytest.approx(18.75, abs=0.01)
        assert drift.savings_bytes == pytest.approx(605.694 - 32.3, abs=0.01)

    def test_clone_phase(self, run):
        clone = compute_efficiency(run)[1]

        assert clone.phase == CLONE
        assert clone.delta_bytes == pytest.approx(0.006)
        assert clone.full_copy_cost_bytes == pytest.approx(101 * 5.734)
        assert clone.efficiency_ratio == pytest.approx(101 * 5.734 / 5.74)
        assert clone.drift_bytes == 0

    def test_baseline_has_no_ratio(self, run):
        baseline = compute_efficiency(run)[0]

        assert baseline.delta_bytes == 0
        assert baseline.efficiency_ratio == 0.0
        assert baseline.savings_bytes == 0

    @pytest.mark.parametrize("claims", [0, 1])
    def test_single_claim_has_no_savings(self, claims):
        records = compute_efficiency([snap("baseline", 5.0, 1), snap("after-clones", 900.0, claims)])

        assert records[1].efficiency_ratio == 0.0
        assert records[1].savings_bytes == 0

    def test_drift_without_clone_uses_baseline(self):
        records = compute_efficiency([snap("baseline", 5.0, 1), snap("drift-1pct", 7.0, 10)])

        assert records[1].drift_bytes == pytest.approx(2.0)
        assert records[1].full_copy_cost_bytes == pytest.approx(52.0)

    def test_zero_stored(self):
        records = compute_efficiency([snap("baseline", 0, 0), snap("after-5-clones", 0, 5)])
        assert records[1].efficiency_ratio == 0.0

    def test_idempotent(self, run):
        assert compute_efficiency(run) == compute_efficiency(run)

    def test_empty(self):
        assert compute_efficiency([]) == []


def test_compression():
    snapshot = snap("drift", 10.0, 2, compressible_bytes=2 * GIB, compressed_bytes=GIB)

    assert compression(snapshot) == (GIB, 50.0)
    assert compression(snap("baseline", 10.0, 1)) == (0, 0.0)


class TestSummarize:
    def test_findings(self, run):
        summary = summarize(compute_efficiency(run))

        assert summary.baseline_stored == 5.734
        assert summary.peak_clone.label == "after-100-clones"
        assert summary.last_drift.label == "drift-5pct"
        assert summary.clone_method == CSI_CLONE
        assert summary.clone_method_ok
        assert summary.overhead_pct == pytest.approx(0.006 / 5.734 * 100)
        assert len(summary.drift_rows) == 1
        assert summary.drift_rows[0].new_bytes == pytest.approx(26.56)
        assert any("101 VM disks were cloned" in f for f in summary.findings)
        assert not any(f.startswith("WARNING:") for f in summary.findings)

    def test_full_copy_warning(self):
        records = compute_efficiency(
            [snap("baseline", 5.0, 1), snap("after-10-clones", 50.0, 11, copy_clones=10)]
        )

        summary = summarize(records)

        assert summary.clone_method == COPY
        assert not summary.clone_method_ok
        assert any(f.startswith("WARNING: 10 clone(s) used full copy") for f in summary.findings)

    def test_no_clones(self):
        summary = summarize(compute_efficiency([snap("baseline", 5.0, 1)]))

        assert summary.peak_clone is None
        assert summary.clone_method == NO_CLONES
        assert summary.findings == ()
        assert not summary.compression_enabled


class TestSummaryCsv:
    def test_load_fixture(self, fixtures_dir):
        snapshots = load_snapshots(os.path.join(fixtures_dir, "summary.csv"))

        assert [s.label for s in snapshots] == ["baseline", "after-100-clones", "drift-5pct"]
        assert snapshots[0].stored_bytes == 6157238272
        assert snapshots[1].claim_count == 101
        assert snapshots[1].csi_clones == 100
        assert snapshots[2].compressible_bytes == 2147483648

    def test_gb_columns_are_a_fallback(self, tmp_path):
        path = tmp_path / "summary.csv"
        path.write_text("timestamp,label,pool_stored_gb,pvc_count\n2026-10-01T10:00:00Z,baseline,2.5,1\n")

        snapshot = load_snapshots(str(path))[0]

        assert snapshot.stored_bytes == 2.5 * GIB
        assert snapshot.used_bytes == 0

    def test_sorted_by_timestamp(self, tmp_path):
        path = str(tmp_path / "summary.csv")
        append_snapshot(path, snap("after-10-clones", 5.1 * GIB, 11, timestamp="2026-10-01T11:00:00Z"))
        append_snapshot(path, snap("baseline", 5.0 * GIB, 1, timestamp="2026-10-01T10:00:00Z"))

        assert [s.label for s in load_snapshots(path)] == ["baseline", "after-10-clones"]

    def test_append_writes_header_once(self, tmp_path):
        path = str(tmp_path / "summary.csv")
        append_snapshot(path, snap("baseline", 5 * GIB, 1))
        append_snapshot(path, snap("drift", 6 * GIB, 2, compressible_bytes=GIB, compressed_bytes=GIB / 2))

        with open(path, "r") as _file:
            lines = _file.read().splitlines()

        assert lines[0] == ",".join(CSV_FIELDS)
        assert len(lines) == 3
        assert lines[1].split(",")[CSV_FIELDS.index("compress_ratio_pct")] == "N/A"
        assert lines[2].split(",")[CSV_FIELDS.index("compress_ratio_pct")] == "50.00"
        assert lines[1].split(",")[CSV_FIELDS.index("pool_stored_gb")] == "5.000"
