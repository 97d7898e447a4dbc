import json
import os

import pytest

from cowbench.aggregator import (
    NO_DATA,
    NO_REDUNDANCY,
    NO_TOPOLOGY,
    SLIGHTLY_UNEVEN,
    UNBALANCED,
    WELL_BALANCED,
    aggregate,
    classify_balance,
    find_hotspots,
)
from cowbench.models import UNKNOWN_HOST, DeviceTopology, PlacementRecord
from cowbench.placement import decode_placements
from cowbench.topology import build_topology


@pytest.fixture
def topology(fixtures_dir):
    with open(os.path.join(fixtures_dir, "osd_df_tree.json"), "r") as _file:
        return build_topology(json.load(_file))


@pytest.fixture
def records(fixtures_dir):
    with open(os.path.join(fixtures_dir, "osd_map.txt"), "r") as _file:
        return decode_placements(_file.read())[0]


class TestClassifyBalance:
    @pytest.mark.parametrize(
        "values,label",
        [
            ([33.3, 33.3, 33.4], WELL_BALANCED),
            ([30.0, 35.0, 35.0], SLIGHTLY_UNEVEN),
            ([25.0, 40.0, 35.0], SLIGHTLY_UNEVEN),
            ([20.0, 40.0, 40.0], UNBALANCED),
        ],
    )
    def test_thresholds(self, values, label):
        assert classify_balance(values)[0] == label

    def test_spread_in_points(self):
        assert classify_balance([20.0, 40.0, 40.0]) == (UNBALANCED, 20.0)

    def test_single_host_has_no_redundancy(self):
        assert classify_balance([100.0]) == (NO_REDUNDANCY, 0.0)

    def test_no_values(self):
        assert classify_balance([]) == (NO_DATA, 0.0)

    def test_custom_thresholds(self):
        assert classify_balance([30.0, 38.0], (10.0, 20.0))[0] == WELL_BALANCED


def test_find_hotspots():
    assert find_hotspots({0: 10, 1: 2, 2: 2, 3: 2}) == [(0, 10)]
    assert find_hotspots({0: 3, 1: 3, 2: 3}) == []
    assert find_hotspots({0: 10}) == []


class TestAggregate:
    def test_even_spread(self, records, topology):
        report = aggregate(records, topology)

        assert report.records == 4
        assert report.placement_groups == 3
        assert report.devices_touched == 6
        assert report.devices_known == 6
        assert report.hosts_touched == 3
        assert report.balance == WELL_BALANCED
        assert report.spread == pytest.approx(0.0)
        assert report.spread_label == "all"
        assert report.resilience == "resilient"
        assert report.hotspots == ()
        assert report.complete

    def test_counts(self, records, topology):
        report = aggregate(records, topology)

        assert report.hosts["worker-0"].primary_count == 2
        assert report.hosts["worker-1"].primary_count == 1
        assert report.hosts["worker-2"].primary_count == 1
        for stats in report.hosts.values():
            assert stats.total_count == 4
            assert stats.total_count == stats.primary_count + stats.replica_count

        placements = sum(len(r.all_devices) for r in records)
        assert sum(s.total_count for s in report.hosts.values()) == placements
        assert sum(report.shares.values()) == pytest.approx(100.0)

    def test_unknown_device_is_a_coverage_gap(self, topology):
        records = [
            PlacementRecord("a.0", "6.1", 0, (1, 9)),
            PlacementRecord("a.1", "6.2", 9, (2, 4)),
        ]

        report = aggregate(records, topology)

        assert report.hosts[UNKNOWN_HOST].total_count == 2
        assert report.hosts[UNKNOWN_HOST].primary_count == 1
        assert report.host_count == 3
        assert sum(s.primary_count for s in report.hosts.values()) == 2

    def test_no_records(self, topology):
        report = aggregate([], topology)

        assert report.balance == NO_DATA
        assert not report.available
        assert not report.complete
        assert report.spread_label == "undetermined"
        assert all(s.total_count == 0 for s in report.hosts.values())

    def test_records_without_topology(self, records):
        report = aggregate(records, DeviceTopology(), complete=False)

        assert report.balance == NO_TOPOLOGY
        assert report.records == 4
        assert report.hosts[UNKNOWN_HOST].total_count == 12
        assert not report.complete

    def test_partial_data_is_flagged(self, records, topology):
        report = aggregate(records[:2], topology, complete=False)

        assert report.records == 2
        assert not report.complete

    def test_single_host_cluster(self):
        topology = build_topology(
            {
                "nodes": [
                    {"id": -2, "name": "sno", "type": "host", "children": [0, 1, 2]},
                    {"id": 0, "name": "osd.0", "type": "osd"},
                    {"id": 1, "name": "osd.1", "type": "osd"},
                    {"id": 2, "name": "osd.2", "type": "osd"},
                ]
            }
        )
        records = [PlacementRecord("a.0", "1.0", 0, (1, 2))]

        report = aggregate(records, topology)

        assert report.balance == NO_REDUNDANCY
        assert report.spread_label == "single-node"
        assert report.resilience == "none"

    def test_hotspot_device(self, topology):
        records = [PlacementRecord(f"a.{i}", f"6.{i}", 0) for i in range(6)]
        records.append(PlacementRecord("a.6", "6.6", 1))

        report = aggregate(records, topology)

        assert report.hotspots == ((0, 6),)
        assert report.balance == UNBALANCED
        assert report.spread_label == "partial"
