import json
import os

import pytest

from cowbench.aggregator import NO_DATA, WELL_BALANCED
from cowbench.distribution import (
    EVEN,
    FULL,
    OK,
    UNEVEN,
    WATCH,
    analyze_distribution,
    count_pgs,
    find_hotspot,
    headroom,
    host_usage,
    pg_spread,
    pool_activity,
    status,
)
from cowbench.models import DeviceTopology
from cowbench.topology import build_topology
from utility.config import BenchConfig


def load(fixtures_dir, name):
    with open(os.path.join(fixtures_dir, name), "r") as _file:
        return json.load(_file)


@pytest.fixture
def topology(fixtures_dir):
    return build_topology(load(fixtures_dir, "osd_df_tree.json"))


@pytest.mark.parametrize("pct,expected", [(10.0, OK), (64.9, OK), (65.0, WATCH), (79.9, WATCH), (80.0, FULL)])
def test_status(pct, expected):
    assert status(pct) == expected


@pytest.mark.parametrize(
    "pct,level",
    [(25.0, "plenty"), (70.0, "plan"), (78.0, "expand-soon"), (82.0, "critical"), (85.0, "emergency")],
)
def test_headroom(pct, level):
    assert headroom(pct) == level


def test_count_pgs(fixtures_dir):
    counts = count_pgs(load(fixtures_dir, "pg_ls.json"))

    assert counts == {0: 2, 1: 2, 2: 2, 3: 2, 4: 2, 5: 2}
    assert count_pgs([{"acting": [1, -1, 1]}]) == {1: 2}
    assert count_pgs(None) == {}


def test_pg_spread():
    assert pg_spread({0: 10, 1: 10, 2: 10}) == (0.0, EVEN)
    assert pg_spread({0: 30, 1: 10}) == (100.0, UNEVEN)
    assert pg_spread({0: 10}) == (0.0, None)


def test_find_hotspot():
    assert find_hotspot({0: 20, 1: 5, 2: 5}) == (0, 20, 10.0)
    assert find_hotspot({0: 10, 1: 10}) is None


def test_pool_activity(fixtures_dir):
    activity = pool_activity(load(fixtures_dir, "pool_stats.json"), "nrt-2")

    assert activity.available
    assert activity.write_bytes_sec == 2097152
    assert activity.read_ops_sec == 25
    assert activity.client_io
    assert activity.recovering


def test_pool_activity_idle_or_unknown_pool():
    idle = pool_activity({"pool_name": "nrt-2", "client_io_rate": {}, "recovery_rate": {}}, "nrt-2")

    assert idle.available
    assert not idle.client_io
    assert not idle.recovering
    assert not pool_activity([], "nrt-2").available
    assert not pool_activity(None, "nrt-2").available


def test_host_usage_sums_devices_without_host_figures(topology):
    hosts = host_usage(topology, {2: 7})

    worker2 = hosts[2]
    assert worker2.host == "worker-2"
    assert worker2.kb == 2097152000
    assert worker2.kb_used == 566231040
    assert worker2.devices[0].pg_count == 7
    assert worker2.devices[0].name == "osd.2"
    assert hosts[0].pct_used == pytest.approx(25.0)


def test_analyze_distribution(topology, fixtures_dir):
    config = BenchConfig()

    dist = analyze_distribution(
        topology, load(fixtures_dir, "pg_ls.json"), load(fixtures_dir, "pool_stats.json"), config
    )

    assert dist.pool == "nrt-2"
    assert [h.host for h in dist.hosts] == ["worker-0", "worker-1", "worker-2"]
    assert dist.device_count == 6
    assert dist.balance == WELL_BALANCED
    assert dist.spread == pytest.approx(2.0)
    assert dist.pg_spread_label == EVEN
    assert dist.total_pgs == 12
    assert dist.average_pgs == 2.0
    assert dist.hotspot is None
    assert dist.headroom == "plenty"
    assert dist.activity.recovering


def test_analyze_distribution_without_optional_data(topology):
    dist = analyze_distribution(topology, None, None, BenchConfig())

    assert dist.pg_counts == {}
    assert dist.pg_spread_label is None
    assert not dist.activity.available


def test_analyze_empty_topology():
    dist = analyze_distribution(DeviceTopology(), None, None, BenchConfig())

    assert dist.balance == NO_DATA
    assert dist.headroom is None
