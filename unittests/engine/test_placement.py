import os

import pytest

from cowbench.models import UNKNOWN_DEVICE
from cowbench.placement import (
    decode_line,
    decode_placements,
    missing_objects,
    order_by_sample,
    parse_devices,
)

LINE = (
    "osdmap e512 pool 'nrt-2' (6) object 'img.0000000000000a00' -> pg 6.7ec23c01 (6.1) "
    "-> up ([2,3], p2) acting ([2,3], p2)"
)


@pytest.fixture
def osd_map(fixtures_dir):
    with open(os.path.join(fixtures_dir, "osd_map.txt"), "r") as _file:
        return _file.read()


class TestDecodeLine:
    def test_decode(self):
        result = decode_line(LINE)

        assert result.ok
        assert result.record.object_name == "img.0000000000000a00"
        assert result.record.placement_group == "6.7ec23c01"
        assert result.record.primary_device == 2
        assert result.record.replica_devices == (3,)
        assert result.record.all_devices == (2, 3)

    def test_missing_acting_set_is_skipped(self):
        line = LINE.split(" acting")[0]

        result = decode_line(line)

        assert not result.ok
        assert result.reason == "missing acting set"

    def test_missing_object_is_skipped(self):
        assert decode_line("Error ENOENT: pool does not exist").reason == "missing object name"

    def test_missing_pg_is_skipped(self):
        line = "osdmap e1 pool 'p' (6) object 'img.0' acting ([1,2], p1)"
        assert decode_line(line).reason == "missing placement group"

    def test_blank_line(self):
        assert decode_line("   ").reason == "blank line"

    def test_empty_acting_set_has_unknown_primary(self):
        line = LINE.replace("acting ([2,3], p2)", "acting ([], p-1)")

        record = decode_line(line).record

        assert record.primary_device == UNKNOWN_DEVICE
        assert record.replica_devices == ()
        assert record.all_devices == ()

    def test_double_quoted_object_name(self):
        line = LINE.replace("'img.0000000000000a00'", '"img.0000000000000a00"')
        assert decode_line(line).record.object_name == "img.0000000000000a00"


def test_parse_devices_drops_placeholders():
    assert parse_devices("2, 2147483647, -1, x, 1") == (2, 1)
    assert parse_devices("") == ()


def test_decode_fixture(osd_map):
    records, skipped = decode_placements(osd_map)

    assert len(records) == 4
    assert len(skipped) == 1
    assert skipped[0].reason == "missing object name"
    assert [r.primary_device for r in records] == [2, 0, 4, 3]


def test_duplicates_keep_first_record():
    duplicate = LINE.replace("[2,3]", "[5,6]")

    records, _ = decode_placements(LINE, duplicate)

    assert len(records) == 1
    assert records[0].primary_device == 2


def test_decode_tolerates_missing_response():
    assert decode_placements(None) == ([], [])


def test_order_by_sample_and_missing(osd_map):
    records, _ = decode_placements("\n".join(reversed(osd_map.splitlines())))
    names = [
        "rbd_data.1f2a3b4c5d6e.0000000000000000",
        "rbd_data.1f2a3b4c5d6e.0000000000000080",
        "rbd_data.1f2a3b4c5d6e.0000000000000100",
        "rbd_data.1f2a3b4c5d6e.0000000000000180",
        "rbd_data.1f2a3b4c5d6e.0000000000000200",
    ]

    ordered = order_by_sample(records, names)

    assert [r.object_name for r in ordered] == names[:4]
    assert missing_objects(ordered, names) == names[4:]
