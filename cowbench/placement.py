"""
Decoder for 'ceph osd map' responses.

A response line looks like::

    osdmap e512 pool 'nrt-2' (6) object 'rbd_data.1f2a.0000000000000a00'
        -> pg 6.7ec23c01 (6.1) -> up ([2,3,1], p2) acting ([2,3,1], p2)

Lines are matched to records from their own content only; a batched response
may interleave or reorder lines, and unmatched lines are skipped, never fatal.
"""

import re
from typing import Iterable, List, Tuple

from cowbench.models import DecodeResult, PlacementRecord
from utility.log import Log

log = Log(__name__)

OBJECT_PATTERN = re.compile(r"object\s+(['\"])(?P<name>[^'\"]+)\1")
PG_PATTERN = re.compile(r"->\s*pg\s+(?P<pg>[^\s()]+)")
ACTING_PATTERN = re.compile(r"acting\s*\(\s*\[(?P<devices>[^\]]*)\]")

# CRUSH_ITEM_NONE, a hole in an erasure coded acting set
NO_DEVICE = 2147483647


def parse_devices(text: str) -> Tuple[int, ...]:
    """Device ids of a bracket list, dropping malformed entries one by one."""
    devices = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            device = int(token)
        except ValueError:
            log.debug(f"Dropping malformed device id '{token}'")
            continue
        if device < 0 or device == NO_DEVICE:
            log.debug(f"Dropping placeholder device id {device}")
            continue
        devices.append(device)
    return tuple(devices)


def decode_line(line: str) -> DecodeResult:
    """Decode one response line into a placement record or a skip reason."""
    if not line.strip():
        return DecodeResult(line, reason="blank line")

    obj = OBJECT_PATTERN.search(line)
    if not obj:
        return DecodeResult(line, reason="missing object name")

    pg = PG_PATTERN.search(line)
    if not pg:
        return DecodeResult(line, reason="missing placement group")

    acting = ACTING_PATTERN.search(line)
    if not acting:
        return DecodeResult(line, reason="missing acting set")

    record = PlacementRecord.from_acting(
        obj.group("name"), pg.group("pg"), parse_devices(acting.group("devices"))
    )
    return DecodeResult(line, record=record)


def decode_placements(*responses: str) -> Tuple[List[PlacementRecord], List[DecodeResult]]:
    """Decode one or several raw responses.

    An object reported more than once (overlapping batches) keeps its first
    record.

    Returns:
        (records, skipped) where skipped holds the non blank lines not decoded
    """
    records, skipped, seen = [], [], set()
    for response in responses:
        for line in (response or "").splitlines():
            result = decode_line(line)
            if not result.ok:
                if result.reason != "blank line":
                    log.warning(f"Skipping placement line ({result.reason}): {line.strip()}")
                    skipped.append(result)
                continue

            if result.record.object_name in seen:
                log.debug(f"Duplicate placement for {result.record.object_name}, keeping first")
                continue

            seen.add(result.record.object_name)
            records.append(result.record)

    return records, skipped


def order_by_sample(records: Iterable[PlacementRecord], names: List[str]) -> List[PlacementRecord]:
    """Sort records into sample order; records of unknown names go last."""
    position = {name: i for i, name in enumerate(names)}
    return sorted(records, key=lambda r: position.get(r.object_name, len(position)))


def missing_objects(records: Iterable[PlacementRecord], names: List[str]) -> List[str]:
    """Sampled names with no decoded placement."""
    found = {r.object_name for r in records}
    return [name for name in names if name not in found]
