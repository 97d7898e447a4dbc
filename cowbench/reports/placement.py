"""
Placement report of one traced VM disk.

Six sections: identity, clone lineage, data anatomy, sample placement table,
node coverage and what this means.
"""

from cowbench.aggregator import NO_REDUNDANCY, SLIGHTLY_UNEVEN, UNBALANCED, WELL_BALANCED, primary_host
from cowbench.reports.text import (
    BLUE,
    BOLD,
    DIM,
    GREEN,
    MAGENTA,
    PALETTE,
    RED,
    RESET,
    YELLOW,
    banner,
    bar_chart,
    fmt_size,
)
from cowbench.sampler import landmark_objects

BALANCE_COLORS = {
    WELL_BALANCED: GREEN,
    SLIGHTLY_UNEVEN: YELLOW,
    UNBALANCED: RED,
    NO_REDUNDANCY: YELLOW,
}

OBJECT_WIDTH = 32


def _identity(trace):
    chain, image, usage = trace.chain, trace.image, trace.usage
    lines = banner("1. VM IDENTITY: TRACING THE DATA PATH")
    lines += [
        f"  {BOLD}VM{RESET}                 {GREEN}{chain.identifier('vm')}{RESET}",
        f"   └─ {BOLD}PVC{RESET}             {GREEN}{chain.identifier('claim')}{RESET}",
        f"       └─ {BOLD}PV{RESET}           {GREEN}{chain.identifier('volume')}{RESET}",
        f"           └─ {BOLD}RBD Image{RESET}   {GREEN}{image.spec}{RESET}",
        "",
        f"  {BOLD}Disk size:{RESET}        {fmt_size(image.size_bytes)}",
        f"  {BOLD}Object size:{RESET}      {fmt_size(image.object_size)}  (each RADOS object)",
        f"  {BOLD}Total objects:{RESET}    {image.total_objects:,}",
        f"  {BOLD}Actual usage:{RESET}     {fmt_size(usage.used_bytes)}",
        "",
    ]
    if image.size_bytes > 0 and usage.available:
        pct = usage.used_bytes / image.size_bytes * 100
        lines += [
            f"  {DIM}This disk is {fmt_size(image.size_bytes)} in size but only uses",
            f"  {fmt_size(usage.used_bytes)} ({pct:.1f}%) of actual storage.{RESET}",
        ]
    else:
        lines.append(f"  {DIM}Actual usage data not available (rbd du may still be computing).{RESET}")
    return lines + [""]


def _lineage(trace):
    image = trace.image
    lines = banner("2. CLONE LINEAGE")
    if image.is_clone:
        lines += [
            f"  This image is a {BOLD}copy-on-write (CoW) clone{RESET}. It shares",
            "  data blocks with the parent until written to.",
            "",
            f"  {BOLD}{MAGENTA}Parent image:{RESET}  {image.parent.spec}",
            "       │",
            f"       ▼  {DIM}(CoW snapshot){RESET}",
            f"  {BOLD}{GREEN}This clone:{RESET}    {image.spec}",
            "",
            f"  {DIM}Only the {fmt_size(image.object_size)} chunks this VM writes to become",
            f"  unique to the clone. Unmodified chunks stay shared with the parent.{RESET}",
        ]
    else:
        lines += [
            f"  This is a {BOLD}root image{RESET} (not a clone).",
            "  All of its data is stored independently.",
        ]
        if any(word in trace.vm_name.lower() for word in ("golden", "template")):
            lines += [
                "",
                f"  {DIM}As the golden template, this image is the parent that all",
                f"  clones reference. Its blocks are shared read-only with every clone.{RESET}",
            ]
    return lines + [""]


def _anatomy(trace):
    image = trace.image
    lines = banner("3. DATA ANATOMY: HOW THE DISK IS SLICED")
    lines += [
        f"  Ceph splits this {fmt_size(image.size_bytes)} disk into {BOLD}{image.total_objects:,} objects{RESET}",
        f"  of {fmt_size(image.object_size)} each, placed independently across the OSDs.",
        "",
        f"  {BOLD}Object naming:{RESET}",
        f"    Prefix:  {YELLOW}{image.block_prefix}{RESET}",
        f"    Pattern: {YELLOW}{image.block_prefix}{RESET}.{DIM}<16-hex-digit offset>{RESET}",
        "",
        f"  {BOLD}Examples:{RESET}",
    ]
    for name, where in landmark_objects(image):
        lines.append(f"    {YELLOW}{name}{RESET}  ← {where}")
    return lines + [""]


def _sample_table(trace):
    lines = banner("4. SAMPLE PLACEMENT TRACE")
    if not trace.records:
        lines += [
            f"  {YELLOW}Placement data unavailable.{RESET}",
            f"  {DIM}The ceph osd map query failed or the image is empty.{RESET}",
            "",
        ]
        return lines

    width = min(max(12, max(len(r.object_name) for r in trace.records)), OBJECT_WIDTH)
    lines += [
        f"  Sampled {len(trace.records)} of {trace.image.total_objects:,} objects to show where data lands.",
        "",
        f"  {BOLD}{'Object':<{width}}  {'PG':<12} {'Primary':<10} {'Replicas':<16} Node{RESET}",
        f"  {'─' * width}  {'─' * 12} {'─' * 10} {'─' * 16} {'─' * 16}",
    ]
    for record in trace.records:
        name = record.object_name
        if len(name) > width:
            name = name[: width - 2] + ".."
        primary = f"osd.{record.primary_device}" if record.primary_device >= 0 else "?"
        replicas = ", ".join(f"osd.{d}" for d in record.replica_devices) or "none"
        host = primary_host(record, trace.topology) or "?"
        lines.append(
            f"  {YELLOW}{name:<{width}}{RESET}  {record.placement_group:<12} "
            f"{GREEN}{primary:<10}{RESET} {DIM}{replicas:<16}{RESET} {BLUE}{host}{RESET}"
        )

    if trace.missing:
        lines.append(f"  {YELLOW}{len(trace.missing)} sampled objects returned no placement.{RESET}")
    if trace.coverage.skipped:
        lines.append(f"  {DIM}{len(trace.coverage.skipped)} response lines could not be decoded.{RESET}")
    return lines + [""]


def _coverage(trace):
    coverage = trace.coverage
    lines = banner("5. NODE COVERAGE: WHERE THIS VM'S DATA LIVES")
    if not coverage.available:
        return lines + [f"  {YELLOW}Placement data unavailable.{RESET}", ""]

    hosts = sorted(coverage.hosts)
    width = max(8, max(len(h) for h in hosts))
    maximum = max(s.total_count for s in coverage.hosts.values()) or 1
    lines += [
        f"  {BOLD}{'Node':<{width}}  {'Primary':>8} {'+ Replica':>10} {'Total':>6} {'Share':>6}  Distribution{RESET}",
        f"  {'─' * width}  {'─' * 8} {'─' * 10} {'─' * 6} {'─' * 6}  {'─' * 28}",
    ]
    for i, host in enumerate(hosts):
        stats = coverage.hosts[host]
        bar = bar_chart(stats.total_count, maximum, width=28, color=PALETTE[i % len(PALETTE)])
        lines.append(
            f"  {BOLD}{host:<{width}}{RESET}  {stats.primary_count:>8} {stats.replica_count:>10} "
            f"{stats.total_count:>6} {coverage.shares[host]:>5.1f}%  {bar}"
        )
    lines.append("")

    count = coverage.host_count
    if coverage.spread_label == "all":
        lines.append(f"  {GREEN}{BOLD}→ This VM's data touches ALL {count} nodes in the cluster.{RESET}")
    elif coverage.spread_label == "partial":
        lines.append(f"  {YELLOW}→ This VM's data is spread across {coverage.hosts_touched} of {count} nodes.{RESET}")
    elif coverage.spread_label == "single-node":
        lines.append(f"  {YELLOW}→ Single-node cluster: all data is on one node.{RESET}")
    else:
        lines.append(f"  {YELLOW}→ Data placement could not be fully determined.{RESET}")

    color = BALANCE_COLORS.get(coverage.balance, DIM)
    lines.append(f"  Balance: {color}{coverage.balance}{RESET} ({coverage.spread:.1f}pt spread of sampled share)")
    lines.append(
        f"  {DIM}Unique PGs in sample: {coverage.placement_groups} | "
        f"OSDs touched: {coverage.devices_touched} of {coverage.devices_known}{RESET}"
    )
    for device, hits in coverage.hotspots:
        lines.append(f"  {YELLOW}osd.{device} holds {hits} sampled copies, well above average.{RESET}")
    if not coverage.complete:
        lines.append(f"  {YELLOW}Coverage is incomplete: part of the placement data did not arrive.{RESET}")
    return lines + [""]


def _meaning(trace):
    coverage, image, usage = trace.coverage, trace.image, trace.usage
    lines = banner("6. WHAT THIS MEANS")

    if coverage.available and coverage.host_count > 0:
        touched = coverage.hosts_touched
        lines += [
            f"  {GREEN}✓ Spreading:{RESET}  The {fmt_size(image.size_bytes)} disk is split into "
            f"{image.total_objects:,} chunks",
            f"               spread across {touched} node{'s' if touched != 1 else ''}.",
            "",
        ]

    if coverage.available:
        if coverage.resilience == "resilient":
            lines += [
                f"  {GREEN}✓ Resilience:{RESET} Every chunk has replicas on different nodes.",
                "               No single node failure would lose this data.",
                "",
            ]
        elif coverage.resilience == "marginal":
            lines += [
                f"  {YELLOW}~ Resilience:{RESET} Data is replicated across 2 nodes.",
                "               Losing one node is survivable, but there's no margin.",
                "",
            ]
        elif coverage.resilience == "none":
            lines += [
                f"  {RED}✗ Resilience:{RESET} Single-node cluster, no redundancy across nodes.",
                "               A node failure would cause data unavailability.",
                "",
            ]

    if image.is_clone:
        lines.append(f"  {GREEN}✓ Efficiency:{RESET} This is a CoW clone sharing most of its data with {image.parent.spec}.")
        if usage.available and image.size_bytes > 0:
            unique = usage.used_bytes / image.size_bytes * 100
            lines += [
                f"               Only {fmt_size(usage.used_bytes)} ({unique:.1f}%) is unique to this VM.",
                f"               The other {100 - unique:.1f}% is shared at no extra storage cost.",
            ]
        else:
            lines.append("               Only chunks written by this VM consume additional storage.")
        lines.append("")
    elif usage.available and image.size_bytes > 0:
        lines += [
            f"  {BOLD}Capacity:{RESET}     This disk is {fmt_size(image.size_bytes)} but uses "
            f"{fmt_size(usage.used_bytes)}",
            "               of actual storage (thin provisioning).",
            "",
        ]
    return lines


def render_placement(trace):
    """Coloured multi section report of a TraceResult."""
    lines = []
    for section in (_identity, _lineage, _anatomy, _sample_table, _coverage, _meaning):
        lines.extend(section(trace))
    return "\n".join(lines)
