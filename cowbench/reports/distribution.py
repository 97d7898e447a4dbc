"""Node distribution report of the cluster."""

from cowbench.aggregator import NO_REDUNDANCY, SLIGHTLY_UNEVEN, UNBALANCED, WELL_BALANCED
from cowbench.distribution import EVEN, FULL, MODERATE, OK, WATCH, status
from cowbench.reports.text import (
    BG_GREEN,
    BG_RED,
    BG_YELLOW,
    BLUE,
    BOLD,
    DIM,
    GREEN,
    RED,
    RESET,
    YELLOW,
    banner,
    bar_chart,
    fmt_kib,
    fmt_size,
)

STATUS_COLORS = {OK: GREEN, WATCH: YELLOW, FULL: RED}
PG_SPREAD_COLORS = {EVEN: GREEN, MODERATE: YELLOW}

BALANCE_BADGES = {
    WELL_BALANCED: (BG_GREEN, GREEN, "Data is evenly distributed across all nodes. No action needed."),
    SLIGHTLY_UNEVEN: (BG_YELLOW, YELLOW, "Minor imbalance detected. Ceph rebalances as new data is written."),
    UNBALANCED: (
        BG_RED,
        RED,
        "Significant imbalance. Check OSD weights (ceph osd tree) and the CRUSH map.",
    ),
}

HEADROOM_TEXT = {
    "plenty": (GREEN, "✓", "plenty of headroom."),
    "plan": (YELLOW, "~", "approaching the 75% planning threshold."),
    "expand-soon": (YELLOW, "~", "past the 75% planning threshold, expansion recommended soon."),
    "critical": (RED, "✗", "approaching critical levels, Ceph throttles writes near 85%."),
    "emergency": (RED, "✗", "CRITICAL, immediate action required."),
}


def _pct_bar(pct, thresholds, width=30):
    color = STATUS_COLORS[status(pct, thresholds)]
    return bar_chart(pct, 100, width=width, color=color)


def _nodes(dist, thresholds):
    lines = banner("1. PER-NODE STORAGE SUMMARY", 60)
    if not dist.hosts:
        return lines + [f"  {YELLOW}No host/OSD data available.{RESET}", ""]

    lines += [
        f"  {BOLD}{'Host':<25} {'Capacity':>10} {'Used':>10} {'%Used':>6}  {'OSDs':>4}  {'Bar':<30}  Status{RESET}",
        f"  {'─' * 25} {'─' * 10} {'─' * 10} {'─' * 6}  {'─' * 4}  {'─' * 30}  {'─' * 6}",
    ]
    for host in dist.hosts:
        badge = status(host.pct_used, thresholds)
        lines.append(
            f"  {host.host:<25} {fmt_kib(host.kb):>10} {fmt_kib(host.kb_used):>10} {host.pct_used:>5.1f}%  "
            f"{len(host.devices):>4}  {_pct_bar(host.pct_used, thresholds)}  "
            f"{STATUS_COLORS[badge]}{BOLD}{badge}{RESET}"
        )
    lines += [
        "",
        f"  {BOLD}{'TOTAL':<25} {fmt_kib(dist.total_kb):>10} {fmt_kib(dist.total_kb_used):>10} "
        f"{dist.total_pct_used:>5.1f}%  {dist.device_count:>4}{RESET}",
        "",
    ]
    return lines


def _devices(dist, thresholds):
    lines = banner("2. PER-OSD BREAKDOWN", 60)
    if not dist.hosts:
        return lines + [f"  {YELLOW}No OSD data available.{RESET}", ""]

    for host in dist.hosts:
        lines.append(f"  {BOLD}{BLUE}{host.host}{RESET}")
        if not host.devices:
            lines.append(f"    {DIM}(no OSDs){RESET}")
        for device in host.devices:
            pgs = f"  {DIM}PGs: {device.pg_count}{RESET}" if device.pg_count else ""
            lines.append(
                f"    ├─ {device.name:<10} {fmt_kib(device.kb):>10} {fmt_kib(device.kb_used):>10} "
                f"{device.pct_used:>5.1f}%  {_pct_bar(device.pct_used, thresholds, 20)}{pgs}"
            )
        lines.append("")
    return lines


def _balance(dist):
    lines = banner("3. BALANCE ASSESSMENT", 60)
    if dist.balance in BALANCE_BADGES:
        pcts = [h.pct_used for h in dist.hosts]
        background, color, text = BALANCE_BADGES[dist.balance]
        lines += [
            f"  Highest node utilization:  {max(pcts):.1f}%",
            f"  Lowest  node utilization:  {min(pcts):.1f}%",
            f"  Spread:                    {dist.spread:.1f} percentage points",
            "",
            f"  {background}{BOLD} {dist.balance.upper()} {RESET}",
            f"  {color}{text}{RESET}",
        ]
    elif dist.balance == NO_REDUNDANCY:
        lines += [
            f"  {YELLOW}Single-node cluster detected ({dist.hosts[0].host}).{RESET}",
            f"  {YELLOW}Balance assessment requires multiple nodes.{RESET}",
        ]
    else:
        lines.append(f"  {YELLOW}No node data available.{RESET}")
    return lines + [""]


def _pgs(dist):
    lines = banner(f"4. POOL PG DISTRIBUTION (pool: {dist.pool})", 60)
    if not dist.pg_counts:
        return lines + [
            f"  {YELLOW}No placement group data available for pool '{dist.pool}'.{RESET}",
            "",
        ]

    maximum = max(dist.pg_counts.values())
    lines += [f"  {BOLD}{'OSD':<10} {'PGs':>6}  Distribution{RESET}", f"  {'─' * 10} {'─' * 6}  {'─' * 30}"]
    for device, count in dist.pg_counts.items():
        filled = max(1, int(count / maximum * 25)) if maximum else 1
        lines.append(f"  {'osd.' + str(device):<10} {count:>6}  {BLUE}{'█' * filled}{RESET}")
    lines += [
        "",
        f"  Total PGs across OSDs: {dist.total_pgs}  (each PG is counted once per replica)",
        f"  Average PGs per OSD:   {dist.average_pgs:.1f}",
    ]
    if dist.pg_spread_label:
        color = PG_SPREAD_COLORS.get(dist.pg_spread_label, RED)
        lines.append(
            f"  PG spread:             {color}{dist.pg_spread_label.capitalize()} "
            f"({dist.pg_spread:.0f}% variance){RESET}"
        )
    return lines + [""]


def _activity(dist):
    activity = dist.activity
    lines = banner(f"5. POOL ACTIVITY (pool: {dist.pool})", 60)
    if activity.client_io:
        lines += [
            "  Client I/O:",
            f"    Read:  {fmt_size(activity.read_bytes_sec)}/s  ({activity.read_ops_sec} ops/s)",
            f"    Write: {fmt_size(activity.write_bytes_sec)}/s  ({activity.write_ops_sec} ops/s)",
        ]
    else:
        lines.append(f"  Client I/O: {DIM}No active I/O{RESET}")

    if activity.recovering:
        lines += [
            "  Recovery:",
            f"    {YELLOW}Recovery in progress: {fmt_size(activity.recovering_bytes_sec)}/s, "
            f"{activity.recovering_objects_sec} objects/s{RESET}",
        ]
    else:
        lines.append(f"  Recovery:  {GREEN}None (cluster is clean){RESET}")
    return lines + [""]


def _summary(dist):
    lines = banner("6. WHAT DOES THIS MEAN?", 60)
    nodes = len(dist.hosts)

    if dist.balance == WELL_BALANCED:
        lines.append(f"  {GREEN}✓ Balance:{RESET}  Storage is well balanced across your {nodes} nodes.")
    elif dist.balance == SLIGHTLY_UNEVEN:
        lines.append(f"  {YELLOW}~ Balance:{RESET}  Slight imbalance ({dist.spread:.1f}pt spread) across {nodes} nodes.")
    elif dist.balance == UNBALANCED:
        lines.append(f"  {RED}✗ Balance:{RESET}  Significant imbalance ({dist.spread:.1f}pt spread) across {nodes} nodes.")
    elif dist.balance == NO_REDUNDANCY:
        lines.append(f"  {YELLOW}~ Balance:{RESET}  Single-node cluster, all data is on one node (no redundancy).")
    else:
        lines.append(f"  {DIM}  Balance: Unable to assess (insufficient data).{RESET}")
    lines.append("")

    if dist.hotspot:
        device, count, average = dist.hotspot
        lines.append(f"  {YELLOW}~ Hotspots:{RESET} OSD {device} has {count} PGs (avg {average:.0f}). It may be a hotspot.")
    elif len(dist.pg_counts) > 1:
        lines.append(f"  {GREEN}✓ Hotspots:{RESET} No hotspots detected. PG distribution is even across OSDs.")
    else:
        lines.append(f"  {DIM}  Hotspots: Unable to assess (no PG data or single OSD).{RESET}")
    lines.append("")

    if dist.headroom:
        color, mark, text = HEADROOM_TEXT[dist.headroom]
        available = fmt_kib(dist.total_kb - dist.total_kb_used)
        lines.append(f"  {color}{mark} Capacity:{RESET} {dist.total_pct_used:.1f}% used, {text} {available} available.")
    else:
        lines.append(f"  {DIM}  Capacity: Unable to assess (no capacity data).{RESET}")
    lines.append("")

    if dist.activity.recovering:
        lines.append(f"  {YELLOW}~ Pool:{RESET}     Recovery is in progress for pool '{dist.pool}'.")
    elif dist.activity.available:
        lines.append(f"  {GREEN}✓ Pool:{RESET}     Pool '{dist.pool}' is healthy with no active recovery.")
    else:
        lines.append(f"  {DIM}  Pool:     No pool activity data available for '{dist.pool}'.{RESET}")
    return lines + [""]


def render_distribution(dist, thresholds=(65.0, 80.0)):
    """Coloured multi section report of a NodeDistribution.

    Args:
        dist (NodeDistribution): analyzed distribution
        thresholds (tuple): (OK, WATCH) capacity limits in percent
    """
    lines = []
    lines += _nodes(dist, thresholds)
    lines += _devices(dist, thresholds)
    lines += _balance(dist)
    lines += _pgs(dist)
    lines += _activity(dist)
    lines += _summary(dist)
    return "\n".join(lines)
