"""Device to host mapping from 'ceph osd df tree' output."""

from typing import Dict

from cowbench.models import UNKNOWN_HOST, DeviceTopology
from utility.log import Log

log = Log(__name__)

HOST_TYPE = "host"
DEVICE_TYPE = "osd"


def build_topology(document: Dict, device_type: str = DEVICE_TYPE, host_type: str = HOST_TYPE) -> DeviceTopology:
    """Build the device topology of a cluster.

    Only host nodes are walked for children and only children of the device
    type are recorded. Devices no host reaches are coverage gaps: they stay
    unmapped and resolve to the unknown host. A tree without any host node
    puts every device under the unknown host.

    Args:
        document: parsed json with a 'nodes' list
        device_type: node type of devices
        host_type: node type of hosts
    """
    nodes = {}
    for node in (document or {}).get("nodes", []):
        if "id" not in node:
            log.debug(f"Ignoring topology node without id: {node}")
            continue
        nodes[node["id"]] = node

    device_host, host_devices = {}, {}
    hosts = [n for n in nodes.values() if n.get("type") == host_type]

    for host in hosts:
        hostname = host.get("name", f"host-{host['id']}")
        devices = host_devices.setdefault(hostname, [])
        for child_id in host.get("children", []):
            child = nodes.get(child_id)
            if not child or child.get("type") != device_type:
                continue
            if child_id in device_host:
                log.warning(
                    f"Device {child_id} listed under {device_host[child_id]} and {hostname}, keeping first"
                )
                continue
            device_host[child_id] = hostname
            devices.append(child_id)

    all_devices = sorted(i for i, n in nodes.items() if n.get("type") == device_type)
    unreachable = tuple(d for d in all_devices if d not in device_host)

    if not hosts and all_devices:
        log.warning("Topology has no host nodes, grouping all devices under an unknown host")
        host_devices[UNKNOWN_HOST] = list(all_devices)
    elif unreachable:
        log.warning(f"Devices without a host: {', '.join(map(str, unreachable))}")

    return DeviceTopology(
        device_host=device_host,
        host_devices={h: sorted(d) for h, d in host_devices.items()},
        nodes=nodes,
        unreachable=unreachable,
    )
