"""
VM disk ownership chain resolution.

    VirtualMachine -> PersistentVolumeClaim -> PersistentVolume -> RBD image

Every layer must resolve to find the next one. Resolution fails closed with a
ResolutionError naming the layer; it never guesses.
"""

from typing import Dict, List, Optional, Tuple

from cli.exceptions import (
    Ambiguous,
    CommandFailed,
    DataUnavailable,
    NotFound,
    ResourceNotFoundError,
    Unbound,
)
from cowbench.models import ImageRef, ImageUsage, OwnershipChain, ParentRef
from utility.log import Log

log = Log(__name__)

DEFAULT_ORDER = 22

VM = "vm"
CLAIM = "claim"
VOLUME = "volume"
IMAGE = "image"


def claim_candidates(vm: Dict) -> Tuple[List[str], List[str]]:
    """Claim names referenced by a VM.

    Returns:
        (template provisioned claims, plain volume claims), in spec order
    """
    spec = vm.get("spec", {})
    templates = [
        dvt.get("metadata", {}).get("name")
        for dvt in spec.get("dataVolumeTemplates", [])
        if dvt.get("metadata", {}).get("name")
    ]

    plain = []
    for volume in spec.get("template", {}).get("spec", {}).get("volumes", []):
        if "dataVolume" in volume:
            name = volume["dataVolume"].get("name")
        elif "persistentVolumeClaim" in volume:
            name = volume["persistentVolumeClaim"].get("claimName")
        else:
            continue
        if name and name not in plain:
            plain.append(name)

    return templates, plain


def parent_from_info(info: Dict) -> Optional[ParentRef]:
    parent = info.get("parent")
    if not parent:
        return None
    return ParentRef(
        pool=parent.get("pool_name", parent.get("pool", "")),
        image=parent.get("image", ""),
        snapshot=parent.get("snapshot", parent.get("snap", "")),
    )


def image_ref_from_info(pool: str, image: str, info: Dict) -> ImageRef:
    """Build an ImageRef from 'rbd info' json.

    Raises:
        NotFound when the metadata carries no object prefix
    """
    prefix = (info or {}).get("block_name_prefix")
    if not prefix:
        raise NotFound(IMAGE, f"{pool}/{image}", "Could not read RBD image metadata (no block_name_prefix)")

    order = info.get("order", DEFAULT_ORDER)
    return ImageRef(
        pool=pool,
        image_name=image,
        block_prefix=prefix,
        object_size=2 ** order,
        size_bytes=info.get("size", 0),
        parent=parent_from_info(info),
    )


def usage_from_du(du_doc: Dict, image: str) -> ImageUsage:
    """Thin provisioning figures of one image, zeros when not listed."""
    for entry in (du_doc or {}).get("images", []):
        if entry.get("name") == image:
            return ImageUsage(
                used_bytes=entry.get("used_size", 0),
                provisioned_bytes=entry.get("provisioned_size", 0),
            )
    return ImageUsage()


def select_vm(oc, config) -> str:
    """VM traced when the operator names none: first clone by name, else golden."""
    clones = oc.names(VM, namespace=config.namespace, selector=config.clone_selector)
    if clones:
        return clones[0]
    log.info(f"No clone VMs in {config.namespace}, using golden VM {config.golden_vm}")
    return config.golden_vm


class DiskPathResolver:
    """Resolves VM names to their backing RBD images."""

    def __init__(self, oc, rbd, config):
        self.oc = oc
        self.rbd = rbd
        self.config = config

    def _lookup(self, kind, name, namespace=None):
        try:
            return self.oc.get(kind, name, namespace=namespace)
        except ResourceNotFoundError:
            return None

    def choose_claim(self, vm_name: str, vm: Dict, disk: Optional[str] = None) -> str:
        """Claim backing the VM disk; template provisioned claims win."""
        templates, plain = claim_candidates(vm)
        if disk:
            if disk in templates or disk in plain:
                return disk
            raise NotFound(CLAIM, disk, f"VM {vm_name} has no disk {disk}", templates + plain)

        candidates = templates or plain
        if not candidates:
            raise NotFound(CLAIM, vm_name, f"Could not find a PVC for VM {vm_name}")
        if len(candidates) > 1:
            raise Ambiguous(CLAIM, vm_name, f"VM {vm_name} has more than one disk", candidates)
        return candidates[0]

    def resolve(self, vm_name: str, disk: Optional[str] = None) -> OwnershipChain:
        """Resolve the ownership chain of a VM disk.

        Args:
            vm_name (str): VM name
            disk (str): claim name, needed when the VM has several disks
        Raises:
            NotFound, Ambiguous, Unbound
        """
        namespace = self.config.namespace

        vm = self._lookup(VM, vm_name, namespace)
        if vm is None:
            raise NotFound(
                VM,
                vm_name,
                f"VM {vm_name} not found in {namespace}",
                self.oc.names(VM, namespace=namespace),
            )

        claim_name = self.choose_claim(vm_name, vm, disk)
        claim = self._lookup("pvc", claim_name, namespace)
        if claim is None:
            raise NotFound(
                CLAIM,
                claim_name,
                f"PVC {claim_name} not found in {namespace}",
                self.oc.names("pvc", namespace=namespace),
            )

        volume_name = claim.get("spec", {}).get("volumeName")
        if not volume_name:
            raise Unbound(CLAIM, claim_name, f"PVC {claim_name} is not bound to a PV yet (still provisioning)")

        volume = self._lookup("pv", volume_name)
        if volume is None:
            raise NotFound(VOLUME, volume_name, f"PV {volume_name} not found")

        attributes = volume.get("spec", {}).get("csi", {}).get("volumeAttributes", {})
        image_name = attributes.get("imageName")
        if not image_name:
            raise Unbound(VOLUME, volume_name, f"PV {volume_name} has no backing RBD image (missing imageName)")

        pool = attributes.get("pool") or self.config.pool
        try:
            info = self.rbd.info(pool, image_name)
        except ResourceNotFoundError:
            raise NotFound(IMAGE, f"{pool}/{image_name}", f"RBD image {pool}/{image_name} not found")
        image = image_ref_from_info(pool, image_name, info)

        chain = OwnershipChain(
            layers=((VM, vm_name), (CLAIM, claim_name), (VOLUME, volume_name), (IMAGE, image_name)),
            image=image,
        )
        log.info(f"Resolved {chain}")
        return chain

    def usage(self, image: ImageRef) -> ImageUsage:
        """Used and provisioned size of an image, zeros when unavailable."""
        try:
            return usage_from_du(self.rbd.du(image.pool, image.image_name), image.image_name)
        except (CommandFailed, ResourceNotFoundError, DataUnavailable) as e:
            log.warning(f"Usage of {image.spec} unavailable: {e}")
            return ImageUsage()
