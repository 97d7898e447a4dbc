import json

from cli import Cli
from cli.exceptions import CommandFailed, DataUnavailable, ResourceNotFoundError
from cli.utilities.utils import build_cmd_from_args
from utility.log import Log
from utility.retry import retry

log = Log(__name__)


class Oc(Cli):
    """This module provides CLI interface to query OpenShift resources."""

    def __init__(self, ctx, base_cmd="oc", timeout=None):
        super(Oc, self).__init__(ctx)
        self.base_cmd = base_cmd
        self.timeout = timeout

    @retry(CommandFailed, tries=3, delay=2)
    def _get(self, cmd):
        try:
            out, _ = self.execute(cmd=cmd, timeout=self.timeout)
        except CommandFailed as e:
            if "NotFound" in e.err or "not found" in e.err:
                raise ResourceNotFoundError(e.err.strip())
            raise
        return out

    def get(self, kind, name=None, namespace=None, selector=None):
        """Get resource(s) as parsed json.

        Args:
            kind (str): resource kind e.g. vm, pvc, pv
            name (str): resource name, all resources when not given
            namespace (str): namespace of namespaced resources
            selector (str): label selector e.g. role=clone
        Returns:
            dict of the resource, or of the List object when name is not given
        Raises:
            ResourceNotFoundError when the named resource does not exist
            DataUnavailable when the output is not json
        """
        cmd = f"{self.base_cmd} get {kind}"
        if name:
            cmd += f" {name}"
        cmd += build_cmd_from_args(
            namespace=namespace,
            selector=None if name else selector,
            output="json",
        )
        try:
            return json.loads(self._get(cmd) or "{}")
        except ValueError:
            raise DataUnavailable(cmd, "output is not valid json")

    def names(self, kind, namespace=None, selector=None):
        """Sorted names of the resources of a kind."""
        items = self.get(kind, namespace=namespace, selector=selector).get("items", [])
        return sorted(i.get("metadata", {}).get("name", "") for i in items)

    def pod(self, namespace, selector):
        """First pod matching the selector, e.g. pod/rook-ceph-tools-xyz, or None."""
        cmd = f"{self.base_cmd} get pod" + build_cmd_from_args(
            namespace=namespace, selector=selector, output="name"
        )
        try:
            out, _ = self.execute(cmd=cmd, timeout=self.timeout)
        except CommandFailed as e:
            log.error(f"Failed to list pods in {namespace}: {e.err.strip()}")
            return None

        pods = out.split()
        return pods[0] if pods else None

    def exec_prefix(self, namespace, pod):
        """Command prefix running the remainder inside the pod."""
        return f"{self.base_cmd} exec -n {namespace} {pod} --"
