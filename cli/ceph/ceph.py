import json
import shlex

from cli import Cli
from cli.exceptions import CommandFailed, DataUnavailable
from utility.log import Log
from utility.retry import retry

log = Log(__name__)


class Ceph(Cli):
    """This module provides CLI interface for read-only ceph cluster queries."""

    def __init__(self, ctx, base_cmd="", timeout=None):
        super(Ceph, self).__init__(ctx)
        self.prefix = base_cmd
        self.base_cmd = f"{base_cmd} ceph" if base_cmd else "ceph"
        self.timeout = timeout

    @retry(CommandFailed, tries=3, delay=2)
    def _json(self, cmd):
        out, _ = self.execute(cmd=f"{cmd} --format json", timeout=self.timeout)
        try:
            return json.loads(out)
        except ValueError:
            raise DataUnavailable(cmd, "output is not valid json")

    def osd_map(self, pool, objects):
        """Map objects to placement groups and OSDs in a single round-trip.

        One 'ceph osd map' per object is chained into one shell script which is
        executed through the toolbox, so N objects cost one remote call.

        Args:
            pool (str): pool name
            objects (list): object names
        Returns:
            raw text, one line per object which could be mapped
        """
        if not objects:
            return ""

        script = " ".join(
            f"ceph osd map {shlex.quote(pool)} {shlex.quote(obj)} 2>/dev/null;"
            for obj in objects
        )
        cmd = f"{self.prefix} bash -c {shlex.quote(script)}".strip()
        log.debug(f"Mapping {len(objects)} objects of pool {pool}")
        out, _ = self.execute_unchecked(cmd=cmd, timeout=self.timeout)
        return out

    def osd_df_tree(self):
        """Get the OSD tree with utilization (ceph osd df tree)."""
        return self._json(f"{self.base_cmd} osd df tree")

    def df_detail(self):
        """Get pool usage details (ceph df detail)."""
        return self._json(f"{self.base_cmd} df detail")

    def pg_ls_by_pool(self, pool):
        """Get the placement groups of a pool."""
        return self._json(f"{self.base_cmd} pg ls-by-pool {shlex.quote(pool)}")

    def pool_stats(self, pool):
        """Get client and recovery I/O rates of a pool."""
        return self._json(f"{self.base_cmd} osd pool stats {shlex.quote(pool)}")
