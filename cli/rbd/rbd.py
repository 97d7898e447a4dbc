import json
import shlex

from cli import Cli
from cli.exceptions import CommandFailed, DataUnavailable, ResourceNotFoundError
from utility.retry import retry


class Rbd(Cli):
    def __init__(self, ctx, base_cmd="", timeout=None):
        super(Rbd, self).__init__(ctx)
        self.base_cmd = f"{base_cmd} rbd" if base_cmd else "rbd"
        self.timeout = timeout

    @retry(CommandFailed, tries=3, delay=2)
    def _json(self, cmd):
        try:
            out, _ = self.execute(cmd=f"{cmd} --format json", timeout=self.timeout)
        except CommandFailed as e:
            if "No such file or directory" in e.err or "error opening image" in e.err:
                raise ResourceNotFoundError(e.err.strip())
            raise
        try:
            return json.loads(out)
        except ValueError:
            raise DataUnavailable(cmd, "output is not valid json")

    def info(self, pool, image):
        """
        Image metadata: block_name_prefix, order, size and parent.
        Args:
            pool(str): pool name
            image(str): image name
        """
        return self._json(f"{self.base_cmd} info {shlex.quote(f'{pool}/{image}')}")

    def du(self, pool, image=None):
        """
        Provisioned and used size of the images of a pool, or of one image.
        Args:
            pool(str): pool name
            image(str): image name (optional)
        """
        spec = f"{pool}/{image}" if image else pool
        return self._json(f"{self.base_cmd} du {shlex.quote(spec)}")
