import shlex
import subprocess

from cli.exceptions import CommandFailed, OperationFailedError
from utility.log import Log

LOG = Log(__name__)


class Local:
    """Run commands on the machine executing the tools"""

    shortname = "localhost"

    def exec_command(self, cmd, check_ec=True, timeout=None):
        """Execute command locally

        Args:
            cmd (str): Command to be executed
            check_ec (bool): Raise CommandFailed on non-zero exit status
            timeout (int): Seconds before the command is abandoned
        """
        LOG.debug(f"[{self.shortname}] Executing command - {cmd}")
        try:
            proc = subprocess.run(
                shlex.split(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise OperationFailedError(f"Command '{cmd}' timed out after {timeout} sec")
        except FileNotFoundError as e:
            raise OperationFailedError(f"Command '{cmd}' could not be started: {e}")

        out = proc.stdout.decode("utf-8")
        err = proc.stderr.decode("utf-8")
        if check_ec and proc.returncode != 0:
            raise CommandFailed(proc.returncode, cmd, out, err)

        return out, err

    def close(self):
        pass
