import paramiko

from cli.exceptions import CommandFailed, RemoteConnectionError
from utility.log import Log

LOG = Log(__name__)


class Remote:
    """Run commands on a bastion host which has cluster access"""

    def __init__(self, host, ssh_key=None, username=None, password=None):
        """Initialize instance using configs

        Args:
            host (str): host IP or Hostname
            ssh_key (str): SSH private key path
            username (str): Name of user to be connected
            password (str): Password of user
        """
        self._host = host
        self._client = self._connect(host, ssh_key, username, password)

    @property
    def shortname(self):
        return self._host.split(".")[0]

    def _connect(self, host, ssh_key=None, username=None, password=None):
        """Connect to host

        Args:
            host (str): host IP or Hostname
            ssh_key (str): SSH private key path
            username (str): Name of user to be connected
            password (str): Password of user
        """
        try:
            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

            LOG.debug(f"Connecting to host {host}")
            client.connect(
                hostname=host,
                key_filename=ssh_key,
                username=username,
                password=password,
            )
        except Exception as e:
            LOG.error(f"Failed to connect to host '{host}' with error -\n{str(e)}")
            raise RemoteConnectionError(str(e))

        LOG.info(f"Connected to host '{host}' successfully")
        return client

    def exec_command(self, cmd, check_ec=True, timeout=None):
        """Execute command on host

        Args:
            cmd (str): Command to be executed
            check_ec (bool): Raise CommandFailed on non-zero exit status
            timeout (int): Socket timeout
        """
        LOG.debug(f"[{self._host}] Executing command - {cmd}")
        try:
            _, stdout, stderr = self._client.exec_command(command=cmd, timeout=timeout)
            returncode = stdout.channel.recv_exit_status()
            out = stdout.read().decode()
            err = stderr.read().decode()
        except Exception as e:
            LOG.error(f"Command '{cmd}' execution failed with error -\n{e}")
            raise RemoteConnectionError(e)

        if check_ec and returncode != 0:
            raise CommandFailed(returncode, cmd, out, err)

        return out, err

    def close(self):
        self._client.close()
