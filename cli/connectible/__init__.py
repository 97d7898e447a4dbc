from .local import Local
from .remote import Remote


def connect(config):
    """Return the connection context running oc commands.

    Args:
        config (BenchConfig): benchmark configuration
    Returns:
        Remote when a bastion host is configured, Local otherwise
    """
    bastion = config.bastion
    if not bastion:
        return Local()

    return Remote(
        host=bastion["host"],
        ssh_key=bastion.get("ssh_key"),
        username=bastion.get("username"),
        password=bastion.get("password"),
    )
