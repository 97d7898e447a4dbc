class ConfigError(Exception):
    """
    Custom exception thrown when there is an unrecoverable configuration error.
    """


class CommandFailed(Exception):
    """
    Custom exception thrown when a command exits with a non-zero status.
    """

    def __init__(self, returncode, cmd, out="", err=""):
        self.returncode = returncode
        self.cmd = cmd
        self.out = out
        self.err = err
        super(CommandFailed, self).__init__(
            f"Command '{cmd}' failed with exit code {returncode}: {err or out}".strip()
        )


class RemoteConnectionError(Exception):
    """
    Custom exception thrown when Remote Connection fails
    """


class ResourceNotFoundError(Exception):
    """
    Custom exception thrown when expected resource not available.
    """


class OperationFailedError(Exception):
    """
    Custom exception thrown when any operation fails.
    """


class DataUnavailable(Exception):
    """
    Custom exception thrown when an external query returned nothing usable.
    """

    def __init__(self, source, reason=""):
        self.source = source
        self.reason = reason
        msg = f"{source} data unavailable"
        super(DataUnavailable, self).__init__(f"{msg}: {reason}" if reason else msg)


class ResolutionError(Exception):
    """
    Custom exception thrown when the VM disk ownership chain cannot be resolved.

    Args:
        layer (str): ownership layer that failed (vm, claim, volume, image)
        identifier (str): identifier looked up at that layer
        reason (str): human readable cause
        alternatives (list): known identifiers the operator could use instead
    """

    kind = "unresolved"

    def __init__(self, layer, identifier, reason, alternatives=()):
        self.layer = layer
        self.identifier = identifier
        self.reason = reason
        self.alternatives = sorted(alternatives)
        super(ResolutionError, self).__init__(
            f"{self.kind}: {layer} '{identifier}': {reason}"
        )

    def describe(self):
        """Multi line message for the operator."""
        lines = [f"ERROR: {self.reason}", f"  Unresolved layer: {self.layer} '{self.identifier}'"]
        if self.alternatives:
            lines.append(f"  Available {self.layer}s:")
            lines.extend(f"    {name}" for name in self.alternatives)
        return "\n".join(lines)


class NotFound(ResolutionError):
    """A layer of the ownership chain does not exist."""

    kind = "not found"


class Ambiguous(ResolutionError):
    """A layer of the ownership chain has more than one candidate."""

    kind = "ambiguous"


class Unbound(ResolutionError):
    """A claim exists but is not bound to physical storage yet."""

    kind = "unbound"
