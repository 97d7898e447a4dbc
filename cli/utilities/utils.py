import re
import shlex

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def build_cmd_from_args(seperator="=", **kw):
    """This method checks from the dictionary the optional arguments
    if present it adds them in "cmd" and returns cmd.

    Args:
        seperator: the separator for parameters, '=' by default
        kw (dict) : takes a dictionary as an input.

    Returns:
        cmd (str): returns a command string.

    eg:
        Args:
            kw={"format": "json", "selector": "role=clone"}
            kw={"output=": "json", "no-headers": True}
        Returns:
            " --format json --selector role=clone"
            " --output=json --no-headers"
    """
    if not kw:
        return ""

    cmd = ""
    for k, v in kw.items():
        if v is None or v is False:
            continue
        if v is True:
            cmd += f" --{k}"
        elif isinstance(v, list):
            for val in v:
                cmd += build_cmd_from_args(**val)
        else:
            if seperator and seperator in k:
                cmd += f" --{k}{shlex.quote(str(v))}"
            else:
                cmd += f" --{k} {shlex.quote(str(v))}"
    return cmd


def strip_ansi(text):
    """Remove terminal colour sequences from text."""
    return ANSI_ESCAPE.sub("", text)
