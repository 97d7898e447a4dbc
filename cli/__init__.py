from functools import partialmethod


class Cli:
    def __init__(self, ctx):
        self.ctx = ctx

    def execute(self, cmd, check_ec=True, timeout=None, **kwargs):
        """Interface to execute commands through the connection context.

        Args:
            cmd (str): Command to be executed
            check_ec (bool): Raise CommandFailed on non-zero exit status
            timeout (int): Seconds before the command is abandoned
        Returns:
            (stdout, stderr) tuple
        """
        return self.ctx.exec_command(cmd=cmd, check_ec=check_ec, timeout=timeout)

    execute_unchecked = partialmethod(execute, check_ec=False)
