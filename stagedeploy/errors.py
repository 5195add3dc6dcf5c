import signal


class Error(Exception):
    pass


class ConfigError(Error):
    pass


class ConfirmationRequired(Error):
    pass


class SourceControlError(Error):
    pass


class DeployAborted(Error):
    pass


class RemoteExecutionError(Error):
    """
    returncode: None when the command never produced an exit status(connection failure)
    """

    def __init__(self, cmd, returncode=None, output="", reason=None):
        super().__init__(cmd, returncode, output, reason)
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        self.reason = reason

    def __str__(self):
        if self.reason is not None:
            return "Command '%s' failed - %s" % (self.cmd, self.reason)

        if self.returncode is not None and self.returncode < 0:
            try:
                return "Command '%s' died with %r." % (
                    self.cmd,
                    signal.Signals(-self.returncode),
                )
            except ValueError:
                return "Command '%s' died with unknown signal %d." % (
                    self.cmd,
                    -self.returncode,
                )

        return "Command '%s' returned non-zero exit status %s.%s" % (
            self.cmd,
            self.returncode,
            "\n out:[%s]" % self.output.strip() if self.output else "",
        )


class RemoteTimeout(RemoteExecutionError):
    def __init__(self, cmd, timeout, output=""):
        super().__init__(cmd, None, output, reason=f"timed out after {timeout}s")
        self.timeout = timeout
