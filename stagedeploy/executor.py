import shutil
import subprocess
import time
from collections import namedtuple

from .errors import DeployAborted, RemoteExecutionError, RemoteTimeout
from .myutil import commandLine, lld, lli, shortCmd

CommandResult = namedtuple("CommandResult", "exitCode output")


class RemoteExecutor:
    """
    runs shell commands on one target
    the orchestrator only talks to this interface
    """

    def __init__(self, name, abortEvent=None, timeout=None):
        self.name = name
        self.abortEvent = abortEvent
        self.timeout = timeout

    def log(self, msg):
        lli(f"[{self.name}]: {msg}")

    def connect(self):
        pass

    def close(self):
        pass

    def _exec(self, line, timeout):
        """
        return: CommandResult
        exception: RemoteTimeout
        """
        raise NotImplementedError

    def upload(self, src, dest):
        raise NotImplementedError

    def runLine(self, line, timeout=None):
        if self.abortEvent is not None and self.abortEvent.is_set():
            raise DeployAborted(f"[{self.name}]: aborted before [{shortCmd(line)}]")

        self.log(f"run [{shortCmd(line)}]")
        s = time.time()
        res = self._exec(line, timeout if timeout is not None else self.timeout)

        g = int((time.time() - s) * 1000)
        ss = f"{g}ms" if g < 10000 else f"{int(g/1000)}s"
        lld(f"  -> ({ss}) ret:{res.exitCode}")
        if res.output:
            lld(f"  -> output:{res.output}")
        return res

    def run(self, cmd, args=(), workdir=None, env=None, timeout=None):
        """
        return: CommandResult, non-zero exit is not an error here
        """
        return self.runLine(commandLine(cmd, args, workdir, env), timeout)

    def check(self, cmd, args=(), workdir=None, env=None, timeout=None):
        """
        exception: RemoteExecutionError on non-zero exit
        """
        line = commandLine(cmd, args, workdir, env)
        res = self.runLine(line, timeout)
        if res.exitCode != 0:
            raise RemoteExecutionError(line, res.exitCode, res.output)
        return res

    def test(self, cmd, args=(), workdir=None):
        return self.run(cmd, args, workdir).exitCode == 0


class LocalExecutor(RemoteExecutor):
    """
    port 0 target. runs with bash on this machine
    """

    def __init__(self, name="local", abortEvent=None, timeout=None):
        super().__init__(name, abortEvent, timeout)

    def _exec(self, line, timeout):
        try:
            p = subprocess.run(
                line,
                shell=True,
                executable="/bin/bash",
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            out = e.output.decode("utf-8", "replace") if e.output else ""
            raise RemoteTimeout(line, timeout, out) from e

        return CommandResult(p.returncode, p.stdout.decode("utf-8", "replace"))

    def upload(self, src, dest):
        self.log(f"copy file {src} -> {dest}")
        shutil.copyfile(src, dest)
