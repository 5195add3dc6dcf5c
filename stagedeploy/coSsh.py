import getpass
import socket
import time

import paramiko
from paramiko.agent import AgentRequestHandler

from .errors import RemoteExecutionError, RemoteTimeout
from .executor import CommandResult, RemoteExecutor


# https://stackoverflow.com/questions/760978/long-running-ssh-commands-in-python-paramiko-module-and-how-to-end-them
class SshExecutor(RemoteExecutor):
    def __init__(self, target, abortEvent=None, timeout=None):
        super().__init__(f"{target.host}:{target.port}", abortEvent, timeout)
        self.target = target
        self.ssh = None
        self.sftp = None

    def connect(self):
        t = self.target
        self.log(f"ssh - connecting to the server[{t.user}@{t.host}:{t.port}] with key:{t.keyFile}")

        self.ssh = paramiko.SSHClient()
        self.ssh.load_system_host_keys()
        self.ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            try:
                self.ssh.connect(
                    t.host,
                    port=t.port,
                    username=t.user,
                    key_filename=t.keyFile,
                    timeout=self.timeout,
                )
            except paramiko.PasswordRequiredException:
                pw = getpass.getpass("key password: ")
                self.ssh.connect(
                    t.host,
                    port=t.port,
                    username=t.user,
                    key_filename=t.keyFile,
                    passphrase=pw,
                    timeout=self.timeout,
                )
        except (paramiko.SSHException, socket.error) as e:
            raise RemoteExecutionError(f"ssh {t.user}@{t.host}:{t.port}", reason=str(e)) from e

    def close(self):
        if self.sftp is not None:
            self.sftp.close()
            self.sftp = None
        if self.ssh is not None:
            self.ssh.close()
            self.ssh = None

    def _exec(self, line, timeout):
        deadline = None if timeout is None else time.time() + timeout

        chan = self.ssh.get_transport().open_session()
        try:
            if self.target.forwardAgent:
                AgentRequestHandler(chan)
            chan.set_combine_stderr(True)
            chan.exec_command(line)
            chan.settimeout(0.1)

            out = []
            while True:
                try:
                    data = chan.recv(32768)
                    if len(data) == 0:
                        break
                    out.append(data)
                except socket.timeout:
                    pass

                if deadline is not None and time.time() > deadline:
                    output = b"".join(out).decode("utf-8", "replace")
                    raise RemoteTimeout(line, timeout, output)

            ret = chan.recv_exit_status()
            return CommandResult(ret, b"".join(out).decode("utf-8", "replace"))
        finally:
            chan.close()

    def upload(self, src, dest):
        self.log(f"sftp: upload file {src} -> {dest}")
        if self.sftp is None:
            self.sftp = self.ssh.open_sftp()
        try:
            self.sftp.put(src, dest)
        except (IOError, paramiko.SSHException) as e:
            raise RemoteExecutionError(f"sftp put {dest}", reason=str(e)) from e
