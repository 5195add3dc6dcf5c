import subprocess
from collections import namedtuple

from .errors import ConfirmationRequired, SourceControlError
from .myutil import lld, llw

RevisionSpec = namedtuple("RevisionSpec", "branch commit")


class Git:
    """
    queries on the local work tree
    """

    def __init__(self, cwd=None):
        self.cwd = cwd

    def _run(self, args):
        try:
            return subprocess.run(
                ["git"] + args,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                universal_newlines=True,
            )
        except OSError as e:
            raise SourceControlError(f"cannot run git - {e}") from e

    def output(self, args):
        """
        return: stripped stdout
        exception: SourceControlError
        """
        p = self._run(args)
        if p.returncode != 0:
            raise SourceControlError(
                f"git {' '.join(args)} failed[{p.returncode}] - {p.stderr.strip()}"
            )
        return p.stdout.strip()

    def checkWorkTree(self):
        if self.output(["rev-parse", "--is-inside-work-tree"]) != "true":
            raise SourceControlError("not inside a git work tree")

    def currentBranch(self):
        return self.output(["rev-parse", "--abbrev-ref", "HEAD"])

    def commitOf(self, ref):
        """
        return: None when the ref is unknown
        """
        p = self._run(["rev-parse", "--verify", "--quiet", ref + "^{commit}"])
        if p.returncode != 0:
            return None
        return p.stdout.strip()

    def remoteCommitOf(self, url, branch):
        """
        return: the branch head in the remote repo, None when there is no such branch
        """
        out = self.output(["ls-remote", url, "refs/heads/" + branch])
        for line in out.splitlines():
            commit, _, ref = line.partition("\t")
            if ref == "refs/heads/" + branch:
                return commit
        return None

    def originUrl(self):
        return self.output(["remote", "get-url", "origin"])

    def archive(self, commit, outPath):
        self.output(["archive", "--format=tar.gz", "-o", outPath, commit])


class RevisionSelector:
    """
    branch precedence: environment override > default branch > confirmed current branch
    """

    def __init__(self, config, env, git, interactive=False, prompt=input):
        self.config = config
        self.env = env
        self.git = git
        self.interactive = interactive
        self.prompt = prompt

    def _confirm(self, current):
        if not self.interactive:
            raise ConfirmationRequired(
                f"current branch[{current}] is not the default branch[{self.config.defaultBranch}]."
                f" set {self.config.envNames.branch} or run interactively."
            )

        try:
            ss = self.prompt(f"Please enter branch ({current}): ")
        except EOFError as e:
            raise ConfirmationRequired("no answer for the branch") from e

        ss = ss.strip()
        return ss if ss != "" else current

    def branch(self):
        name = self.config.envNames.branch
        if self.env.isSet(name):
            return self.env[name]

        current = self.git.currentBranch()
        if current == self.config.defaultBranch:
            return self.config.defaultBranch

        return self._confirm(current)

    def select(self):
        self.git.checkWorkTree()
        branch = self.branch()

        if self.config.strategy == "git":
            commit = self._remoteCommit(branch)
        else:
            commit = self._localCommit(branch)

        lld(f"revision: {branch} at {commit}")
        return RevisionSpec(branch, commit)

    def _remoteCommit(self, branch):
        # targets clone repoUrl, so its branch head is what gets deployed
        commit = self.git.remoteCommitOf(self.config.repoUrl, branch)
        if commit is None:
            raise SourceControlError(f"there is no branch[{branch}] in {self.config.repoUrl}")

        local = self.git.commitOf(branch)
        if local is not None and local != commit:
            llw(f"revision: local {branch}({local[:7]}) differs from the remote({commit[:7]}), deploying the remote")
        return commit

    def _localCommit(self, branch):
        commit = self.git.commitOf(branch)
        if commit is None:
            commit = self.git.commitOf("origin/" + branch)
            if commit is not None:
                llw(f"revision: using origin/{branch}, no local branch[{branch}]")
        if commit is None:
            raise SourceControlError(f"cannot resolve the commit of branch[{branch}]")
        return commit
