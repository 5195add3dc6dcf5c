import datetime
import posixpath
import re
import shlex
from collections import namedtuple

from .errors import RemoteExecutionError
from .myutil import lld, llw

RELEASE_NAME_RE = re.compile(r"^\d{14}$")


class ReleaseContext(
    namedtuple("ReleaseContext", "stage revision releaseName deployTo deployer")
):
    """
    state of one run. shared read-only by all targets, never persisted
    """

    __slots__ = ()

    @classmethod
    def create(cls, stage, revision, deployTo, deployer="unknown", now=None):
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        return cls(stage, revision, now.strftime("%Y%m%d%H%M%S"), deployTo, deployer)

    @property
    def releasesPath(self):
        return posixpath.join(self.deployTo, "releases")

    @property
    def releasePath(self):
        return posixpath.join(self.deployTo, "releases", self.releaseName)

    @property
    def sharedPath(self):
        return posixpath.join(self.deployTo, "shared")

    @property
    def repoPath(self):
        return posixpath.join(self.deployTo, "repo")

    @property
    def currentPath(self):
        return posixpath.join(self.deployTo, "current")


def checkDirectories(env, config, ctx):
    dirs = [ctx.releasesPath, ctx.sharedPath]
    dirs += [posixpath.join(ctx.sharedPath, pp) for pp in config.linkedDirs]
    for pp in config.linkedFiles:
        parent = posixpath.dirname(posixpath.join(ctx.sharedPath, pp))
        if parent not in dirs:
            dirs.append(parent)

    env.check("mkdir -p", dirs)


def checkLinkedFiles(env, config, ctx):
    for pp in config.linkedFiles:
        path = posixpath.join(ctx.sharedPath, pp)
        if not env.test("test -f", [path]):
            raise RemoteExecutionError(
                f"test -f {path}", 1, reason=f"linked file[{path}] does not exist"
            )


def updateRepo(env, config, ctx):
    if env.test("test -f", [posixpath.join(ctx.repoPath, "HEAD")]):
        env.check("git remote set-url origin", [config.repoUrl], workdir=ctx.repoPath)
        env.check("git remote update --prune", workdir=ctx.repoPath)
    else:
        env.check("git clone --mirror", [config.repoUrl, ctx.repoPath])


def createRelease(env, config, ctx, archivePath=None):
    """
    archivePath: local tar.gz of the commit for the local strategy
    """
    rel = shlex.quote(ctx.releasePath)
    commit = ctx.revision.commit

    env.check("mkdir -p", [ctx.releasePath])
    if config.strategy == "local":
        tmp = f"/tmp/stagedeploy-{ctx.releaseName}.tar.gz"
        env.upload(archivePath, tmp)
        env.check(f"tar -xzf {tmp} -C {rel} && rm -f {tmp}")
    else:
        env.check(
            f"git archive {shlex.quote(commit)} | tar -x -f - -C {rel}",
            workdir=ctx.repoPath,
        )

    env.check(f"echo {shlex.quote(commit)} > REVISION", workdir=ctx.releasePath)


def symlinkShared(env, config, ctx):
    for pp in list(config.linkedDirs) + list(config.linkedFiles):
        src = shlex.quote(posixpath.join(ctx.sharedPath, pp))
        target = posixpath.join(ctx.releasePath, pp)
        parent = shlex.quote(posixpath.dirname(target))
        target = shlex.quote(target)
        lld(f"symlinkShared: {pp}")
        env.check(f"mkdir -p {parent} && rm -rf {target} && ln -s {src} {target}")


def activate(env, config, ctx):
    """
    swap current in one rename so it never points to a half release
    """
    tmp = shlex.quote(posixpath.join(ctx.releasesPath, "current"))
    rel = shlex.quote(ctx.releasePath)
    cur = shlex.quote(ctx.currentPath)
    env.check(f"rm -f {tmp} && ln -s {rel} {tmp} && mv -T {tmp} {cur}")


def logRevision(env, config, ctx):
    rev = ctx.revision
    line = (
        f"Branch {rev.branch} (at {rev.commit}) deployed as release"
        f" {ctx.releaseName} by {ctx.deployer}"
    )
    path = shlex.quote(posixpath.join(ctx.deployTo, "revisions.log"))
    env.check(f"echo {shlex.quote(line)} >> {path}")


def cleanup(env, config, ctx):
    res = env.check("ls -1", [ctx.releasesPath])
    releases = sorted(x for x in res.output.split() if RELEASE_NAME_RE.match(x))

    res = env.run("readlink", [ctx.currentPath])
    active = posixpath.basename(res.output.strip()) if res.exitCode == 0 else None

    cnt = len(releases)
    keep = config.keepReleases
    if cnt <= keep:
        lld(f"cleanup: releases folders count is {cnt}")
        return []

    removeList = [x for x in releases[: cnt - keep] if x != active]
    if len(removeList) == 0:
        return []

    llw(f"cleanup: remove old {len(removeList)} folders")
    env.check("rm -rf", [posixpath.join(ctx.releasesPath, x) for x in removeList])
    return removeList


class BuildTask:
    """
    cp manifest lock -> go mod download -> go build, in the release folder.
    the first failing step stops the task
    """

    def __init__(self, config):
        self.config = config
        self.build = config.build

    def toolchainVersion(self, env, ctx):
        res = env.check("cat", [self.build.versionFile], workdir=ctx.releasePath)
        return res.output.strip()

    def goCommand(self, version):
        """
        return: (command, environment)
        """
        goenv = self.build.goenv
        if goenv == "user":
            return "~/.goenv/bin/goenv exec go", dict(GOENV_VERSION=version)
        elif goenv == "system":
            return "goenv exec go", dict(GOENV_VERSION=version)
        return "go", {}

    def _dotenv(self, cmd):
        if "go" not in self.config.dotenvHookCommands:
            return cmd
        return f"set -a && {{ [ ! -f .env ] || . ./.env; }} && set +a && {cmd}"

    def run(self, env, ctx):
        llw(f"[{env.name}]: buildTask: building the app")
        rel = ctx.releasePath

        env.check("cp", [self.build.manifest, self.build.lockFile], workdir=rel)

        version = None
        if self.build.goenv in ("user", "system"):
            version = self.toolchainVersion(env, ctx)
        go, goEnv = self.goCommand(version)

        env.check(self._dotenv(f"{go} mod download"), workdir=rel, env=goEnv)

        output = posixpath.join(rel, self.build.output)
        env.check(
            self._dotenv(f"{go} build -o {shlex.quote(output)} {shlex.quote(self.build.package)}"),
            workdir=rel,
            env=goEnv,
        )
        return output


class RestartTask:
    def __init__(self, config):
        self.systemd = config.systemd

    def command(self):
        scope = "--user " if self.systemd.user else ""
        return f"systemctl {scope}{self.systemd.action}"

    def run(self, env, ctx):
        llw(f"[{env.name}]: restart {self.systemd.service}")
        env.check(self.command(), [self.systemd.service])
