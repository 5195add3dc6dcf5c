#!/usr/bin/env python3

import os
import sys
import tempfile

from termcolor import cprint

from . import __version__
from .config import DeployConfig, Environment
from .errors import Error
from .myutil import lle, lli, lls, llw, logLevelSet
from .notifier import notifierCreate
from .orchestrator import SUCCEEDED, Orchestrator
from .revision import Git, RevisionSelector
from .sampleFiles import sampleDeploy
from .stage import StageResolver


def help(target=None):
    print(f"stagedeploy V{__version__}")
    print(
        """\
Usage.
stagedeploy init - Generates deploy.yml file.
stagedeploy STAGE [deploy] - Deploy the current revision to the stage.
stagedeploy STAGE check - Shows targets and revision without deploying.

Options.
  -v                  verbose log
  -n, --non-interactive
                      never ask, a non default branch needs BRANCH then
  --config=FILE       deployment file(default: deploy.yml)
"""
    )
    if target is not None:
        print(f"\nThere is no {target} file.")


class MyArgv:
    def __init__(self, argv):
        self.configName = "deploy.yml"
        self.stageName = ""
        self.opts = []  # -v, -n
        self.cmd = ""  # help, init | deploy, check

        rest = []
        for arg in argv:
            if arg.startswith("--config="):
                self.configName = arg[len("--config=") :]
            elif arg.startswith("-"):
                self.opts.append(arg)
            else:
                rest.append(arg)

        if "--help" in self.opts or "-h" in self.opts:
            self.cmd = "help"
            return

        if len(rest) == 0:
            raise Error("missing stage name. stagedeploy STAGE [deploy|check]")

        if rest[0] in ["help", "init"]:
            self.cmd = rest[0]
            return

        self.stageName = rest[0]
        self.cmd = rest[1] if len(rest) > 1 else "deploy"
        if self.cmd not in ["deploy", "check"]:
            raise Error(f"Invalid command[{self.cmd}]")

        if len(rest) > 2:
            raise Error(f"too many arguments - {rest[2:]}")

    @property
    def verbose(self):
        return "-v" in self.opts

    @property
    def nonInteractive(self):
        return "-n" in self.opts or "--non-interactive" in self.opts


def initSample(fn):
    if os.path.exists(fn):
        lle(f"init: {fn} already exists.")
        return 1

    with open(fn, "w") as fp:
        fp.write(sampleDeploy)

    llw(f"init: {fn} file generated. You should modify that file for your environment before deployment.")
    return 0


def printSummary(result):
    lli("\n** summary")
    for it in result.results:
        ss = f"  {it.target.name}: {it.status}"
        if it.error is not None:
            ss += f" - {it.error}"
        if it.status == SUCCEEDED:
            lls(ss)
        else:
            lle(ss)


def mainDo(argv, environ=None, cwd=None, interactive=None):
    """
    return: exit code
    """
    ma = MyArgv(argv)
    if ma.cmd == "help":
        help()
        return 0

    if ma.verbose:
        logLevelSet(1)

    if ma.cmd == "init":
        return initSample(ma.configName)

    env = Environment(environ)
    git = Git(cwd)
    if interactive is None:
        interactive = not ma.nonInteractive and sys.stdin.isatty()

    cprint(f"stagedeploy V{__version__}", "green")
    config = DeployConfig.fromFile(ma.configName, env, originUrl=git.originUrl)

    resolver = StageResolver(config, env)
    stage = resolver.stage(ma.stageName)
    targets = resolver.resolve(ma.stageName)

    revision = RevisionSelector(config, env, git, interactive=interactive).select()

    lli(f"** stage[{stage.name}] strategy[{config.strategy}] deployTo[{config.deployTo}]")
    lli(f"** revision[{revision.branch} at {revision.commit}]")
    for target in targets:
        lli(f"  target {target.name} roles:{','.join(target.roles)}")

    if ma.cmd == "check":
        return 0

    orchestrator = Orchestrator(config, notifier=notifierCreate(config, env))
    deployer = env.get("USER", "unknown")

    if config.strategy == "local":
        with tempfile.TemporaryDirectory() as tmp:
            archivePath = os.path.join(tmp, "release.tar.gz")
            git.archive(revision.commit, archivePath)
            result = orchestrator.deploy(stage, targets, revision, archivePath, deployer=deployer)
    else:
        result = orchestrator.deploy(stage, targets, revision, deployer=deployer)

    printSummary(result)
    return 0 if result.ok else 1


def main():
    try:
        code = mainDo(sys.argv[1:])
    except Error as e:
        lle(f"\n{e}")
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
