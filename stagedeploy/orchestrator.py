import threading
import traceback
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

from . import tasks
from .coSsh import SshExecutor
from .errors import Error
from .executor import LocalExecutor
from .myutil import lle, lli, lls, llw
from .notifier import NullNotifier, notifyQuietly

SUCCEEDED = "succeeded"
FAILED = "failed"

TargetResult = namedtuple("TargetResult", "target status error activated")


class RunResult:
    def __init__(self, stage, revision, releaseName, results):
        self.stage = stage
        self.revision = revision
        self.releaseName = releaseName
        self.results = results

    @property
    def ok(self):
        return len(self.results) > 0 and all(it.status == SUCCEEDED for it in self.results)

    def summary(self):
        """
        return: {target name: status}, the port is kept in the name when two targets share user@host
        """
        names = [it.target.name for it in self.results]
        dic = {}
        for idx, it in enumerate(self.results):
            key = it.target.name if names.count(it.target.name) == 1 else it.target.fullName
            if key in dic:
                key = f"{key}#{idx}"
            dic[key] = it.status
        return dic


def executorCreate(target, abortEvent, timeout):
    # port 0 is local conn
    if target.port == 0:
        return LocalExecutor(target.name, abortEvent, timeout)
    return SshExecutor(target, abortEvent, timeout)


class Orchestrator:
    """
    one worker per target. a failing target doesn't stop the others.
    """

    def __init__(self, config, notifier=None, executorFactory=None, abortEvent=None):
        self.config = config
        self.notifier = notifier if notifier is not None else NullNotifier()
        self.executorFactory = executorFactory if executorFactory is not None else executorCreate
        self.abortEvent = abortEvent if abortEvent is not None else threading.Event()
        self.buildTask = tasks.BuildTask(config)
        self.restartTask = tasks.RestartTask(config)

    def abort(self):
        llw("deploy: abort requested, no more commands will be issued")
        self.abortEvent.set()

    def deployTarget(self, target, ctx, archivePath=None):
        env = self.executorFactory(target, self.abortEvent, self.config.commandTimeout)
        activated = False
        try:
            env.connect()

            tasks.checkDirectories(env, self.config, ctx)
            tasks.checkLinkedFiles(env, self.config, ctx)
            if self.config.strategy == "git":
                tasks.updateRepo(env, self.config, ctx)
            tasks.createRelease(env, self.config, ctx, archivePath)
            tasks.symlinkShared(env, self.config, ctx)

            if target.hasRole(self.config.build.role):
                self.buildTask.run(env, ctx)
            else:
                lli(f"[{env.name}]: no {self.config.build.role} role, skip buildTask")

            tasks.activate(env, self.config, ctx)
            activated = True

            self.restartTask.run(env, ctx)
            tasks.logRevision(env, self.config, ctx)
            tasks.cleanup(env, self.config, ctx)

            lls(f"[{env.name}]: release {ctx.releaseName} is current")
            return TargetResult(target, SUCCEEDED, None, activated)

        except Error as e:
            lle(f"[{env.name}]: deploy failed - {e}")
            return TargetResult(target, FAILED, e, activated)

        except Exception as e:
            lle(f"[{env.name}]: unexpected error\n{traceback.format_exc()}")
            return TargetResult(target, FAILED, e, activated)

        finally:
            env.close()

    def _collect(self, futures):
        try:
            return [f.result() for f in futures]
        except KeyboardInterrupt:
            self.abort()
            # running commands are left to finish
            return [f.result() for f in futures]

    def deploy(self, stage, targets, revision, archivePath=None, deployer="unknown", now=None):
        ctx = tasks.ReleaseContext.create(
            stage, revision, self.config.deployTo, deployer=deployer, now=now
        )
        llw(f"deploy: release {ctx.releaseName} of {revision.branch}({revision.commit[:7]}) to {len(targets)} target(s)")

        with ThreadPoolExecutor(max_workers=max(len(targets), 1)) as pool:
            futures = [pool.submit(self.deployTarget, target, ctx, archivePath) for target in targets]
            results = self._collect(futures)

        result = RunResult(stage, revision, ctx.releaseName, results)
        notifyQuietly(self.notifier, result)
        return result
