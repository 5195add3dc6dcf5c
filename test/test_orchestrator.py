import datetime
import threading
import unittest

from stagedeploy.errors import DeployAborted, RemoteExecutionError
from stagedeploy.executor import CommandResult
from stagedeploy.notifier import Notifier
from stagedeploy.orchestrator import FAILED, SUCCEEDED, Orchestrator, RunResult, TargetResult, executorCreate
from stagedeploy.revision import RevisionSpec
from stagedeploy.stage import Stage, Target
from stagedeploy.executor import LocalExecutor
from stagedeploy.coSsh import SshExecutor

from fakeExecutor import FakeExecutor, configMake

COMMIT = "0123456789abcdef0123456789abcdef01234567"
NOW = datetime.datetime(2024, 1, 2, 3, 4, 5)


def targetMake(host, roles=("app",)):
    return Target(host, "app", roles, 22, False, None)


class RecordNotifier(Notifier):
    def __init__(self, exc=None):
        self.results = []
        self.exc = exc

    def notify(self, result):
        self.results.append(result)
        if self.exc is not None:
            raise self.exc


class OrchestratorTest(unittest.TestCase):
    def setUp(self):
        self.config = configMake()
        self.stage = Stage("production", (), None, None)
        self.revision = RevisionSpec("main", COMMIT)
        self.executors = {}
        self.rules = {}
        self.lock = threading.Lock()

    def factory(self, target, abortEvent, timeout):
        env = FakeExecutor(target.host, abortEvent, timeout, rules=self.rules.get(target.host))
        env.on(r"cat \.go-version", CommandResult(0, "1.17\n"))
        with self.lock:
            self.executors[target.host] = env
        return env

    def orchestrator(self, notifier=None, abortEvent=None):
        return Orchestrator(
            self.config, notifier=notifier, executorFactory=self.factory, abortEvent=abortEvent
        )

    def test_success(self):
        notifier = RecordNotifier()
        result = self.orchestrator(notifier).deploy(
            self.stage, [targetMake("host1")], self.revision, now=NOW
        )
        self.assertTrue(result.ok)
        self.assertEqual(result.summary(), {"app@host1": SUCCEEDED})
        self.assertEqual(result.releaseName, "20240102030405")
        self.assertEqual(notifier.results, [result])

        env = self.executors["host1"]
        self.assertTrue(env.connected and env.closed)
        build = env.ran("go build")[0]
        swap = env.ran("mv -T")[0]
        restart = env.ran("systemctl")[0]
        self.assertLess(env.lines.index(build), env.lines.index(swap))
        self.assertLess(env.lines.index(swap), env.lines.index(restart))
        self.assertEqual(result.results[0].activated, True)

    def test_failureIsolated(self):
        self.rules["hostA"] = [(r"go build", CommandResult(2, "undefined: foo"))]
        result = self.orchestrator().deploy(
            self.stage, [targetMake("hostA"), targetMake("hostB")], self.revision, now=NOW
        )
        self.assertFalse(result.ok)
        self.assertEqual(result.summary(), {"app@hostA": FAILED, "app@hostB": SUCCEEDED})

        failed = result.results[0]
        self.assertIsInstance(failed.error, RemoteExecutionError)
        self.assertFalse(failed.activated)
        self.assertEqual(self.executors["hostA"].ran("mv -T"), [])
        self.assertEqual(self.executors["hostA"].ran("systemctl"), [])
        self.assertEqual(len(self.executors["hostB"].ran("mv -T")), 1)

    def test_timeoutIsFailure(self):
        from stagedeploy.errors import RemoteTimeout

        self.rules["hostA"] = [(r"mod download", RemoteTimeout("go mod download", 600))]
        result = self.orchestrator().deploy(self.stage, [targetMake("hostA")], self.revision, now=NOW)
        self.assertEqual(result.summary(), {"app@hostA": FAILED})
        self.assertIsInstance(result.results[0].error, RemoteTimeout)
        self.assertEqual(self.executors["hostA"].ran("mv -T"), [])

    def test_connectFailure(self):
        class Broken(FakeExecutor):
            def connect(self):
                raise RemoteExecutionError("ssh app@hostA:22", reason="refused")

        def factory(target, abortEvent, timeout):
            return Broken(target.host, abortEvent, timeout)

        orch = Orchestrator(self.config, executorFactory=factory)
        result = orch.deploy(self.stage, [targetMake("hostA")], self.revision, now=NOW)
        self.assertFalse(result.ok)
        self.assertIn("refused", str(result.results[0].error))

    def test_buildRole(self):
        result = self.orchestrator().deploy(
            self.stage, [targetMake("db1", roles=("db",))], self.revision, now=NOW
        )
        self.assertTrue(result.ok)
        self.assertEqual(self.executors["db1"].ran("go build"), [])

    def test_notifyFailureSwallowed(self):
        notifier = RecordNotifier(exc=RuntimeError("slack is down"))
        result = self.orchestrator(notifier).deploy(
            self.stage, [targetMake("host1")], self.revision, now=NOW
        )
        self.assertTrue(result.ok)
        self.assertEqual(len(notifier.results), 1)

    def test_aborted(self):
        ev = threading.Event()
        ev.set()
        notifier = RecordNotifier()
        result = self.orchestrator(notifier, abortEvent=ev).deploy(
            self.stage, [targetMake("host1")], self.revision, now=NOW
        )
        self.assertFalse(result.ok)
        self.assertEqual(self.executors["host1"].lines, [])
        self.assertFalse(result.results[0].activated)
        self.assertEqual(len(notifier.results), 1)

    def test_abortMidTarget(self):
        def interrupt(line):
            self.executors["host1"].abortEvent.set()
            return CommandResult(0, "")

        self.rules["host1"] = [(r"mod download", interrupt)]
        result = self.orchestrator().deploy(self.stage, [targetMake("host1")], self.revision, now=NOW)
        self.assertFalse(result.ok)

        res = result.results[0]
        self.assertIsInstance(res.error, DeployAborted)
        self.assertFalse(res.activated)
        env = self.executors["host1"]
        self.assertTrue(env.lines[-1].endswith("go mod download"))
        self.assertEqual(env.ran("go build"), [])
        self.assertEqual(env.ran("mv -T"), [])
        self.assertTrue(env.closed)

    def test_collectInterrupted(self):
        class Future:
            def __init__(self, value, interrupt=False):
                self.value = value
                self.interrupt = interrupt

            def result(self):
                if self.interrupt:
                    self.interrupt = False
                    raise KeyboardInterrupt()
                return self.value

        orch = self.orchestrator()
        results = orch._collect([Future("a", interrupt=True), Future("b")])
        self.assertEqual(results, ["a", "b"])
        self.assertTrue(orch.abortEvent.is_set())

    def test_summarySharedHost(self):
        ssh = Target("h", "app", ("app",), 22, False, None)
        local = Target("h", "app", ("app",), 0, False, None)
        result = RunResult(
            self.stage,
            self.revision,
            "20240102030405",
            [TargetResult(ssh, FAILED, None, False), TargetResult(local, SUCCEEDED, None, True)],
        )
        self.assertEqual(result.summary(), {"app@h:22": FAILED, "app@h:0": SUCCEEDED})

        twice = RunResult(self.stage, self.revision, "x", [TargetResult(ssh, FAILED, None, False)] * 2)
        self.assertEqual(twice.summary(), {"app@h:22": FAILED, "app@h:22#1": FAILED})

    def test_noTargets(self):
        result = self.orchestrator().deploy(self.stage, [], self.revision, now=NOW)
        self.assertFalse(result.ok)

    def test_executorCreate(self):
        local = executorCreate(Target("localhost", "app", ("app",), 0, False, None), None, 5)
        self.assertIsInstance(local, LocalExecutor)
        remote = executorCreate(targetMake("host1"), None, 5)
        self.assertIsInstance(remote, SshExecutor)
        self.assertEqual(remote.name, "host1:22")


if __name__ == "__main__":
    unittest.main()
