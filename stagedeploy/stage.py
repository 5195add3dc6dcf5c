from collections import namedtuple

from .errors import ConfigError
from .myutil import lld


class Target(namedtuple("Target", "host user roles port forwardAgent keyFile")):
    """
    one (host, user, roles) destination of a run
    port 0 means the local machine
    """

    __slots__ = ()

    @property
    def name(self):
        if self.port in (22, 0):
            return f"{self.user}@{self.host}"
        return f"{self.user}@{self.host}:{self.port}"

    @property
    def fullName(self):
        return f"{self.user}@{self.host}:{self.port}"

    def hasRole(self, role):
        return role in self.roles


Stage = namedtuple("Stage", "name servers publicUrl buildDomain")


class StageResolver:
    """
    stage name -> targets
    hosts come from the environment snapshot given here, nothing is cached
    """

    def __init__(self, config, env):
        self.config = config
        self.env = env

    def stageNames(self):
        return sorted(self.config.stages)

    def stage(self, name):
        if name not in self.config.stages:
            names = "|".join(self.stageNames())
            raise ConfigError(f"There is no stage[{name}] in {names}")

        st = self.config.stages[name]
        return Stage(
            name=name,
            servers=st.servers,
            publicUrl=st.get("publicUrl"),
            buildDomain=st.get("buildDomain"),
        )

    def resolve(self, name):
        stage = self.stage(name)

        targets = []
        for server in stage.servers:
            host = self.env.require(server.hostEnv)
            target = Target(
                host=host,
                user=server.get("user", self.config.user),
                roles=tuple(server.get("roles", self.config.roles)),
                port=server.get("port", 22),
                forwardAgent=server.get("forwardAgent", False),
                keyFile=server.get("keyFile"),
            )
            lld(f"stage[{name}]: target - {target}")
            targets.append(target)

        return targets
