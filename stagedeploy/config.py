import os
from collections.abc import Mapping

import yaml

from .coCollection import Dict2, dictMerge
from .errors import ConfigError, SourceControlError
from .myutil import envExpand, lld, strExpand

DEFAULTS = dict(
    application="rango",
    user="app",
    roles=["app"],
    repoUrl=None,
    deployTo="/home/{{user}}/{{application}}",
    keepReleases=10,
    linkedFiles=[".env"],
    linkedDirs=["log"],
    defaultBranch="main",
    commandTimeout=600,
    build=dict(
        role="app",
        manifest="go.mod",
        lockFile="go.sum",
        package="./cmd/{{application}}",
        output="{{application}}",
        versionFile=".go-version",
        goenv="user",
    ),
    dotenvHookCommands=["go"],
    systemd=dict(service="{{application}}", user=True, action="reload-or-restart"),
    slack=dict(
        enabled=True,
        channelEnv="SLACK_CHANNEL",
        webhookEnv="SLACK_WEBHOOK",
        thumbUrl=None,
        footerIcon=None,
    ),
    envNames=dict(repo="DEPLOY_REPO", useLocalRepo="USE_LOCAL_REPO", branch="BRANCH"),
    stages={},
)


class Environment(Mapping):
    """
    snapshot of the process environment, taken once per run
    """

    def __init__(self, environ=None):
        self._env = dict(os.environ if environ is None else environ)

    def __getitem__(self, key):
        return self._env[key]

    def __iter__(self):
        return iter(self._env)

    def __len__(self):
        return len(self._env)

    def __repr__(self):
        return f"Environment({len(self._env)} vars)"

    def isSet(self, name):
        return self._env.get(name, "").strip() != ""

    def require(self, name):
        if not self.isSet(name):
            raise ConfigError(f"environment variable[{name}] is not set or empty")
        return self._env[name].strip()


def expandVar(value, dic, env):
    tt = type(value)
    if tt == dict:
        return {key: expandVar(vv, dic, env) for key, vv in value.items()}
    elif tt == list:
        return [expandVar(vv, dic, env) for vv in value]
    elif tt == str:
        return strExpand(envExpand(value, env), dic)
    return value


def _checkStages(stages):
    if not isinstance(stages, dict):
        raise ConfigError("stages should be a mapping of stage name to servers")

    for name, stage in stages.items():
        if not isinstance(stage, dict):
            raise ConfigError(f"stage[{name}] should be a mapping")

        servers = stage.get("servers")
        if not isinstance(servers, list) or len(servers) == 0:
            raise ConfigError(f"stage[{name}] has no servers")

        for server in servers:
            if not isinstance(server, dict) or not server.get("hostEnv"):
                raise ConfigError(f"stage[{name}] server needs hostEnv - {server}")


class DeployConfig(Dict2):
    """
    settings of one run. read-only after loading.

    strategy: git(remote mirror of repoUrl) | local(archive of the local repo)
    """

    @classmethod
    def fromStr(cls, ss, env, originUrl=None):
        """
        originUrl: callable giving the repo url when neither the file nor the environment has it
        """
        try:
            data = yaml.safe_load(ss)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid deployment file - {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("deployment file should be a mapping")

        # `slack:` with nothing under it comes as None
        data = {k: v for k, v in data.items() if v is not None}
        data = dictMerge(DEFAULTS, data)

        data = expandVar(data, data, env)
        # second pass for values referring to expanded ones
        data = expandVar(data, data, env)

        _checkStages(data["stages"])

        if not data["deployTo"].startswith("/"):
            raise ConfigError(f"deployTo should be an absolute path[{data['deployTo']}]")

        keep = data["keepReleases"]
        if not isinstance(keep, int) or keep < 1:
            raise ConfigError(f"keepReleases should be a positive number[{keep}]")

        names = data["envNames"]
        if names["useLocalRepo"] in env:
            data["strategy"] = "local"
            data["repoUrl"] = None
        else:
            data["strategy"] = "git"
            if env.isSet(names["repo"]):
                data["repoUrl"] = env.require(names["repo"])
            elif not data["repoUrl"]:
                if originUrl is None:
                    raise ConfigError("there is no repository url")
                try:
                    data["repoUrl"] = originUrl()
                except SourceControlError as e:
                    raise ConfigError(f"cannot find the repository url - {e}") from e

        lld(f"config: {data}")
        return cls(data)

    @classmethod
    def fromFile(cls, pp, env, originUrl=None):
        if not os.path.exists(pp):
            raise ConfigError(f"there is no deployment file[{pp}]")

        with open(pp, "r") as fp:
            return cls.fromStr(fp.read(), env, originUrl=originUrl)
