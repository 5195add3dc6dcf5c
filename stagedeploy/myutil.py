import re
import shlex
import threading
from collections.abc import Mapping

from termcolor import cprint

g_logLv = 0

# worker threads share the console
g_printLock = threading.Lock()


def logLevelSet(lv):
    global g_logLv
    g_logLv = lv


def _out(ss, color=None, attrs=None):
    with g_printLock:
        if color is None:
            print(ss, flush=True)
        else:
            cprint(ss, color, attrs=attrs, flush=True)


def lld(ss):
    if g_logLv >= 1:
        _out(ss)


def lli(ss):
    _out(ss)


def lls(ss):
    _out(ss, "green", attrs=["bold"])


def llw(ss):
    _out(ss, "magenta", attrs=["bold"])


def lle(ss):
    _out(ss, "red", attrs=["bold"])


def strExpand(ss, dic):
    """
    convert {{target}} to the item in the dic
    """
    while True:
        m = re.search(r"\{\{([\w_.]+)\}\}", ss)
        if m is None:
            return ss

        name = m.group(1)
        lst = name.split(".")

        dic2 = dic
        for item in lst:
            if isinstance(dic2, Mapping) and item in dic2:
                dic2 = dic2[item]
            else:
                llw("strExpand: no variable[%s]" % name)
                dic2 = ""
                break

        # dic can be int
        ss = ss[: m.start()] + str(dic2) + ss[m.end() :]


def envExpand(ss, env):
    """
    convert ${{NAME}} to the value in env(missing one is empty)
    """
    while True:
        m = re.search(r"\$\{\{([\w_]+)\}\}", ss)
        if m is None:
            return ss

        name = m.group(1)
        v = env.get(name, "")
        ss = ss[: m.start()] + str(v) + ss[m.end() :]


def pathQuote(pp):
    # keep ~/ working for remote shells
    if pp == "~":
        return pp
    if pp.startswith("~/"):
        return "~/" + shlex.quote(pp[2:])
    return shlex.quote(pp)


def commandLine(cmd, args=(), workdir=None, env=None):
    """
    cmd: raw shell text, args: quoted one by one
    return: one bash command line
    """
    ss = cmd
    if args:
        ss += " " + " ".join(shlex.quote(str(arg)) for arg in args)

    if env:
        exports = " ".join(f"{k}={shlex.quote(str(v))}" for k, v in env.items())
        ss = f"export {exports} && {ss}"

    if workdir is not None:
        ss = f"cd {pathQuote(workdir)} && {ss}"

    return ss


def shortCmd(cmd):
    if g_logLv == 0 and len(cmd) > 100:
        return cmd[:100] + "..."
    return cmd
