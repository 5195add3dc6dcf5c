from copy import deepcopy
from collections.abc import Mapping


# https://gist.github.com/angstwad/bf22d1822c38a92ec0a9
def dictMerge(dic, dic2):
    """
    dic2 wins. inputs are not modified.
    """
    newDic = {}

    for k, v in dic.items():
        if k not in dic2:
            newDic[k] = deepcopy(v)

    for k, v in dic2.items():
        if k in dic and isinstance(dic[k], Mapping) and isinstance(v, Mapping):
            newDic[k] = dictMerge(dic[k], v)
        else:
            newDic[k] = deepcopy(v)

    return newDic


def _freeze(value):
    if isinstance(value, Dict2):
        return value
    if isinstance(value, Mapping):
        return Dict2(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(vv) for vv in value)
    return value


def _thaw(value):
    if isinstance(value, Dict2):
        return value.toDict()
    if isinstance(value, tuple):
        return [_thaw(vv) for vv in value]
    return value


class Dict2(Mapping):
    """
    read-only view of nested settings
    dic["attr"] -> dic.attr
    dic.get("build.package")
    """

    def __init__(self, dic=None):
        items = {}
        if dic is not None:
            for key, value in dic.items():
                items[key] = _freeze(value)
        object.__setattr__(self, "dic", items)

    def __getattr__(self, name):
        dic = self.__dict__.get("dic")
        if dic is not None and name in dic:
            return dic[name]
        raise AttributeError(name)

    def __setattr__(self, name, value):
        raise AttributeError(f"settings are read-only[{name}]")

    def __delattr__(self, name):
        raise AttributeError(f"settings are read-only[{name}]")

    def __repr__(self):
        return str(self.dic)

    def __getitem__(self, key):
        return self.dic[key]

    def __iter__(self):
        return iter(self.dic)

    def __len__(self):
        return len(self.dic)

    def __contains__(self, key):
        return key in self.dic

    def __hash__(self):
        return id(self)

    def __eq__(self, other):
        if isinstance(other, Dict2):
            return self.dic == other.dic
        return NotImplemented

    def get(self, name, default=None):
        lst = name.split(".")
        dic = self.dic
        for item in lst:
            if not isinstance(dic, Mapping) or item not in dic:
                return default
            dic = dic[item]

        return dic

    def toDict(self):
        return {key: _thaw(value) for key, value in self.dic.items()}
