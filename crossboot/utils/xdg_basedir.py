# Only the XDG Base Directory Specification semantics needed for locating
# config files are implemented here.

import os
import pathlib
from typing import Iterable, Mapping, NamedTuple


class XDGPathEntry(NamedTuple):
    path: pathlib.Path
    is_global: bool


def _paths_from_env(
    env: Mapping[str, str],
    key: str,
    default: str,
) -> Iterable[pathlib.Path]:
    v = env.get(key) or default
    for p in v.split(":"):
        if p:
            yield pathlib.Path(p)


class XDGBaseDir:
    def __init__(self, app_name: str, env: Mapping[str, str] | None = None) -> None:
        self.app_name = app_name
        self._env = os.environ if env is None else env

    @property
    def config_home(self) -> pathlib.Path:
        v = self._env.get("XDG_CONFIG_HOME", "")
        return pathlib.Path(v) if v else pathlib.Path.home() / ".config"

    @property
    def config_dirs(self) -> Iterable[XDGPathEntry]:
        # from highest precedence to lowest
        for p in _paths_from_env(self._env, "XDG_CONFIG_DIRS", "/etc/xdg"):
            yield XDGPathEntry(p, True)

    # derived info

    @property
    def app_config(self) -> pathlib.Path:
        return self.config_home / self.app_name

    @property
    def app_config_dirs(self) -> Iterable[XDGPathEntry]:
        # from highest precedence to lowest
        yield XDGPathEntry(self.app_config, False)
        for e in self.config_dirs:
            yield XDGPathEntry(e.path / self.app_name, e.is_global)
