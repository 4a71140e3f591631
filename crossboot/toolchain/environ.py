from contextlib import contextmanager
import enum
import os
import shutil
import sys
from typing import Final, Iterator, Mapping

from .errors import EnvironmentLeakError
from .spec import ToolchainSpec

if sys.version_info >= (3, 11):

    class ToolBinding(enum.StrEnum):
        HOST = "host"
        CROSS = "cross"

else:

    class ToolBinding(str, enum.Enum):
        HOST = "host"
        CROSS = "cross"


# every variable that selects a compiler-toolchain executable; all of them
# are dropped before a stage's own binding is applied
TOOLCHAIN_VARS: Final = ("CC", "CXX", "AR", "AS", "RANLIB", "LD", "CC_FOR_BUILD")

FIXED_LOCALE: Final = "C"
FILE_CREATION_MASK: Final = 0o022


class BuildEnv(Mapping[str, str]):
    """A read-only environment for the external commands of one stage."""

    def __init__(self, data: Mapping[str, str], binding: ToolBinding) -> None:
        self._data = dict(data)
        self.binding = binding

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"BuildEnv({self.binding.value}, PATH={self._data.get('PATH')!r})"

    @property
    def search_path(self) -> str:
        return self._data.get("PATH", "")

    def which(self, cmd: str) -> str | None:
        return shutil.which(cmd, path=self.search_path)


def binding_vars(spec: ToolchainSpec, binding: ToolBinding) -> dict[str, str]:
    match binding:
        case ToolBinding.HOST:
            return {
                "CC": spec.host_cc,
                "CXX": spec.host_cxx,
                "CC_FOR_BUILD": spec.host_cc,
            }
        case ToolBinding.CROSS:
            return {
                "CC": spec.tool("gcc"),
                "CXX": spec.tool("g++"),
                "AR": spec.tool("ar"),
                "RANLIB": spec.tool("ranlib"),
                "LD": spec.tool("ld"),
            }


class EnvironmentContext:
    """Hands out per-stage build environments.

    Environments are always derived from the snapshot of the base
    environment taken at construction, never from a previous stage's, so
    a cross binding cannot survive into a later stage. The process
    environment itself is never modified; only the file-creation mask is
    process-global, and it is restored when the scope is left.
    """

    def __init__(
        self,
        spec: ToolchainSpec,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._spec = spec
        self._base = dict(os.environ if base_env is None else base_env)
        self._active: list[tuple[str, ToolBinding]] = []

    @property
    def current_binding(self) -> ToolBinding:
        return self._active[-1][1] if self._active else ToolBinding.HOST

    def build_env(self, binding: ToolBinding) -> BuildEnv:
        env = {k: v for k, v in self._base.items() if k not in TOOLCHAIN_VARS}

        bindir = str(self._spec.bin_dir)
        if path := self._base.get("PATH"):
            env["PATH"] = os.pathsep.join((bindir, path))
        else:
            env["PATH"] = bindir

        env["LC_ALL"] = FIXED_LOCALE
        env.update(binding_vars(self._spec, binding))
        return BuildEnv(env, binding)

    @contextmanager
    def enter(self, stage: str, binding: ToolBinding) -> Iterator[BuildEnv]:
        if binding == ToolBinding.HOST and self.current_binding == ToolBinding.CROSS:
            raise EnvironmentLeakError(stage, self._active[-1][0])

        env = self.build_env(binding)
        old_mask = os.umask(FILE_CREATION_MASK)
        self._active.append((stage, binding))
        try:
            yield env
        finally:
            self._active.pop()
            os.umask(old_mask)
