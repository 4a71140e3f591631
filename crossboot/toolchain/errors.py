import os
from typing import Any, Sequence


class BootstrapError(Exception):
    """Base class of every fatal pipeline condition."""

    stage: str | None = None


class FetchError(BootstrapError):
    def __init__(self, dest: str | os.PathLike[Any], reason: str) -> None:
        super().__init__()
        self.dest = dest
        self.reason = reason

    def __str__(self) -> str:
        return f"failed to fetch '{self.dest}': {self.reason}"

    def __repr__(self) -> str:
        return f"FetchError({self.dest!r}, {self.reason!r})"


class ExtractError(BootstrapError):
    def __init__(self, archive: str | os.PathLike[Any], reason: str) -> None:
        super().__init__()
        self.archive = archive
        self.reason = reason

    def __str__(self) -> str:
        return f"failed to extract '{self.archive}': {self.reason}"

    def __repr__(self) -> str:
        return f"ExtractError({self.archive!r}, {self.reason!r})"


class StageFailedError(BootstrapError):
    step_desc = "command"

    def __init__(
        self,
        stage: str,
        argv: Sequence[str],
        returncode: int,
        log_path: str | os.PathLike[Any] | None = None,
    ) -> None:
        super().__init__()
        self.stage = stage
        self.argv = list(argv)
        self.returncode = returncode
        self.log_path = log_path

    def __str__(self) -> str:
        return f"{self.step_desc} '{' '.join(self.argv)}' failed in stage {self.stage} with exit code {self.returncode}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.stage!r}, {self.argv!r}, {self.returncode!r})"


class ConfigureError(StageFailedError):
    step_desc = "configure step"


class BuildError(StageFailedError):
    step_desc = "build step"


class InstallError(StageFailedError):
    step_desc = "install step"


class MissingToolError(BootstrapError):
    def __init__(self, stage: str, tools: Sequence[str]) -> None:
        super().__init__()
        self.stage = stage
        self.tools = list(tools)

    def __str__(self) -> str:
        return f"stage {self.stage} requires {', '.join(self.tools)} on the search path, but these were not found"

    def __repr__(self) -> str:
        return f"MissingToolError({self.stage!r}, {self.tools!r})"


class StagePreconditionError(BootstrapError):
    def __init__(self, stage: str, required: str, current: str) -> None:
        super().__init__()
        self.stage = stage
        self.required = required
        self.current = current

    def __str__(self) -> str:
        return f"stage {self.stage} requires pipeline state {self.required}, but the pipeline is at {self.current}"

    def __repr__(self) -> str:
        return f"StagePreconditionError({self.stage!r}, {self.required!r}, {self.current!r})"


class EnvironmentLeakError(BootstrapError):
    def __init__(self, stage: str, leaked: str) -> None:
        super().__init__()
        self.stage = stage
        self.leaked = leaked

    def __str__(self) -> str:
        return f"stage {self.stage} needs host-native tools but the cross tools bound by stage {self.leaked} are still active"

    def __repr__(self) -> str:
        return f"EnvironmentLeakError({self.stage!r}, {self.leaked!r})"


class SysrootStateError(BootstrapError):
    def __init__(self, sysroot: str | os.PathLike[Any], reason: str) -> None:
        super().__init__()
        self.sysroot = sysroot
        self.reason = reason

    def __str__(self) -> str:
        return f"sysroot {self.sysroot}: {self.reason}"

    def __repr__(self) -> str:
        return f"SysrootStateError({self.sysroot!r}, {self.reason!r})"


class SanityError(BootstrapError):
    stage = "sanity"

    def __init__(self, reason: str) -> None:
        super().__init__()
        self.reason = reason

    def __str__(self) -> str:
        return f"sanity check of the produced toolchain failed: {self.reason}"

    def __repr__(self) -> str:
        return f"SanityError({self.reason!r})"
