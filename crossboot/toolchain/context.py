from dataclasses import dataclass
import os
import pathlib
from typing import Any, Mapping

from ..log import CrossbootLogger
from .environ import BuildEnv
from .runner import Argv, StageRunner, StepKind
from .spec import Component, ToolchainSpec


@dataclass(frozen=True)
class StageContext:
    """Everything a stage action may touch, passed in explicitly."""

    name: str
    spec: ToolchainSpec
    env: BuildEnv
    runner: StageRunner
    build_dir: pathlib.Path
    sources: Mapping[Component, pathlib.Path]
    logger: CrossbootLogger

    def source(self, c: Component) -> pathlib.Path:
        try:
            return self.sources[c]
        except KeyError:
            raise RuntimeError(f"sources of {c.value} are not available") from None

    def run(
        self,
        argv: Argv,
        *,
        cwd: str | os.PathLike[Any] | None = None,
        step: StepKind = StepKind.BUILD,
    ) -> int:
        return self.runner.run(
            self.name,
            argv,
            cwd=self.build_dir if cwd is None else cwd,
            env=self.env,
            step=step,
        )

    def capture(
        self,
        argv: Argv,
        *,
        cwd: str | os.PathLike[Any] | None = None,
    ) -> str:
        return self.runner.capture(
            self.name,
            argv,
            cwd=self.build_dir if cwd is None else cwd,
            env=self.env,
        )

    def make(
        self,
        *args: str | os.PathLike[Any],
        jobs: int | None = None,
        step: StepKind = StepKind.BUILD,
    ) -> int:
        argv: list[str | os.PathLike[Any]] = ["make"]
        if jobs is not None:
            argv.append(f"-j{jobs}")
        argv.extend(args)
        return self.run(argv, step=step)

    def note(self, message: str) -> None:
        self.runner.note(self.name, message)
