import pathlib
import shutil
from typing import Mapping

from ..log import CrossbootLogger
from ..utils.porcelain import PorcelainEntityType, PorcelainStage
from .context import StageContext
from .environ import BuildEnv, EnvironmentContext
from .errors import BootstrapError, MissingToolError, StagePreconditionError
from .fetcher import BaseFetcher
from .runner import StageRunner
from .sanity import SanityReport
from .source_cache import FETCH_LOG_NAME, FetcherFactory
from .spec import Component, ToolchainSpec
from .stages import STAGE_NAMES, STAGES, PipelineState, Stage, get_stage
from .sysroot import SysrootStager


class BootstrapPipeline:
    """Drives the bootstrap stages in their fixed order.

    The pipeline state only ever advances by one stage at a time, and only
    after that stage's action returned normally. A failing stage leaves the
    state where it was; nothing is rolled back and nothing is retried.
    """

    def __init__(
        self,
        logger: CrossbootLogger,
        spec: ToolchainSpec,
        runner: StageRunner,
        *,
        env_ctx: EnvironmentContext | None = None,
        base_env: Mapping[str, str] | None = None,
        fetcher_factory: FetcherFactory = BaseFetcher.new,
    ) -> None:
        self._logger = logger
        self.spec = spec
        self.runner = runner
        self.env_ctx = env_ctx or EnvironmentContext(spec, base_env)
        self.fetcher_factory = fetcher_factory
        self.sysroot = SysrootStager(logger, spec)

        self.state = PipelineState.PENDING
        self.sources: dict[Component, pathlib.Path] = {}
        self.completed: list[str] = []
        self.current_stage: Stage | None = None
        self.sanity_report: SanityReport | None = None

    @property
    def is_done(self) -> bool:
        return self.state == PipelineState.SANITY_VERIFIED

    def run(self) -> None:
        for stage in STAGES:
            self.run_stage(stage)

    def run_stage(self, stage: Stage | str) -> None:
        if isinstance(stage, str):
            stage = get_stage(stage)

        if self.state != stage.requires:
            raise StagePreconditionError(
                stage.name,
                stage.requires.value,
                self.state.value,
            )

        self.execute_stage(stage)
        self.state = stage.reaches
        self.completed.append(stage.name)

        self._logger.D(f"pipeline state is now {self.state.value}")
        record: PorcelainStage = {
            "ty": PorcelainEntityType.StageV1,
            "name": stage.name,
            "state": self.state.value,
            "log": str(self.runner.log_path(stage.name)),
        }
        self._logger.emit_porcelain(record)

    def execute_stage(self, stage: Stage) -> None:
        """Runs one stage without consulting the pipeline state.

        The stage still refuses to start when the cross tools it depends on
        are not on its search path.
        """

        self.current_stage = stage
        log_path = self.runner.begin(stage.name)
        self._logger.I(
            f"stage [bold]{stage.name}[/] ({stage.binding.value} tools), log at [cyan]{log_path}[/]"
        )

        build_dir = (
            self._reset_build_dir(stage) if stage.uses_build_dir else self.spec.workdir
        )

        try:
            with self.env_ctx.enter(stage.name, stage.binding) as env:
                self._check_tools(stage, env)
                ctx = StageContext(
                    name=stage.name,
                    spec=self.spec,
                    env=env,
                    runner=self.runner,
                    build_dir=build_dir,
                    sources=self.sources,
                    logger=self._logger,
                )
                stage.action(self, ctx)
        except BootstrapError as e:
            if e.stage is None:
                e.stage = stage.name
            self.runner.note(stage.name, f"stage failed: {e}")
            raise

        self.runner.note(stage.name, "stage completed")

    def _reset_build_dir(self, stage: Stage) -> pathlib.Path:
        d = self.spec.build_root / stage.name
        if d.exists():
            self._logger.D(f"wiping build directory {d}")
            shutil.rmtree(d)
        d.mkdir(parents=True)
        return d

    def _check_tools(self, stage: Stage, env: BuildEnv) -> None:
        required = stage.required_tools(self)
        missing = [t for t in required if env.which(t) is None]
        if missing:
            raise MissingToolError(stage.name, missing)

    def prune_stale_logs(self, keep: str) -> None:
        for name in (*STAGE_NAMES, FETCH_LOG_NAME):
            if name == keep:
                continue
            self.runner.log_path(name).unlink(missing_ok=True)
