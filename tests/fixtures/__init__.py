from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
import io
import os
import pathlib
from typing import Any, Callable, Mapping, TextIO

import pytest

from crossboot.cli.main import main as crossboot_main
from crossboot.config import GlobalConfig
from crossboot.log import CrossbootConsoleLogger, CrossbootLogger
from crossboot.toolchain.environ import EnvironmentContext
from crossboot.toolchain.fetcher import BaseFetcher
from crossboot.toolchain.pipeline import BootstrapPipeline
from crossboot.toolchain.runner import StageRunner
from crossboot.toolchain.spec import (
    ComponentVersions,
    Mirrors,
    ToolchainSpec,
)
from crossboot.utils.global_mode import EnvGlobalModeProvider, GlobalModeProvider

TEST_TARGET = "aarch64-linux-gnu"
TEST_HOST_TRIPLET = "x86_64-linux-gnu"
TEST_BUILD_TRIPLET = "x86_64-pc-linux-gnu"
GOOD_FILE_OUTPUT = "ELF 64-bit LSB executable, ARM aarch64, version 1 (SYSV), dynamically linked, interpreter /lib/ld-linux-aarch64.so.1, with debug_info, not stripped"

LIMITS_FRAGMENTS = {
    "gcc/limitx.h": b"/* limitx */\n#ifndef _GCC_LIMITS_H_\n",
    "gcc/glimits.h": b"#define _GCC_LIMITS_H_\n#define CHAR_BIT 8\n",
    "gcc/limity.h": b"#endif /* limity */\n",
}


class MockGlobalModeProvider(GlobalModeProvider):
    def __init__(
        self,
        is_debug: bool = False,
        is_porcelain: bool = False,
    ) -> None:
        self._is_debug = is_debug
        self._is_porcelain = is_porcelain

    @property
    def argv0(self) -> str:
        return "crossboot"

    @property
    def is_debug(self) -> bool:
        return self._is_debug

    @property
    def is_porcelain(self) -> bool:
        return self._is_porcelain

    @is_porcelain.setter
    def is_porcelain(self, v: bool) -> None:
        self._is_porcelain = v


@pytest.fixture
def mock_gm() -> MockGlobalModeProvider:
    return MockGlobalModeProvider()


@pytest.fixture
def crossboot_logger(mock_gm: GlobalModeProvider) -> CrossbootLogger:
    """Fixture for creating a CrossbootLogger instance."""
    return CrossbootConsoleLogger(mock_gm, stdout=io.StringIO(), stderr=io.StringIO())


def make_test_spec(root: pathlib.Path, **kwargs: Any) -> ToolchainSpec:
    prefix = root / "opt" / "cross"
    args: dict[str, Any] = {
        "versions": ComponentVersions(
            gcc="14.2.0",
            binutils="2.44",
            glibc="2.41",
            linux="6.1.21",
        ),
        "target": TEST_TARGET,
        "prefix": prefix,
        "sysroot": prefix / f"{TEST_TARGET}-sysroot",
        "workdir": root / "work",
        "mirrors": Mirrors(
            gnu="https://mirror.example.invalid/gnu",
            kernel="https://kernel.example.invalid/pub/linux/kernel",
        ),
        "jobs": 4,
    }
    args.update(kwargs)
    return ToolchainSpec(**args)


@pytest.fixture
def toolchain_spec(tmp_path: pathlib.Path) -> ToolchainSpec:
    return make_test_spec(tmp_path)


def populate_sources(spec: ToolchainSpec) -> None:
    """Pretends that every source archive has been fetched and extracted."""

    spec.src_dir.mkdir(parents=True, exist_ok=True)
    for a in spec.artifacts():
        (spec.src_dir / a.archive_name).touch()
        (spec.src_dir / a.extracted_dir).mkdir(exist_ok=True)

    gcc_src = spec.src_dir / f"gcc-{spec.versions.gcc}"
    for rel, content in LIMITS_FRAGMENTS.items():
        p = gcc_src / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(content)


def make_fake_tool(path: pathlib.Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o755)


@dataclass
class CommandRecord:
    stage: str
    argv: list[str]
    cwd: str | None
    env: dict[str, str]
    is_query: bool = False


FailurePredicate = Callable[[str, list[str]], bool]


class FakeStageRunner(StageRunner):
    """A StageRunner that never spawns anything.

    Every command is recorded, and the side effects the real build tools
    would have on later stages (installed tools, built startfiles, the
    compiled probe binary) are simulated in the filesystem.
    """

    def __init__(
        self,
        logger: CrossbootLogger,
        spec: ToolchainSpec,
        *,
        fail_when: FailurePredicate | None = None,
        file_output: str = GOOD_FILE_OUTPUT,
        echo: TextIO | None = None,
    ) -> None:
        super().__init__(logger, spec.logs_dir, echo=echo)
        self.spec = spec
        self.fail_when = fail_when
        self.file_output = file_output
        self.commands: list[CommandRecord] = []

    def stages_seen(self) -> list[str]:
        result: list[str] = []
        for c in self.commands:
            if c.stage not in result:
                result.append(c.stage)
        return result

    def commands_of(self, stage: str) -> list[list[str]]:
        return [c.argv for c in self.commands if c.stage == stage]

    def _spawn(
        self,
        stage: str,
        argv: list[str],
        cwd: str | os.PathLike[Any] | None,
        env: Mapping[str, str],
        log_fp: TextIO,
    ) -> int:
        self.commands.append(CommandRecord(stage, argv, _str_or_none(cwd), dict(env)))
        if self.fail_when is not None and self.fail_when(stage, argv):
            log_fp.write("simulated failure\n")
            return 2

        log_fp.write(f"simulated: {argv[0]}\n")
        self._simulate(stage, argv, cwd)
        return 0

    def _simulate(
        self,
        stage: str,
        argv: list[str],
        cwd: str | os.PathLike[Any] | None,
    ) -> None:
        spec = self.spec
        bindir = spec.bin_dir
        is_make = argv[0] == "make"

        if stage == "binutils" and is_make and "install" in argv:
            for t in ("as", "ld", "ar", "ranlib", "nm", "objdump", "strip"):
                make_fake_tool(bindir / spec.tool(t))
        elif stage == "gcc-stage1" and is_make and "install-gcc" in argv:
            for t in ("gcc", "cpp"):
                make_fake_tool(bindir / spec.tool(t))
        elif stage == "glibc-headers" and is_make and "csu/subdir_lib" in argv:
            assert cwd is not None
            csu = pathlib.Path(cwd) / "csu"
            csu.mkdir(parents=True, exist_ok=True)
            for name in spec.recipe.startfiles:
                (csu / name).write_bytes(b"\x7fELF fake startfile")
        elif stage == "gcc-final" and is_make and "install" in argv:
            for t in ("gcc", "g++", "cpp", "gfortran"):
                make_fake_tool(bindir / spec.tool(t))
        elif stage == "sanity" and "-o" in argv:
            out = pathlib.Path(argv[argv.index("-o") + 1])
            out.write_bytes(b"\x7fELF fake probe")

    def _capture(
        self,
        stage: str,
        argv: list[str],
        cwd: str | os.PathLike[Any] | None,
        env: Mapping[str, str],
    ) -> tuple[int, str, str]:
        self.commands.append(
            CommandRecord(stage, argv, _str_or_none(cwd), dict(env), is_query=True)
        )
        if self.fail_when is not None and self.fail_when(stage, argv):
            return 1, "", "simulated failure\n"

        name = os.path.basename(argv[0])
        if "-print-libgcc-file-name" in argv:
            libgcc = (
                self.spec.prefix
                / "lib"
                / "gcc"
                / self.spec.target
                / self.spec.versions.gcc
                / "libgcc.a"
            )
            return 0, f"{libgcc}\n", ""
        if "--version" in argv:
            return 0, f"{name} (GCC) {self.spec.versions.gcc}\nCopyright\n", ""
        if "-dumpmachine" in argv:
            return 0, f"{TEST_HOST_TRIPLET}\n", ""
        if name == "config.guess":
            return 0, f"{TEST_BUILD_TRIPLET}\n", ""
        if name == "file":
            return 0, f"{argv[1]}: {self.file_output}\n", ""
        return 0, "", ""


def _str_or_none(p: str | os.PathLike[Any] | None) -> str | None:
    return None if p is None else os.fspath(p)


def _no_fetch(logger: CrossbootLogger, urls: list[str], dest: str) -> BaseFetcher:
    raise AssertionError(f"unexpected fetch of {urls} to {dest}")


class PipelineHarness:
    def __init__(
        self,
        logger: CrossbootLogger,
        spec: ToolchainSpec,
        host_path: pathlib.Path,
    ) -> None:
        self.logger = logger
        self.spec = spec
        self.host_path = host_path
        host_path.mkdir(parents=True, exist_ok=True)

    def base_env(self) -> dict[str, str]:
        # nothing from the real host may satisfy the cross tool checks
        return {
            "PATH": str(self.host_path),
            "HOME": "/nonexistent",
            "CC": "clang",
            "AR": "llvm-ar",
        }

    def new_pipeline(
        self,
        *,
        fail_when: FailurePredicate | None = None,
        file_output: str = GOOD_FILE_OUTPUT,
    ) -> tuple[BootstrapPipeline, FakeStageRunner]:
        populate_sources(self.spec)
        runner = FakeStageRunner(
            self.logger,
            self.spec,
            fail_when=fail_when,
            file_output=file_output,
        )
        pipeline = BootstrapPipeline(
            self.logger,
            self.spec,
            runner,
            env_ctx=EnvironmentContext(self.spec, self.base_env()),
            fetcher_factory=_no_fetch,
        )
        return pipeline, runner


@pytest.fixture
def pipeline_harness(
    crossboot_logger: CrossbootLogger,
    toolchain_spec: ToolchainSpec,
    tmp_path: pathlib.Path,
) -> PipelineHarness:
    return PipelineHarness(crossboot_logger, toolchain_spec, tmp_path / "hostbin")


@dataclass
class CLIRunResult:
    exit_code: int
    stdout: str
    stderr: str


class IntegrationTestHarness:
    def __init__(self, env: dict[str, str], cwd: pathlib.Path) -> None:
        self._env = env
        self.cwd = cwd

    def __call__(self, *args: str) -> CLIRunResult:
        return self.run(*args)

    def run(self, *args: str) -> CLIRunResult:
        argv = ["crossboot", *args]
        stdout_io = io.StringIO()
        stderr_io = io.StringIO()
        with redirect_stdout(stdout_io), redirect_stderr(stderr_io):
            gm = EnvGlobalModeProvider(self._env, argv)
            logger = CrossbootConsoleLogger(gm, stdout=stdout_io, stderr=stderr_io)
            gc = GlobalConfig.load_from_config(gm, logger, env=self._env, cwd=self.cwd)
            try:
                exit_code = crossboot_main(gm, gc, argv)
            except SystemExit as e:
                exit_code = e.code if isinstance(e.code, int) else 1
        return CLIRunResult(exit_code, stdout_io.getvalue(), stderr_io.getvalue())

    def write_local_config(self, content: str) -> pathlib.Path:
        p = self.cwd / "crossboot.toml"
        p.write_text(content, encoding="utf-8")
        return p


@pytest.fixture
def crossboot_cli_runner(
    tmp_path: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
) -> IntegrationTestHarness:
    base_dir = tmp_path / "integration-env"
    home_dir = base_dir / "home"
    config_dir = base_dir / "config"
    global_config_dir = base_dir / "etc-xdg"
    cwd = base_dir / "cwd"

    for p in (home_dir, config_dir, global_config_dir, cwd):
        p.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(global_config_dir))
    # keep rich from squeezing tables into the default 80 columns
    monkeypatch.setenv("COLUMNS", "240")
    monkeypatch.delenv("CROSSBOOT_DEBUG", raising=False)
    monkeypatch.chdir(cwd)

    return IntegrationTestHarness(dict(os.environ), cwd)
