import argparse
import sys
from typing import TYPE_CHECKING

from .cmd import RootCommand

if TYPE_CHECKING:
    from ..config import GlobalConfig
    from ..log import CrossbootLogger
    from ..toolchain.errors import BootstrapError
    from ..toolchain.runner import StageRunner
    from ..toolchain.spec import ToolchainSpec


def add_spec_args(p: argparse.ArgumentParser) -> None:
    """Adds the options that override the configured build description."""

    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Apply this config file on top of the ones found in standard locations",
    )
    p.add_argument(
        "--target",
        type=str,
        default=None,
        help="Target triplet of the toolchain, e.g. aarch64-linux-gnu",
    )
    p.add_argument(
        "--prefix",
        type=str,
        default=None,
        help="Install prefix of the toolchain",
    )
    p.add_argument(
        "--sysroot",
        type=str,
        default=None,
        help="Location of the target sysroot (default: <prefix>/<target>-sysroot)",
    )
    p.add_argument(
        "--workdir",
        type=str,
        default=None,
        help="Directory holding the src/, build/ and logs/ trees (default: current directory)",
    )
    p.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Parallelism of the individual make invocations",
    )


def spec_from_args(
    cfg: "GlobalConfig",
    args: argparse.Namespace,
) -> "ToolchainSpec | None":
    from ..config.errors import (
        InvalidConfigValueError,
        InvalidConfigValueTypeError,
        MalformedConfigFileError,
    )

    logger = cfg.logger

    if config_file := args.config:
        try:
            cfg.apply_config_file(config_file)
        except FileNotFoundError:
            logger.F(f"config file [yellow]{config_file}[/] does not exist")
            return None
        except (
            InvalidConfigValueError,
            InvalidConfigValueTypeError,
            MalformedConfigFileError,
        ) as e:
            logger.F(f"{e}")
            return None

    try:
        return cfg.to_toolchain_spec(
            target=args.target,
            prefix=args.prefix,
            sysroot=args.sysroot,
            workdir=args.workdir,
            jobs=args.jobs,
        )
    except ValueError as e:
        logger.F(f"invalid build description: {e}")
        return None


def report_stage_failure(
    logger: "CrossbootLogger",
    runner: "StageRunner",
    e: "BootstrapError",
) -> int:
    logger.F(f"{e}")
    if e.stage is not None:
        logger.I(
            f"stage [yellow]{e.stage}[/] failed; see [cyan]{runner.log_path(e.stage)}[/] for details"
        )
    return 1


class BuildCommand(
    RootCommand,
    cmd="build",
    help="Bootstrap the cross toolchain from source",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        add_spec_args(p)
        p.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Do not echo the build tools' output, only record it in the stage logs",
        )

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        return cli_build(cfg, args)


class FetchCommand(
    RootCommand,
    cmd="fetch",
    help="Download and extract the component sources only",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        add_spec_args(p)

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        return cli_fetch(cfg, args)


def cli_build(cfg: "GlobalConfig", args: argparse.Namespace) -> int:
    from ..toolchain.errors import BootstrapError
    from ..toolchain.pipeline import BootstrapPipeline
    from ..toolchain.runner import StageRunner
    from ..utils.prereqs import BUILD_CMDS, ensure_cmds

    logger = cfg.logger
    spec = spec_from_args(cfg, args)
    if spec is None:
        return 1

    try:
        expected_arch = spec.expected_file_arch
    except ValueError as e:
        logger.F(f"{e}")
        return 1

    ensure_cmds(logger, [*BUILD_CMDS, spec.host_cc, spec.host_cxx])

    quiet: bool = args.quiet or cfg.is_porcelain
    runner = StageRunner(logger, spec.logs_dir, echo=None if quiet else sys.stdout)
    pipeline = BootstrapPipeline(logger, spec, runner)

    logger.I(
        f"bootstrapping a [yellow]{spec.target}[/] toolchain into [cyan]{spec.prefix}[/]"
    )
    logger.D(f"toolchain spec: {spec}")

    try:
        pipeline.run()
    except BootstrapError as e:
        report_stage_failure(logger, runner, e)
        logger.I("fix the cause and build again; every build starts over from a clean state")
        return 1
    except OSError as e:
        stage = pipeline.current_stage.name if pipeline.current_stage else "init"
        logger.F(f"stage [yellow]{stage}[/] failed: {e}")
        logger.I(f"see [cyan]{runner.log_path(stage)}[/] for details")
        return 1

    if report := pipeline.sanity_report:
        logger.I(f"compiler: {report.compiler_version}")
        logger.I(f"probe binary is a [green]{expected_arch}[/] executable")
    logger.I(
        f"the toolchain is ready at [green]{spec.prefix}[/]; add [cyan]{spec.bin_dir}[/] to PATH to use it"
    )
    return 0


def cli_fetch(cfg: "GlobalConfig", args: argparse.Namespace) -> int:
    from ..toolchain.errors import BootstrapError
    from ..toolchain.runner import StageRunner
    from ..toolchain.source_cache import FETCH_LOG_NAME, SourceCache
    from ..utils.prereqs import ensure_cmds

    logger = cfg.logger
    spec = spec_from_args(cfg, args)
    if spec is None:
        return 1

    ensure_cmds(logger, ["tar"])

    echo = None if cfg.is_porcelain else sys.stdout
    runner = StageRunner(logger, spec.logs_dir, echo=echo)
    runner.begin(FETCH_LOG_NAME)
    cache = SourceCache(logger, spec.src_dir, runner, stage=FETCH_LOG_NAME)

    try:
        extracted = cache.ensure_all(spec.artifacts())
    except BootstrapError as e:
        if e.stage is None:
            e.stage = FETCH_LOG_NAME
        return report_stage_failure(logger, runner, e)

    for component, path in extracted.items():
        logger.I(f"[yellow]{component.value}[/] sources are at [cyan]{path}[/]")
    return 0
