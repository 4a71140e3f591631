import argparse
from typing import TYPE_CHECKING

from .build_cli import add_spec_args, spec_from_args
from .cmd import RootCommand

if TYPE_CHECKING:
    from ..config import GlobalConfig


class StagesCommand(
    RootCommand,
    cmd="stages",
    help="List the bootstrap stages in execution order",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        add_spec_args(p)

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        return cli_stages(cfg, args)


def cli_stages(cfg: "GlobalConfig", args: argparse.Namespace) -> int:
    from rich import box
    from rich.table import Table

    from ..log import humanize_list
    from ..toolchain.runner import StageRunner
    from ..toolchain.stages import STAGES
    from ..utils.porcelain import PorcelainEntityType, PorcelainStage

    logger = cfg.logger
    spec = spec_from_args(cfg, args)
    if spec is None:
        return 1

    runner = StageRunner(logger, spec.logs_dir)

    if cfg.is_porcelain:
        for s in STAGES:
            obj: PorcelainStage = {
                "ty": PorcelainEntityType.StageV1,
                "name": s.name,
                "state": s.reaches.value,
                "log": str(runner.log_path(s.name)),
            }
            logger.emit_porcelain(obj)
        return 0

    tbl = Table(box=box.SIMPLE, show_edge=False)
    tbl.add_column("#", justify="right")
    tbl.add_column("Stage")
    tbl.add_column("Reaches")
    tbl.add_column("Tools")
    tbl.add_column("Needs")
    tbl.add_column("Log")

    for i, s in enumerate(STAGES, 1):
        tbl.add_row(
            str(i),
            f"[bold]{s.name}[/]",
            s.reaches.value,
            s.binding.value,
            humanize_list([spec.tool(t) for t in s.needs_tools], empty_prompt="-"),
            str(runner.log_path(s.name)),
        )

    logger.stdout(tbl)
    return 0
