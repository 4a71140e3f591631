import argparse
from typing import TYPE_CHECKING

from .cmd import RootCommand

if TYPE_CHECKING:
    from ..config import GlobalConfig


class ReportCommand(
    RootCommand,
    cmd="report",
    help="Summarize DejaGnu .sum test result files",
    description="Counts test outcomes per result file and in total, and estimates the progress of a running test suite.",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--expected-total",
            type=int,
            default=None,
            help=f"Number of tests a complete run executes (default: {gc.expected_total})",
        )
        p.add_argument(
            "file",
            type=str,
            nargs="*",
            help=f"Result files to summarize (default: {', '.join(gc.sum_files)})",
        )

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        return cli_report(cfg, args)


def cli_report(cfg: "GlobalConfig", args: argparse.Namespace) -> int:
    from ..report.render import do_report

    files: list[str] = args.file or cfg.sum_files
    expected: int | None = args.expected_total
    if expected is None:
        expected = cfg.expected_total
    elif expected < 0:
        cfg.logger.F("the expected total must not be negative")
        return 1

    return do_report(cfg.logger, files, expected)
