import sys
from typing import TYPE_CHECKING

from ..config import GlobalConfig
from ..utils.global_mode import GlobalModeProvider


def main(gm: GlobalModeProvider, gc: GlobalConfig, argv: list[str]) -> int:
    logger = gc.logger

    from .cmd import RootCommand
    from . import builtin_commands

    del builtin_commands

    if TYPE_CHECKING:
        from .cmd import CLIEntrypoint

    p = RootCommand.build_argparse(gc)
    args = p.parse_args(argv[1:])
    # for getting access to the argparse parser in the CLI entrypoint
    args._parser = p  # pylint: disable=protected-access

    gm.is_porcelain = args.porcelain

    logger.D(f"argv[0] = {gm.argv0}, sys.executable = {sys.executable}")
    logger.D(f"config files applied: {gc.applied_files}")
    logger.D(f"args={args}")

    func: "CLIEntrypoint" = args.func
    return func(gc, args)
