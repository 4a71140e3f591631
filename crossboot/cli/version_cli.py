import argparse
import platform
from typing import TYPE_CHECKING

from .cmd import RootCommand

if TYPE_CHECKING:
    from ..config import GlobalConfig


# Keep this at the bottom of builtin_commands
class VersionCommand(
    RootCommand,
    cmd="version",
    help="Print version information",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        pass

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        return cli_version(cfg, args)


def cli_version(cfg: "GlobalConfig", args: argparse.Namespace) -> int:
    from ..version import COPYRIGHT_NOTICE, CROSSBOOT_SEMVER

    cfg.logger.stdout(
        f"crossboot {CROSSBOOT_SEMVER}\n\nRunning on {platform.system()}/{platform.machine()}.\n"
    )
    cfg.logger.stdout(COPYRIGHT_NOTICE)
    return 0
