import shutil
import sys
from typing import Final, Iterable, NoReturn

from ..log import CrossbootLogger, humanize_list

# host commands every full build needs, besides the host compilers
BUILD_CMDS: Final = ("make", "tar", "file")


def has_cmd_in_path(cmd: str, path: str | None = None) -> bool:
    return shutil.which(cmd, path=path) is not None


def find_missing_cmds(cmds: Iterable[str], path: str | None = None) -> list[str]:
    return sorted({cmd for cmd in cmds if not has_cmd_in_path(cmd, path)})


def ensure_cmds(
    logger: CrossbootLogger,
    cmds: Iterable[str],
    path: str | None = None,
) -> None | NoReturn:
    absent_cmds = find_missing_cmds(cmds, path)
    if not absent_cmds:
        return None

    cmds_str = humanize_list(absent_cmds, item_color="yellow")
    logger.F(
        f"the command(s) {cmds_str} cannot be found in PATH, which [yellow]crossboot[/] requires"
    )
    logger.I("please install them with your host's package manager and retry")
    sys.exit(1)
