import enum
import os
import re
import subprocess
import sys
from typing import Any, Final

from ..log import CrossbootLogger
from .errors import ExtractError

RE_TARBALL: Final = re.compile(r"\.tar(?:\.gz|\.bz2|\.xz|\.zst)?$")


if sys.version_info >= (3, 11):

    class ArchiveKind(enum.StrEnum):
        UNKNOWN = ""
        TAR = "tar"
        TAR_GZ = "tar.gz"
        TAR_BZ2 = "tar.bz2"
        TAR_XZ = "tar.xz"
        TAR_ZST = "tar.zst"

else:

    class ArchiveKind(str, enum.Enum):
        UNKNOWN = ""
        TAR = "tar"
        TAR_GZ = "tar.gz"
        TAR_BZ2 = "tar.bz2"
        TAR_XZ = "tar.xz"
        TAR_ZST = "tar.zst"


def determine_archive_kind(filename: str) -> ArchiveKind:
    if m := RE_TARBALL.search(filename.lower()):
        return ArchiveKind(m.group(0)[1:])
    return ArchiveKind.UNKNOWN


def _tar_decompress_flags(kind: ArchiveKind) -> list[str]:
    match kind:
        case ArchiveKind.TAR:
            return []
        case ArchiveKind.TAR_GZ:
            return ["-z"]
        case ArchiveKind.TAR_BZ2:
            return ["-j"]
        case ArchiveKind.TAR_XZ:
            return ["-J"]
        case ArchiveKind.TAR_ZST:
            return ["--zstd"]
        case _:
            raise ValueError(f"not a tarball kind: {kind!r}")


def extract_tarball(
    logger: CrossbootLogger,
    filename: str | os.PathLike[Any],
    dest: str | os.PathLike[Any],
) -> None:
    """Extracts ``filename`` into the directory ``dest`` with tar(1)."""

    kind = determine_archive_kind(os.fspath(filename))
    if kind == ArchiveKind.UNKNOWN:
        raise ExtractError(filename, "don't know how to unpack this file")

    argv = ["tar", "-x", *_tar_decompress_flags(kind), "-f", os.fspath(filename)]
    logger.D(f"about to call tar: argv={argv}")
    try:
        retcode = subprocess.call(argv, cwd=dest)
    except OSError as e:
        raise ExtractError(filename, f"cannot run tar: {e}") from e

    if retcode != 0:
        raise ExtractError(
            filename, f"command {' '.join(argv)} returned {retcode}"
        )
