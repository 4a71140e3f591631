from dataclasses import dataclass
import pathlib
from typing import Final

from ..utils.templating import render_template_str
from .context import StageContext
from .errors import SanityError, StageFailedError

PROBE_MESSAGE: Final = "Hello from the crossboot cross toolchain!"
PROBE_TEMPLATE: Final = "probe.c"


@dataclass(frozen=True)
class SanityReport:
    compiler_version: str
    binary: pathlib.Path
    file_description: str
    expected_arch: str


def write_probe_source(dest: pathlib.Path, message: str = PROBE_MESSAGE) -> pathlib.Path:
    dest.write_text(
        render_template_str(PROBE_TEMPLATE, {"message": message}),
        encoding="utf-8",
    )
    return dest


def verify_toolchain(ctx: StageContext) -> SanityReport:
    """Compiles a trivial program with the delivered compiler and checks that
    file(1) reports the configured target architecture for the result."""

    spec = ctx.spec
    cc = spec.tool("gcc")
    expected = spec.expected_file_arch

    try:
        version = ctx.capture([cc, "--version"])
    except StageFailedError as e:
        raise SanityError(
            f"{cc} not found or not working (exit code {e.returncode})"
        ) from e

    src = write_probe_source(ctx.build_dir / "hello.c")
    binary = ctx.build_dir / "hello"
    try:
        ctx.run([cc, "-O2", "-g", "-o", binary, src])
    except StageFailedError as e:
        raise SanityError(
            f"{cc} failed to compile the probe program (exit code {e.returncode})"
        ) from e
    if not binary.is_file():
        raise SanityError(f"{cc} reported success but produced no {binary.name}")

    try:
        desc = ctx.capture(["file", binary])
    except StageFailedError as e:
        raise SanityError("cannot inspect the probe binary with file(1)") from e

    if expected not in desc:
        raise SanityError(
            f"the probe binary should be a '{expected}' executable, but file(1) says: {desc}"
        )

    first_line = version.splitlines()[0] if version else ""
    return SanityReport(first_line, binary, desc, expected)
