import datetime
import enum
import os
import pathlib
import shlex
import subprocess
import sys
from typing import Any, Final, Mapping, Sequence, TextIO

from ..log import CrossbootLogger
from .errors import (
    BuildError,
    ConfigureError,
    InstallError,
    StageFailedError,
)

if sys.version_info >= (3, 11):

    class StepKind(enum.StrEnum):
        CONFIGURE = "configure"
        BUILD = "build"
        INSTALL = "install"

else:

    class StepKind(str, enum.Enum):
        CONFIGURE = "configure"
        BUILD = "build"
        INSTALL = "install"


_STEP_ERRORS: Final[dict[StepKind, type[StageFailedError]]] = {
    StepKind.CONFIGURE: ConfigureError,
    StepKind.BUILD: BuildError,
    StepKind.INSTALL: InstallError,
}

# what a shell reports for a command that cannot be found
RETCODE_NOT_EXECUTABLE: Final = 127

Argv = Sequence[str | os.PathLike[Any]]


class StageRunner:
    """Runs external commands on behalf of pipeline stages.

    Every stage owns exactly one log file, ``<logs_dir>/<stage>.log``, which
    is truncated by :meth:`begin` and appended to by every command run for
    that stage. Combined stdout/stderr is streamed into the log and, if an
    ``echo`` stream is given, duplicated there as well. A non-zero exit
    status is always fatal.
    """

    def __init__(
        self,
        logger: CrossbootLogger,
        logs_dir: pathlib.Path,
        *,
        echo: TextIO | None = None,
    ) -> None:
        self._logger = logger
        self.logs_dir = logs_dir
        self._echo = echo

    def log_path(self, stage: str) -> pathlib.Path:
        return self.logs_dir / f"{stage}.log"

    def _open_log(self, stage: str, mode: str = "a") -> TextIO:
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        return open(self.log_path(stage), mode, encoding="utf-8", errors="replace")

    def begin(self, stage: str) -> pathlib.Path:
        now = datetime.datetime.now().isoformat(timespec="seconds")
        with self._open_log(stage, "w") as fp:
            fp.write(f"==> {stage} (started {now})\n")
        return self.log_path(stage)

    def note(self, stage: str, message: str) -> None:
        with self._open_log(stage) as fp:
            fp.write(f"==> {message}\n")

    def run(
        self,
        stage: str,
        argv: Argv,
        *,
        cwd: str | os.PathLike[Any] | None,
        env: Mapping[str, str],
        step: StepKind = StepKind.BUILD,
    ) -> int:
        args = [os.fspath(a) for a in argv]
        self._logger.D(f"[{stage}] running {args} in {cwd}")

        with self._open_log(stage) as log_fp:
            log_fp.write(f"$ {shlex.join(args)}\n")
            log_fp.flush()
            try:
                retcode = self._spawn(stage, args, cwd, env, log_fp)
            except OSError as e:
                log_fp.write(f"cannot execute {args[0]}: {e}\n")
                retcode = RETCODE_NOT_EXECUTABLE

        if retcode != 0:
            raise _STEP_ERRORS[step](stage, args, retcode, self.log_path(stage))
        return retcode

    def _spawn(
        self,
        stage: str,
        argv: list[str],
        cwd: str | os.PathLike[Any] | None,
        env: Mapping[str, str],
        log_fp: TextIO,
    ) -> int:
        with subprocess.Popen(
            argv,
            cwd=cwd,
            env=dict(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            bufsize=1,
        ) as p:
            assert p.stdout is not None
            for line in p.stdout:
                log_fp.write(line)
                if self._echo is not None:
                    self._echo.write(line)
            return p.wait()

    def capture(
        self,
        stage: str,
        argv: Argv,
        *,
        cwd: str | os.PathLike[Any] | None = None,
        env: Mapping[str, str],
    ) -> str:
        """Runs a query command and returns its stripped standard output."""

        args = [os.fspath(a) for a in argv]
        self._logger.D(f"[{stage}] querying {args}")

        with self._open_log(stage) as log_fp:
            log_fp.write(f"$ {shlex.join(args)}\n")
            try:
                retcode, out, err = self._capture(stage, args, cwd, env)
            except OSError as e:
                log_fp.write(f"cannot execute {args[0]}: {e}\n")
                retcode, out, err = RETCODE_NOT_EXECUTABLE, "", ""
            log_fp.write(out)
            log_fp.write(err)

        if retcode != 0:
            raise StageFailedError(stage, args, retcode, self.log_path(stage))
        return out.strip()

    def _capture(
        self,
        stage: str,
        argv: list[str],
        cwd: str | os.PathLike[Any] | None,
        env: Mapping[str, str],
    ) -> tuple[int, str, str]:
        res = subprocess.run(
            argv,
            cwd=cwd,
            env=dict(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
        return res.returncode, res.stdout, res.stderr
