import pathlib
import shutil

from ..log import CrossbootLogger
from .context import StageContext
from .errors import SysrootStateError
from .runner import StepKind
from .spec import BootstrapRecipe, ToolchainSpec


class SysrootStager:
    """Owns the target staging tree.

    The tree is wiped exactly once per pipeline run by :meth:`reset`; after
    that every ``install_*`` method only adds to it (existing files are
    overwritten in place, nothing is deleted), so each may be repeated
    safely within a run.

    Three deliberately incomplete artifacts let glibc be built by a
    compiler that was itself built without glibc:

    * a synthesized ``limits.h`` in the stage-1 compiler's private
      ``install-tools/include`` directory,
    * empty placeholders (``usr/lib/libc.so``, ``usr/include/gnu/stubs.h``)
      that satisfy existence checks until the full glibc overwrites them,
    * real startfiles (``crt1.o crti.o crtn.o``) built with the stage-1
      compiler.

    The exact set lives in :class:`BootstrapRecipe`.
    """

    def __init__(self, logger: CrossbootLogger, spec: ToolchainSpec) -> None:
        self._logger = logger
        self.root = spec.sysroot
        self.recipe: BootstrapRecipe = spec.recipe
        self._spec = spec
        self._is_reset = False

    @property
    def usr(self) -> pathlib.Path:
        return self.root / "usr"

    @property
    def include_dir(self) -> pathlib.Path:
        return self.usr / "include"

    @property
    def lib_dir(self) -> pathlib.Path:
        return self.usr / "lib"

    @property
    def is_reset(self) -> bool:
        return self._is_reset

    def reset(self) -> None:
        if self._is_reset:
            raise SysrootStateError(self.root, "already reset during this run")

        if self.root.exists() or self.root.is_symlink():
            self._logger.D(f"wiping sysroot {self.root}")
            if self.root.is_dir() and not self.root.is_symlink():
                shutil.rmtree(self.root)
            else:
                self.root.unlink()
        self.root.mkdir(parents=True)
        self._is_reset = True

    def _ensure_reset(self) -> None:
        if not self._is_reset:
            raise SysrootStateError(self.root, "must be reset before being populated")

    def install_kernel_headers(self, ctx: StageContext, linux_src: pathlib.Path) -> None:
        self._ensure_reset()
        ctx.make(
            "-C",
            linux_src,
            f"ARCH={self._spec.kernel_arch}",
            f"INSTALL_HDR_PATH={self.usr}",
            "headers_install",
            step=StepKind.INSTALL,
        )

    def install_libgcc_and_limits(
        self,
        ctx: StageContext,
        gcc_src: pathlib.Path,
    ) -> pathlib.Path:
        self._ensure_reset()
        ctx.make("install-target-libgcc", step=StepKind.INSTALL)

        libgcc_file = ctx.capture([self._spec.tool("gcc"), "-print-libgcc-file-name"])
        dest = pathlib.Path(libgcc_file).parent / "install-tools" / "include" / "limits.h"
        ctx.note(f"creating internal limits.h at {dest}")
        return self.assemble_limits_header(gcc_src, dest)

    def assemble_limits_header(
        self,
        gcc_src: pathlib.Path,
        dest: pathlib.Path,
    ) -> pathlib.Path:
        """Writes the concatenation of the recipe's limits fragments, in order."""

        fragments = [gcc_src / f for f in self.recipe.limits_fragments]
        for f in fragments:
            if not f.is_file():
                raise SysrootStateError(self.root, f"limits fragment {f} is missing")

        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "wb") as out:
            for f in fragments:
                out.write(f.read_bytes())
        return dest

    def install_libc_headers_and_startfiles(self, ctx: StageContext) -> None:
        self._ensure_reset()
        ctx.make(
            "install-bootstrap-headers=yes",
            "install-headers",
            f"DESTDIR={self.root}",
            step=StepKind.INSTALL,
        )
        self.place_dummy_files()

        ctx.make("csu/subdir_lib", jobs=1)
        self.install_startfiles(ctx.build_dir / "csu")

        # full glibc replaces this, but it helps the libgcc link meanwhile
        nonshared = ctx.build_dir / "libc_nonshared.a"
        if nonshared.is_file():
            self.lib_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(nonshared, self.lib_dir / nonshared.name)

    def place_dummy_files(self) -> list[pathlib.Path]:
        self._ensure_reset()
        placed = []
        for rel in self.recipe.dummy_files:
            p = self.root / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.touch()
            placed.append(p)
        return placed

    def install_startfiles(self, csu_dir: pathlib.Path) -> list[pathlib.Path]:
        self._ensure_reset()
        self.lib_dir.mkdir(parents=True, exist_ok=True)
        installed = []
        for name in self.recipe.startfiles:
            src = csu_dir / name
            if not src.is_file():
                raise SysrootStateError(
                    self.root, f"startfile {name} was not built in {csu_dir}"
                )
            dest = self.lib_dir / name
            shutil.copyfile(src, dest)
            installed.append(dest)
        return installed

    def install_full_libc(self, ctx: StageContext) -> None:
        self._ensure_reset()
        ctx.make("install", f"DESTDIR={self.root}", step=StepKind.INSTALL)
