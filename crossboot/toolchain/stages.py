from dataclasses import dataclass
import enum
import shutil
import sys
from typing import TYPE_CHECKING, Callable, Final

from .context import StageContext
from .environ import ToolBinding
from .runner import StepKind
from .sanity import verify_toolchain
from .source_cache import SourceCache
from .spec import Component

if TYPE_CHECKING:
    from .pipeline import BootstrapPipeline


if sys.version_info >= (3, 11):

    class PipelineState(enum.StrEnum):
        PENDING = "pending"
        INIT = "init"
        HEADERS_INSTALLED = "headers-installed"
        BINUTILS_BUILT = "binutils-built"
        STAGE1_COMPILER_BUILT = "stage1-compiler-built"
        LIBC_HEADERS_STAGED = "libc-headers-staged"
        LIBC_FULLY_BUILT = "libc-fully-built"
        FINAL_COMPILER_BUILT = "final-compiler-built"
        SANITY_VERIFIED = "sanity-verified"

else:

    class PipelineState(str, enum.Enum):
        PENDING = "pending"
        INIT = "init"
        HEADERS_INSTALLED = "headers-installed"
        BINUTILS_BUILT = "binutils-built"
        STAGE1_COMPILER_BUILT = "stage1-compiler-built"
        LIBC_HEADERS_STAGED = "libc-headers-staged"
        LIBC_FULLY_BUILT = "libc-fully-built"
        FINAL_COMPILER_BUILT = "final-compiler-built"
        SANITY_VERIFIED = "sanity-verified"


StageAction = Callable[["BootstrapPipeline", StageContext], None]


@dataclass(frozen=True)
class Stage:
    name: str
    requires: PipelineState
    reaches: PipelineState
    binding: ToolBinding
    action: StageAction
    # cross tools, by unprefixed name, that earlier stages must have installed
    needs_tools: tuple[str, ...] = ()
    uses_build_dir: bool = True

    def required_tools(self, pipeline: "BootstrapPipeline") -> list[str]:
        return [pipeline.spec.tool(t) for t in self.needs_tools]


def _do_init(p: "BootstrapPipeline", ctx: StageContext) -> None:
    spec = ctx.spec

    spec.src_dir.mkdir(parents=True, exist_ok=True)
    spec.logs_dir.mkdir(parents=True, exist_ok=True)
    if spec.build_root.exists():
        ctx.note(f"wiping {spec.build_root}")
        shutil.rmtree(spec.build_root)
    spec.build_root.mkdir(parents=True)
    p.prune_stale_logs(keep=ctx.name)

    ctx.note(f"resetting sysroot {p.sysroot.root}")
    p.sysroot.reset()

    cache = SourceCache(
        ctx.logger,
        spec.src_dir,
        ctx.runner,
        stage=ctx.name,
        env=ctx.env,
        fetcher_factory=p.fetcher_factory,
    )
    p.sources.update(cache.ensure_all(spec.artifacts()))


def _do_linux_headers(p: "BootstrapPipeline", ctx: StageContext) -> None:
    p.sysroot.install_kernel_headers(ctx, ctx.source(Component.LINUX))


def _do_binutils(p: "BootstrapPipeline", ctx: StageContext) -> None:
    spec = ctx.spec
    src = ctx.source(Component.BINUTILS)
    ctx.run(
        [
            src / "configure",
            f"--target={spec.target}",
            f"--prefix={spec.prefix}",
            f"--with-sysroot={spec.sysroot}",
            "--disable-multilib",
            "--disable-nls",
            "--disable-werror",
        ],
        step=StepKind.CONFIGURE,
    )
    ctx.make(jobs=spec.jobs)
    ctx.make("install", step=StepKind.INSTALL)


def _do_gcc_stage1(p: "BootstrapPipeline", ctx: StageContext) -> None:
    spec = ctx.spec
    src = ctx.source(Component.GCC)
    ctx.run(
        [
            src / "configure",
            f"--target={spec.target}",
            f"--prefix={spec.prefix}",
            f"--with-glibc-version={spec.versions.glibc}",
            f"--with-sysroot={spec.sysroot}",
            "--with-newlib",
            "--without-headers",
            "--disable-nls",
            "--disable-shared",
            "--disable-multilib",
            "--disable-decimal-float",
            "--disable-threads",
            "--disable-libatomic",
            "--disable-libgomp",
            "--disable-libquadmath",
            "--disable-libssp",
            "--disable-libvtv",
            "--disable-libstdcxx",
            "--enable-languages=c",
            *spec.arch_flags.configure_args(),
        ],
        step=StepKind.CONFIGURE,
    )
    ctx.make("all-gcc", jobs=spec.jobs)
    ctx.make("all-target-libgcc", jobs=spec.jobs)
    ctx.make("install-gcc", step=StepKind.INSTALL)
    p.sysroot.install_libgcc_and_limits(ctx, src)


def _configure_glibc(p: "BootstrapPipeline", ctx: StageContext) -> None:
    spec = ctx.spec
    src = ctx.source(Component.GLIBC)
    build_triplet = ctx.capture([src / "scripts" / "config.guess"])
    ctx.run(
        [
            src / "configure",
            f"--host={spec.target}",
            f"--build={build_triplet}",
            "--prefix=/usr",
            f"--with-headers={p.sysroot.include_dir}",
            "--disable-multilib",
            f"--enable-kernel={spec.kernel_series}",
        ],
        step=StepKind.CONFIGURE,
    )


def _do_glibc_headers(p: "BootstrapPipeline", ctx: StageContext) -> None:
    _configure_glibc(p, ctx)
    p.sysroot.install_libc_headers_and_startfiles(ctx)


def _do_glibc_full(p: "BootstrapPipeline", ctx: StageContext) -> None:
    _configure_glibc(p, ctx)
    ctx.make(jobs=ctx.spec.jobs)
    p.sysroot.install_full_libc(ctx)


def _do_gcc_final(p: "BootstrapPipeline", ctx: StageContext) -> None:
    spec = ctx.spec
    src = ctx.source(Component.GCC)
    host = ctx.capture([spec.host_cc, "-dumpmachine"])
    ctx.run(
        [
            src / "configure",
            f"--build={host}",
            f"--host={host}",
            f"--target={spec.target}",
            f"--prefix={spec.prefix}",
            f"--with-sysroot={spec.sysroot}",
            "--disable-multilib",
            "--disable-nls",
            f"--enable-languages={','.join(spec.languages)}",
            "--enable-shared",
            "--enable-threads=posix",
            "--enable-__cxa_atexit",
            "--enable-linker-build-id",
            *spec.arch_flags.configure_args(),
        ],
        step=StepKind.CONFIGURE,
    )
    ctx.make(jobs=spec.jobs)
    ctx.make("install", step=StepKind.INSTALL)


def _do_sanity(p: "BootstrapPipeline", ctx: StageContext) -> None:
    report = verify_toolchain(ctx)
    p.sanity_report = report
    ctx.note(f"compiler: {report.compiler_version}")
    ctx.note(f"probe binary: {report.file_description}")


S = PipelineState

STAGES: Final[tuple[Stage, ...]] = (
    Stage("init", S.PENDING, S.INIT, ToolBinding.HOST, _do_init, uses_build_dir=False),
    Stage("linux-headers", S.INIT, S.HEADERS_INSTALLED, ToolBinding.HOST, _do_linux_headers),
    Stage("binutils", S.HEADERS_INSTALLED, S.BINUTILS_BUILT, ToolBinding.HOST, _do_binutils),
    Stage(
        "gcc-stage1",
        S.BINUTILS_BUILT,
        S.STAGE1_COMPILER_BUILT,
        ToolBinding.HOST,
        _do_gcc_stage1,
        needs_tools=("as", "ld"),
    ),
    Stage(
        "glibc-headers",
        S.STAGE1_COMPILER_BUILT,
        S.LIBC_HEADERS_STAGED,
        ToolBinding.CROSS,
        _do_glibc_headers,
        needs_tools=("gcc", "ar", "ld"),
    ),
    Stage(
        "glibc-full",
        S.LIBC_HEADERS_STAGED,
        S.LIBC_FULLY_BUILT,
        ToolBinding.CROSS,
        _do_glibc_full,
        needs_tools=("gcc", "ar", "ld"),
    ),
    Stage(
        "gcc-final",
        S.LIBC_FULLY_BUILT,
        S.FINAL_COMPILER_BUILT,
        ToolBinding.HOST,
        _do_gcc_final,
        needs_tools=("as", "ld"),
    ),
    Stage(
        "sanity",
        S.FINAL_COMPILER_BUILT,
        S.SANITY_VERIFIED,
        ToolBinding.HOST,
        _do_sanity,
        needs_tools=("gcc",),
    ),
)

STAGE_NAMES: Final = tuple(s.name for s in STAGES)


def get_stage(name: str) -> Stage:
    for s in STAGES:
        if s.name == name:
            return s
    raise KeyError(f"unknown stage '{name}'")
