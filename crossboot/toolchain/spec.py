from dataclasses import dataclass, field
import enum
import os
import pathlib
import sys
from typing import Final, Iterator

import semver

if sys.version_info >= (3, 11):

    class Component(enum.StrEnum):
        BINUTILS = "binutils"
        GCC = "gcc"
        GLIBC = "glibc"
        LINUX = "linux"

else:

    class Component(str, enum.Enum):
        BINUTILS = "binutils"
        GCC = "gcc"
        GLIBC = "glibc"
        LINUX = "linux"


DEFAULT_FINAL_LANGUAGES: Final = (
    "c",
    "ada",
    "c++",
    "go",
    "d",
    "fortran",
    "objc",
    "obj-c++",
    "m2",
    "rust",
)


@dataclass(frozen=True)
class ComponentVersions:
    gcc: str
    binutils: str
    glibc: str
    linux: str

    def __getitem__(self, c: Component) -> str:
        return str(getattr(self, c.value))


@dataclass(frozen=True)
class ArchFlags:
    """Instruction-set baseline and tuning hint baked into the compilers."""

    arch: str | None = None
    tune: str | None = None

    def configure_args(self) -> list[str]:
        args: list[str] = []
        if self.arch:
            args.append(f"--with-arch={self.arch}")
        if self.tune:
            args.append(f"--with-tune={self.tune}")
        return args


@dataclass(frozen=True)
class Mirrors:
    gnu: str
    kernel: str


@dataclass(frozen=True)
class BootstrapRecipe:
    """The stub artifacts that break the compiler/C library cycle.

    These depend on the exact GCC/glibc pair being built, so they are data
    rather than code. Paths in ``limits_fragments`` are relative to the GCC
    source tree, ``dummy_files`` relative to the sysroot, and ``startfiles``
    relative to glibc's ``csu`` build directory.
    """

    limits_fragments: tuple[str, ...] = (
        "gcc/limitx.h",
        "gcc/glimits.h",
        "gcc/limity.h",
    )
    dummy_files: tuple[str, ...] = (
        "usr/lib/libc.so",
        "usr/include/gnu/stubs.h",
    )
    startfiles: tuple[str, ...] = ("crt1.o", "crti.o", "crtn.o")


@dataclass(frozen=True)
class SourceArtifact:
    component: Component
    name: str
    version: str
    archive_name: str
    url: str
    extracted_dir: str
    needs_prerequisites: bool = False

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


def canonicalize_kernel_arch(target_arch: str) -> str:
    """Maps the first triplet field to the Linux ``ARCH=`` value."""

    match target_arch:
        case "aarch64" | "aarch64_be":
            return "arm64"
        case "riscv32" | "riscv64":
            return "riscv"
        case "x86_64":
            return "x86_64"
        case "i386" | "i486" | "i586" | "i686":
            return "x86"
        case "s390x" | "s390":
            return "s390"
        case "loongarch64":
            return "loongarch"
        case arch if arch.startswith("arm"):
            return "arm"
        case arch if arch.startswith("powerpc") or arch.startswith("ppc"):
            return "powerpc"
        case arch if arch.startswith("mips"):
            return "mips"
        case arch:
            return arch


def describe_file_arch(target_arch: str) -> str | None:
    """Returns what file(1) prints for an ELF of the given architecture."""

    match target_arch:
        case "aarch64":
            return "ARM aarch64"
        case "x86_64":
            return "x86-64"
        case "riscv32" | "riscv64":
            return "RISC-V"
        case "i386" | "i486" | "i586" | "i686":
            return "Intel 80386"
        case "powerpc64le" | "ppc64le":
            return "64-bit PowerPC"
        case "s390x":
            return "IBM S/390"
        case "loongarch64":
            return "LoongArch"
        case arch if arch.startswith("arm"):
            return "ARM,"
        case _:
            return None


def _default_jobs() -> int:
    return os.cpu_count() or 4


@dataclass(frozen=True)
class ToolchainSpec:
    versions: ComponentVersions
    target: str
    prefix: pathlib.Path
    sysroot: pathlib.Path
    workdir: pathlib.Path
    mirrors: Mirrors
    jobs: int = field(default_factory=_default_jobs)
    arch_flags: ArchFlags = ArchFlags()
    languages: tuple[str, ...] = DEFAULT_FINAL_LANGUAGES
    host_cc: str = "gcc"
    host_cxx: str = "g++"
    recipe: BootstrapRecipe = BootstrapRecipe()
    file_arch: str | None = None

    def __post_init__(self) -> None:
        if len(self.target.split("-")) < 2 or not all(self.target.split("-")):
            raise ValueError(f"malformed target triplet '{self.target}'")
        for c in Component:
            if not self.versions[c]:
                raise ValueError(f"no version given for component {c.value}")
        if self.jobs < 1:
            raise ValueError(f"build parallelism must be at least 1, got {self.jobs}")
        if not self.languages:
            raise ValueError("the final compiler needs at least one language")

        # init wipes the sysroot, so it must not hold anything else we need
        sysroot = pathlib.Path(self.sysroot).resolve()
        if sysroot == pathlib.Path(os.sep).resolve():
            raise ValueError(f"the sysroot must not be the filesystem root ({sysroot})")
        protected = (
            (self.prefix, "the install prefix"),
            (self.workdir, "the working directory"),
            (pathlib.Path.home(), "the home directory"),
        )
        for p, what in protected:
            p = pathlib.Path(p).resolve()
            if p == sysroot or sysroot in p.parents:
                raise ValueError(f"the sysroot must not be or contain {what} ({sysroot})")

    # layout under the working directory

    @property
    def src_dir(self) -> pathlib.Path:
        return self.workdir / "src"

    @property
    def build_root(self) -> pathlib.Path:
        return self.workdir / "build"

    @property
    def logs_dir(self) -> pathlib.Path:
        return self.workdir / "logs"

    @property
    def bin_dir(self) -> pathlib.Path:
        return self.prefix / "bin"

    # target properties

    @property
    def target_arch(self) -> str:
        return self.target.split("-", 1)[0]

    @property
    def kernel_arch(self) -> str:
        return canonicalize_kernel_arch(self.target_arch)

    @property
    def kernel_series(self) -> str:
        try:
            v = semver.Version.parse(self.versions.linux, optional_minor_and_patch=True)
        except ValueError as e:
            raise ValueError(
                f"cannot parse Linux version '{self.versions.linux}': {e}"
            ) from e
        return f"{v.major}.{v.minor}"

    @property
    def expected_file_arch(self) -> str:
        if self.file_arch:
            return self.file_arch
        if desc := describe_file_arch(self.target_arch):
            return desc
        raise ValueError(
            f"don't know what file(1) reports for {self.target_arch}; please configure target.file_arch"
        )

    def tool(self, name: str) -> str:
        """Returns the triplet-prefixed name of a cross tool, e.g. ``aarch64-linux-gnu-gcc``."""
        return f"{self.target}-{name}"

    def artifacts(self) -> Iterator[SourceArtifact]:
        gnu = self.mirrors.gnu.rstrip("/")
        for c in (Component.BINUTILS, Component.GCC, Component.GLIBC):
            ver = self.versions[c]
            archive = f"{c.value}-{ver}.tar.xz"
            if c == Component.GCC:
                url = f"{gnu}/gcc/gcc-{ver}/{archive}"
            else:
                url = f"{gnu}/{c.value}/{archive}"
            yield SourceArtifact(
                component=c,
                name=c.value,
                version=ver,
                archive_name=archive,
                url=url,
                extracted_dir=f"{c.value}-{ver}",
                needs_prerequisites=c == Component.GCC,
            )

        ver = self.versions.linux
        major = ver.split(".", 1)[0]
        archive = f"linux-{ver}.tar.xz"
        yield SourceArtifact(
            component=Component.LINUX,
            name="linux",
            version=ver,
            archive_name=archive,
            url=f"{self.mirrors.kernel.rstrip('/')}/v{major}.x/{archive}",
            extracted_dir=f"linux-{ver}",
        )
