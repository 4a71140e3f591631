import pathlib

import pytest

from crossboot.toolchain.spec import (
    ArchFlags,
    Component,
    canonicalize_kernel_arch,
    describe_file_arch,
)

from ..fixtures import make_test_spec


def test_artifacts(tmp_path: pathlib.Path) -> None:
    spec = make_test_spec(tmp_path)
    arts = {a.component: a for a in spec.artifacts()}

    assert set(arts) == set(Component)

    gcc = arts[Component.GCC]
    assert gcc.archive_name == "gcc-14.2.0.tar.xz"
    assert gcc.url == "https://mirror.example.invalid/gnu/gcc/gcc-14.2.0/gcc-14.2.0.tar.xz"
    assert gcc.extracted_dir == "gcc-14.2.0"
    assert gcc.needs_prerequisites

    binutils = arts[Component.BINUTILS]
    assert binutils.url == "https://mirror.example.invalid/gnu/binutils/binutils-2.44.tar.xz"
    assert not binutils.needs_prerequisites

    linux = arts[Component.LINUX]
    assert linux.url == "https://kernel.example.invalid/pub/linux/kernel/v6.x/linux-6.1.21.tar.xz"
    assert linux.extracted_dir == "linux-6.1.21"


def test_layout_and_tools(tmp_path: pathlib.Path) -> None:
    spec = make_test_spec(tmp_path)

    assert spec.src_dir == tmp_path / "work" / "src"
    assert spec.build_root == tmp_path / "work" / "build"
    assert spec.logs_dir == tmp_path / "work" / "logs"
    assert spec.bin_dir == spec.prefix / "bin"
    assert spec.tool("gcc") == "aarch64-linux-gnu-gcc"
    assert spec.target_arch == "aarch64"
    assert spec.kernel_arch == "arm64"
    assert spec.kernel_series == "6.1"
    assert spec.expected_file_arch == "ARM aarch64"


def test_invalid_specs(tmp_path: pathlib.Path) -> None:
    with pytest.raises(ValueError, match="triplet"):
        make_test_spec(tmp_path, target="aarch64")
    with pytest.raises(ValueError, match="parallelism"):
        make_test_spec(tmp_path, jobs=0)
    with pytest.raises(ValueError, match="language"):
        make_test_spec(tmp_path, languages=())
    with pytest.raises(ValueError, match="install prefix"):
        make_test_spec(tmp_path, sysroot=tmp_path / "opt" / "cross")
    with pytest.raises(ValueError, match="filesystem root"):
        make_test_spec(tmp_path, sysroot=pathlib.Path("/"))

    # a sysroot above any of these would be wiped together with them
    with pytest.raises(ValueError, match="working directory"):
        make_test_spec(tmp_path, sysroot=tmp_path / "work")
    with pytest.raises(ValueError, match="install prefix"):
        make_test_spec(tmp_path, sysroot=tmp_path / "opt")
    with pytest.raises(ValueError, match="install prefix"):
        make_test_spec(tmp_path, sysroot=tmp_path)
    with pytest.raises(ValueError, match="must not be or contain"):
        make_test_spec(tmp_path, sysroot=pathlib.Path.home())

    # below the prefix is where it normally lives
    spec = make_test_spec(tmp_path, sysroot=tmp_path / "opt" / "cross" / "sysroot")
    assert spec.sysroot == tmp_path / "opt" / "cross" / "sysroot"


def test_file_arch_override(tmp_path: pathlib.Path) -> None:
    spec = make_test_spec(tmp_path, target="xtensa-linux-gnu")
    with pytest.raises(ValueError, match="file_arch"):
        spec.expected_file_arch

    spec = make_test_spec(tmp_path, target="xtensa-linux-gnu", file_arch="Tensilica Xtensa")
    assert spec.expected_file_arch == "Tensilica Xtensa"


def test_canonicalize_kernel_arch() -> None:
    testcases = [
        ("aarch64", "arm64"),
        ("armv7l", "arm"),
        ("riscv64", "riscv"),
        ("i686", "x86"),
        ("x86_64", "x86_64"),
        ("powerpc64le", "powerpc"),
        ("mips64el", "mips"),
        ("loongarch64", "loongarch"),
        ("sparc64", "sparc64"),
    ]
    for arch, expected in testcases:
        assert canonicalize_kernel_arch(arch) == expected


def test_describe_file_arch() -> None:
    assert describe_file_arch("aarch64") == "ARM aarch64"
    assert describe_file_arch("riscv64") == "RISC-V"
    assert describe_file_arch("x86_64") == "x86-64"
    assert describe_file_arch("xtensa") is None


def test_arch_flags() -> None:
    assert ArchFlags().configure_args() == []
    assert ArchFlags("armv8-a", "cortex-a72").configure_args() == [
        "--with-arch=armv8-a",
        "--with-tune=cortex-a72",
    ]
    assert ArchFlags(tune="generic").configure_args() == ["--with-tune=generic"]
