import pathlib

import pytest

from crossboot.log import CrossbootLogger
from crossboot.toolchain.errors import SysrootStateError
from crossboot.toolchain.spec import BootstrapRecipe, ToolchainSpec
from crossboot.toolchain.sysroot import SysrootStager

from ..fixtures import LIMITS_FRAGMENTS, make_test_spec, populate_sources


def test_reset_only_once(
    crossboot_logger: CrossbootLogger,
    toolchain_spec: ToolchainSpec,
) -> None:
    stale = toolchain_spec.sysroot / "usr" / "lib" / "stale.so"
    stale.parent.mkdir(parents=True)
    stale.touch()

    s = SysrootStager(crossboot_logger, toolchain_spec)
    assert not s.is_reset
    s.reset()
    assert s.is_reset
    assert s.root.is_dir()
    assert not stale.exists()

    with pytest.raises(SysrootStateError, match="already reset"):
        s.reset()


def test_populating_requires_reset(
    crossboot_logger: CrossbootLogger,
    toolchain_spec: ToolchainSpec,
) -> None:
    s = SysrootStager(crossboot_logger, toolchain_spec)
    with pytest.raises(SysrootStateError, match="must be reset"):
        s.place_dummy_files()


def test_place_dummy_files(
    crossboot_logger: CrossbootLogger,
    toolchain_spec: ToolchainSpec,
) -> None:
    s = SysrootStager(crossboot_logger, toolchain_spec)
    s.reset()
    placed = s.place_dummy_files()

    assert placed == [
        s.root / "usr" / "lib" / "libc.so",
        s.root / "usr" / "include" / "gnu" / "stubs.h",
    ]
    for p in placed:
        assert p.is_file()
        assert p.stat().st_size == 0

    # placing again never clobbers what the full libc put there
    (s.lib_dir / "libc.so").write_text("GROUP ( libc.so.6 )\n")
    s.place_dummy_files()
    assert (s.lib_dir / "libc.so").read_text() == "GROUP ( libc.so.6 )\n"


def test_assemble_limits_header(
    crossboot_logger: CrossbootLogger,
    toolchain_spec: ToolchainSpec,
    tmp_path: pathlib.Path,
) -> None:
    populate_sources(toolchain_spec)
    gcc_src = toolchain_spec.src_dir / "gcc-14.2.0"

    s = SysrootStager(crossboot_logger, toolchain_spec)
    dest = tmp_path / "lib" / "install-tools" / "include" / "limits.h"
    assert s.assemble_limits_header(gcc_src, dest) == dest

    expected = b"".join(
        LIMITS_FRAGMENTS[k] for k in ("gcc/limitx.h", "gcc/glimits.h", "gcc/limity.h")
    )
    assert dest.read_bytes() == expected


def test_assemble_limits_header_missing_fragment(
    crossboot_logger: CrossbootLogger,
    toolchain_spec: ToolchainSpec,
    tmp_path: pathlib.Path,
) -> None:
    populate_sources(toolchain_spec)
    gcc_src = toolchain_spec.src_dir / "gcc-14.2.0"
    (gcc_src / "gcc" / "limity.h").unlink()

    s = SysrootStager(crossboot_logger, toolchain_spec)
    dest = tmp_path / "limits.h"
    with pytest.raises(SysrootStateError, match="limity.h"):
        s.assemble_limits_header(gcc_src, dest)
    assert not dest.exists()


def test_install_startfiles(
    crossboot_logger: CrossbootLogger,
    tmp_path: pathlib.Path,
) -> None:
    spec = make_test_spec(
        tmp_path,
        recipe=BootstrapRecipe(startfiles=("crt1.o", "crti.o")),
    )
    csu = tmp_path / "csu"
    csu.mkdir()
    (csu / "crt1.o").write_bytes(b"crt1")
    (csu / "crti.o").write_bytes(b"crti")

    s = SysrootStager(crossboot_logger, spec)
    s.reset()
    installed = s.install_startfiles(csu)

    assert [p.name for p in installed] == ["crt1.o", "crti.o"]
    assert (s.lib_dir / "crt1.o").read_bytes() == b"crt1"

    (csu / "crti.o").unlink()
    with pytest.raises(SysrootStateError, match="crti.o"):
        s.install_startfiles(csu)
