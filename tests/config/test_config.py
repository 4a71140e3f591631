import io
import pathlib

import pytest

from crossboot.config import DEFAULT_PREFIX, GlobalConfig
from crossboot.config.errors import (
    InvalidConfigKeyError,
    InvalidConfigValueError,
    MalformedConfigFileError,
)
from crossboot.log import CrossbootConsoleLogger
from crossboot.toolchain.spec import ArchFlags

from ..fixtures import MockGlobalModeProvider


def make_config(tmp_path: pathlib.Path) -> tuple[GlobalConfig, dict[str, str]]:
    env = {
        "HOME": str(tmp_path / "home"),
        "XDG_CONFIG_HOME": str(tmp_path / "xdg-home"),
        "XDG_CONFIG_DIRS": str(tmp_path / "xdg-sys"),
    }
    gm = MockGlobalModeProvider()
    logger = CrossbootConsoleLogger(gm, stdout=io.StringIO(), stderr=io.StringIO())
    return GlobalConfig(gm, logger, env), env


def write(p: pathlib.Path, content: str) -> pathlib.Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


def test_defaults(tmp_path: pathlib.Path) -> None:
    cfg, _ = make_config(tmp_path)
    spec = cfg.to_toolchain_spec(workdir=tmp_path)

    assert spec.target == "aarch64-linux-gnu"
    assert spec.prefix == pathlib.Path(DEFAULT_PREFIX)
    assert spec.sysroot == pathlib.Path(DEFAULT_PREFIX) / "aarch64-linux-gnu-sysroot"
    assert spec.workdir == tmp_path
    assert spec.arch_flags == ArchFlags("armv8-a", "cortex-a72")
    assert spec.versions.gcc == "14.2.0"
    assert spec.jobs >= 1
    assert cfg.get_by_key("build.host_cc") == "gcc"
    assert cfg.get_by_key("paths.sysroot") is None


def test_layered_config_files(tmp_path: pathlib.Path) -> None:
    cfg, env = make_config(tmp_path)
    write(
        pathlib.Path(env["XDG_CONFIG_DIRS"]) / "crossboot" / "config.toml",
        '[versions]\ngcc = "13.3.0"\nglibc = "2.39"\n\n[build]\njobs = 2\n',
    )
    write(
        pathlib.Path(env["XDG_CONFIG_HOME"]) / "crossboot" / "config.toml",
        '[versions]\ngcc = "14.1.0"\n',
    )
    cwd = tmp_path / "cwd"
    write(cwd / "crossboot.toml", "[build]\njobs = 6\nlanguages = [\"c\", \"c++\"]\n")

    cfg = GlobalConfig.load_from_config(
        MockGlobalModeProvider(), cfg.logger, env=env, cwd=cwd
    )

    assert cfg.gcc_version == "14.1.0"
    assert cfg.glibc_version == "2.39"
    assert cfg.jobs == 6
    assert cfg.languages == ["c", "c++"]
    assert [p.name for p in cfg.applied_files] == [
        "config.toml",
        "config.toml",
        "crossboot.toml",
    ]


def test_command_line_overrides(tmp_path: pathlib.Path) -> None:
    cfg, _ = make_config(tmp_path)
    cfg.apply_config_file(
        write(tmp_path / "c.toml", '[paths]\nprefix = "/opt/from-config"\n\n[build]\njobs = 3\n')
    )

    spec = cfg.to_toolchain_spec(
        target="riscv64-linux-gnu",
        prefix=tmp_path / "cross",
        workdir=tmp_path / "w",
        jobs=12,
    )
    assert spec.target == "riscv64-linux-gnu"
    assert spec.prefix == tmp_path / "cross"
    assert spec.sysroot == tmp_path / "cross" / "riscv64-linux-gnu-sysroot"
    assert spec.jobs == 12
    # the aarch64 tuning defaults do not carry over to other targets
    assert spec.arch_flags == ArchFlags()

    with pytest.raises(ValueError):
        cfg.to_toolchain_spec(jobs=0, workdir=tmp_path)


def test_arch_flags_can_be_disabled(tmp_path: pathlib.Path) -> None:
    cfg, _ = make_config(tmp_path)
    cfg.apply_config_file(write(tmp_path / "c.toml", '[target]\ntune = ""\n'))
    spec = cfg.to_toolchain_spec(workdir=tmp_path)
    assert spec.arch_flags == ArchFlags("armv8-a", None)


def test_recipe_from_config(tmp_path: pathlib.Path) -> None:
    cfg, _ = make_config(tmp_path)
    cfg.apply_config_file(
        write(tmp_path / "c.toml", '[recipe]\nstartfiles = ["crt1.o", "crti.o", "crtn.o", "Scrt1.o"]\n')
    )
    spec = cfg.to_toolchain_spec(workdir=tmp_path)
    assert spec.recipe.startfiles == ("crt1.o", "crti.o", "crtn.o", "Scrt1.o")
    assert spec.recipe.dummy_files == ("usr/lib/libc.so", "usr/include/gnu/stubs.h")


def test_unknown_keys_are_ignored(tmp_path: pathlib.Path) -> None:
    cfg, _ = make_config(tmp_path)
    cfg.apply_config_file(
        write(tmp_path / "c.toml", '[packages]\nfoo = 1\n\n[build]\ncolor = true\njobs = 5\n')
    )
    assert cfg.jobs == 5

    with pytest.raises(InvalidConfigKeyError):
        cfg.get_by_key("build.color")


def test_invalid_config_files(tmp_path: pathlib.Path) -> None:
    cfg, _ = make_config(tmp_path)

    with pytest.raises(MalformedConfigFileError):
        cfg.apply_config_file(write(tmp_path / "bad.toml", "[build\njobs = 1\n"))
    with pytest.raises(InvalidConfigValueError):
        cfg.apply_config_file(write(tmp_path / "zero.toml", "[build]\njobs = 0\n"))
    with pytest.raises(TypeError):
        cfg.apply_config_file(write(tmp_path / "type.toml", '[versions]\ngcc = 14\n'))
    with pytest.raises(FileNotFoundError):
        cfg.apply_config_file(tmp_path / "missing.toml")
