import os
import pathlib
from typing import Any, Final, Iterable, Mapping, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from typing_extensions import Self

    from ..log import CrossbootLogger
    from ..toolchain.spec import ArchFlags, ToolchainSpec
    from ..utils.global_mode import ProvidesGlobalMode
    from ..utils.xdg_basedir import XDGPathEntry

from . import errors
from . import schema


DEFAULT_APP_NAME: Final = "crossboot"
LOCAL_CONFIG_FILENAME: Final = "crossboot.toml"

DEFAULT_GCC_VERSION: Final = "14.2.0"
DEFAULT_BINUTILS_VERSION: Final = "2.44"
DEFAULT_GLIBC_VERSION: Final = "2.41"
DEFAULT_LINUX_VERSION: Final = "6.1.21"

DEFAULT_TARGET: Final = "aarch64-linux-gnu"
DEFAULT_ARCH: Final = "armv8-a"
DEFAULT_TUNE: Final = "cortex-a72"
DEFAULT_PREFIX: Final = "/opt/gcc-14-cross"

DEFAULT_GNU_MIRROR: Final = "https://ftp.gnu.org/gnu"
DEFAULT_KERNEL_MIRROR: Final = "https://cdn.kernel.org/pub/linux/kernel"

DEFAULT_SUM_FILES: Final = ("gcc/gcc.sum", "g++/g++.sum")
# the count of a complete GCC 12 C/C++ test run, for the progress estimate
DEFAULT_EXPECTED_TOTAL: Final = 410265

# (section, key) -> attribute of GlobalConfig
_KEY_ATTRS: Final[dict[tuple[str, str], str]] = {
    (schema.SECTION_VERSIONS, schema.KEY_VERSIONS_GCC): "gcc_version",
    (schema.SECTION_VERSIONS, schema.KEY_VERSIONS_BINUTILS): "binutils_version",
    (schema.SECTION_VERSIONS, schema.KEY_VERSIONS_GLIBC): "glibc_version",
    (schema.SECTION_VERSIONS, schema.KEY_VERSIONS_LINUX): "linux_version",
    (schema.SECTION_TARGET, schema.KEY_TARGET_TRIPLET): "target",
    (schema.SECTION_TARGET, schema.KEY_TARGET_ARCH): "arch",
    (schema.SECTION_TARGET, schema.KEY_TARGET_TUNE): "tune",
    (schema.SECTION_TARGET, schema.KEY_TARGET_FILE_ARCH): "file_arch",
    (schema.SECTION_PATHS, schema.KEY_PATHS_PREFIX): "prefix",
    (schema.SECTION_PATHS, schema.KEY_PATHS_SYSROOT): "sysroot",
    (schema.SECTION_PATHS, schema.KEY_PATHS_WORKDIR): "workdir",
    (schema.SECTION_MIRRORS, schema.KEY_MIRRORS_GNU): "gnu_mirror",
    (schema.SECTION_MIRRORS, schema.KEY_MIRRORS_KERNEL): "kernel_mirror",
    (schema.SECTION_BUILD, schema.KEY_BUILD_JOBS): "jobs",
    (schema.SECTION_BUILD, schema.KEY_BUILD_LANGUAGES): "languages",
    (schema.SECTION_BUILD, schema.KEY_BUILD_HOST_CC): "host_cc",
    (schema.SECTION_BUILD, schema.KEY_BUILD_HOST_CXX): "host_cxx",
    (schema.SECTION_RECIPE, schema.KEY_RECIPE_LIMITS_FRAGMENTS): "limits_fragments",
    (schema.SECTION_RECIPE, schema.KEY_RECIPE_STARTFILES): "startfiles",
    (schema.SECTION_RECIPE, schema.KEY_RECIPE_DUMMY_FILES): "dummy_files",
    (schema.SECTION_REPORT, schema.KEY_REPORT_SUM_FILES): "sum_files",
    (schema.SECTION_REPORT, schema.KEY_REPORT_EXPECTED_TOTAL): "expected_total",
}


class GlobalConfig:
    def __init__(
        self,
        gm: "ProvidesGlobalMode",
        logger: "CrossbootLogger",
        env: Mapping[str, str] | None = None,
    ) -> None:
        from ..toolchain.spec import DEFAULT_FINAL_LANGUAGES, BootstrapRecipe
        from ..utils.xdg_basedir import XDGBaseDir

        self._gm = gm
        self.logger = logger
        self._dirs = XDGBaseDir(DEFAULT_APP_NAME, env)

        # all defaults
        self.gcc_version: str = DEFAULT_GCC_VERSION
        self.binutils_version: str = DEFAULT_BINUTILS_VERSION
        self.glibc_version: str = DEFAULT_GLIBC_VERSION
        self.linux_version: str = DEFAULT_LINUX_VERSION

        self.target: str = DEFAULT_TARGET
        # None means the per-target default, an empty string means none at all
        self.arch: str | None = None
        self.tune: str | None = None
        self.file_arch: str | None = None

        self.prefix: str = DEFAULT_PREFIX
        self.sysroot: str | None = None
        self.workdir: str | None = None

        self.gnu_mirror: str = DEFAULT_GNU_MIRROR
        self.kernel_mirror: str = DEFAULT_KERNEL_MIRROR

        self.jobs: int | None = None
        self.languages: list[str] = list(DEFAULT_FINAL_LANGUAGES)
        self.host_cc: str = "gcc"
        self.host_cxx: str = "g++"

        recipe = BootstrapRecipe()
        self.limits_fragments: list[str] = list(recipe.limits_fragments)
        self.startfiles: list[str] = list(recipe.startfiles)
        self.dummy_files: list[str] = list(recipe.dummy_files)

        self.sum_files: list[str] = list(DEFAULT_SUM_FILES)
        self.expected_total: int = DEFAULT_EXPECTED_TOTAL

        self.applied_files: list[pathlib.Path] = []

    def _apply_config(self, config_data: Mapping[str, Any], source: str) -> None:
        for section, section_data in config_data.items():
            try:
                schema.validate_section(section)
            except errors.InvalidConfigSectionError:
                self.logger.W(
                    f"{source}: unknown config section [yellow]{section}[/]; ignoring"
                )
                continue

            if not isinstance(section_data, Mapping):
                raise errors.InvalidConfigValueTypeError(section, section_data, dict)

            for sel, val in section_data.items():
                key = f"{section}.{sel}"
                attr_name = self._get_attr_name_by_key(section, [sel])
                if attr_name is None:
                    self.logger.W(
                        f"{source}: unknown config key [yellow]{key}[/]; ignoring"
                    )
                    continue

                schema.ensure_valid_config_kv(key, val)
                if isinstance(val, list):
                    val = [str(i) for i in val]
                setattr(self, attr_name, val)

    def get_by_key(self, key: str | Sequence[str]) -> object:
        parsed_key = schema.parse_config_key(key)
        section, sel = parsed_key[0], parsed_key[1:]
        attr_name = self._get_attr_name_by_key(section, sel)
        if attr_name is None:
            raise errors.InvalidConfigKeyError(key)
        return getattr(self, attr_name)

    @classmethod
    def _get_attr_name_by_key(cls, section: str, sel: list[str]) -> str | None:
        if len(sel) != 1:
            return None
        return _KEY_ATTRS.get((section, sel[0]))

    @property
    def is_debug(self) -> bool:
        return self._gm.is_debug

    @property
    def is_porcelain(self) -> bool:
        return self._gm.is_porcelain

    def iter_xdg_configs(self) -> "Iterable[XDGPathEntry]":
        """
        Yields possible crossboot config files in all XDG config paths, sorted
        by precedence from lowest to highest (so that each file may be simply
        applied consecutively).
        """

        from ..utils.xdg_basedir import XDGPathEntry

        entries = list(self._dirs.app_config_dirs)
        for e in reversed(entries):
            yield XDGPathEntry(e.path / "config.toml", e.is_global)

    @property
    def local_user_config_file(self) -> pathlib.Path:
        return self._dirs.app_config / "config.toml"

    def apply_config_file(self, path: os.PathLike[Any]) -> None:
        """Applies one config file on top of the current values.

        Raises ``FileNotFoundError`` if the file does not exist.
        """

        import tomlkit
        from tomlkit.exceptions import ParseError

        with open(path, "rb") as fp:
            try:
                data: Any = tomlkit.load(fp).unwrap()
            except ParseError as e:
                raise errors.MalformedConfigFileError(path, str(e)) from e

        self.logger.D(f"applying config: {data}")
        self._apply_config(data, str(path))
        self.applied_files.append(pathlib.Path(path))

    def _try_apply_config_file(self, path: os.PathLike[Any]) -> None:
        try:
            self.apply_config_file(path)
        except FileNotFoundError:
            return

    @classmethod
    def load_from_config(
        cls,
        gm: "ProvidesGlobalMode",
        logger: "CrossbootLogger",
        *,
        env: Mapping[str, str] | None = None,
        cwd: pathlib.Path | None = None,
    ) -> "Self":
        obj = cls(gm, logger, env)

        for config_path, _ in obj.iter_xdg_configs():
            obj.logger.D(f"trying config file from XDG path: {config_path}")
            obj._try_apply_config_file(config_path)

        local_path = (cwd or pathlib.Path.cwd()) / LOCAL_CONFIG_FILENAME
        obj.logger.D(f"trying config file from working directory: {local_path}")
        obj._try_apply_config_file(local_path)

        return obj

    def _arch_flags_for(self, target: str) -> "ArchFlags":
        from ..toolchain.spec import ArchFlags

        arch, tune = self.arch, self.tune
        if target == DEFAULT_TARGET:
            arch = DEFAULT_ARCH if arch is None else arch
            tune = DEFAULT_TUNE if tune is None else tune
        return ArchFlags(arch=arch or None, tune=tune or None)

    def to_toolchain_spec(
        self,
        *,
        target: str | None = None,
        prefix: str | os.PathLike[Any] | None = None,
        sysroot: str | os.PathLike[Any] | None = None,
        workdir: str | os.PathLike[Any] | None = None,
        jobs: int | None = None,
    ) -> "ToolchainSpec":
        """Builds the immutable build description, with command-line overrides
        taking precedence over config file values.

        Raises ``ValueError`` if the result is not a valid build description.
        """

        from ..toolchain.spec import (
            BootstrapRecipe,
            ComponentVersions,
            Mirrors,
            ToolchainSpec,
        )

        target = target or self.target
        prefix_path = _abspath(prefix or self.prefix)
        if sysroot := sysroot or self.sysroot:
            sysroot_path = _abspath(sysroot)
        else:
            sysroot_path = prefix_path / f"{target}-sysroot"
        workdir_path = _abspath(workdir or self.workdir or pathlib.Path.cwd())

        kwargs: dict[str, Any] = {}
        j = self.jobs if jobs is None else jobs
        if j is not None:
            kwargs["jobs"] = j

        return ToolchainSpec(
            versions=ComponentVersions(
                gcc=self.gcc_version,
                binutils=self.binutils_version,
                glibc=self.glibc_version,
                linux=self.linux_version,
            ),
            target=target,
            prefix=prefix_path,
            sysroot=sysroot_path,
            workdir=workdir_path,
            mirrors=Mirrors(gnu=self.gnu_mirror, kernel=self.kernel_mirror),
            arch_flags=self._arch_flags_for(target),
            languages=tuple(self.languages),
            host_cc=self.host_cc,
            host_cxx=self.host_cxx,
            recipe=BootstrapRecipe(
                limits_fragments=tuple(self.limits_fragments),
                dummy_files=tuple(self.dummy_files),
                startfiles=tuple(self.startfiles),
            ),
            file_arch=self.file_arch or None,
            **kwargs,
        )


def _abspath(p: str | os.PathLike[Any]) -> pathlib.Path:
    return pathlib.Path(p).expanduser().absolute()
