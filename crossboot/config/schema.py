from typing import Final, Sequence

from .errors import (
    InvalidConfigKeyError,
    InvalidConfigSectionError,
    InvalidConfigValueError,
    InvalidConfigValueTypeError,
)


def parse_config_key(key: str | Sequence[str]) -> list[str]:
    if isinstance(key, str):
        return key.split(".")
    return list(key)


SECTION_VERSIONS: Final = "versions"
KEY_VERSIONS_GCC: Final = "gcc"
KEY_VERSIONS_BINUTILS: Final = "binutils"
KEY_VERSIONS_GLIBC: Final = "glibc"
KEY_VERSIONS_LINUX: Final = "linux"

SECTION_TARGET: Final = "target"
KEY_TARGET_TRIPLET: Final = "triplet"
KEY_TARGET_ARCH: Final = "arch"
KEY_TARGET_TUNE: Final = "tune"
KEY_TARGET_FILE_ARCH: Final = "file_arch"

SECTION_PATHS: Final = "paths"
KEY_PATHS_PREFIX: Final = "prefix"
KEY_PATHS_SYSROOT: Final = "sysroot"
KEY_PATHS_WORKDIR: Final = "workdir"

SECTION_MIRRORS: Final = "mirrors"
KEY_MIRRORS_GNU: Final = "gnu"
KEY_MIRRORS_KERNEL: Final = "kernel"

SECTION_BUILD: Final = "build"
KEY_BUILD_JOBS: Final = "jobs"
KEY_BUILD_LANGUAGES: Final = "languages"
KEY_BUILD_HOST_CC: Final = "host_cc"
KEY_BUILD_HOST_CXX: Final = "host_cxx"

SECTION_RECIPE: Final = "recipe"
KEY_RECIPE_LIMITS_FRAGMENTS: Final = "limits_fragments"
KEY_RECIPE_STARTFILES: Final = "startfiles"
KEY_RECIPE_DUMMY_FILES: Final = "dummy_files"

SECTION_REPORT: Final = "report"
KEY_REPORT_SUM_FILES: Final = "sum_files"
KEY_REPORT_EXPECTED_TOTAL: Final = "expected_total"

_SCHEMA: Final[dict[str, dict[str, type]]] = {
    SECTION_VERSIONS: {
        KEY_VERSIONS_GCC: str,
        KEY_VERSIONS_BINUTILS: str,
        KEY_VERSIONS_GLIBC: str,
        KEY_VERSIONS_LINUX: str,
    },
    SECTION_TARGET: {
        KEY_TARGET_TRIPLET: str,
        KEY_TARGET_ARCH: str,
        KEY_TARGET_TUNE: str,
        KEY_TARGET_FILE_ARCH: str,
    },
    SECTION_PATHS: {
        KEY_PATHS_PREFIX: str,
        KEY_PATHS_SYSROOT: str,
        KEY_PATHS_WORKDIR: str,
    },
    SECTION_MIRRORS: {
        KEY_MIRRORS_GNU: str,
        KEY_MIRRORS_KERNEL: str,
    },
    SECTION_BUILD: {
        KEY_BUILD_JOBS: int,
        KEY_BUILD_LANGUAGES: list,
        KEY_BUILD_HOST_CC: str,
        KEY_BUILD_HOST_CXX: str,
    },
    SECTION_RECIPE: {
        KEY_RECIPE_LIMITS_FRAGMENTS: list,
        KEY_RECIPE_STARTFILES: list,
        KEY_RECIPE_DUMMY_FILES: list,
    },
    SECTION_REPORT: {
        KEY_REPORT_SUM_FILES: list,
        KEY_REPORT_EXPECTED_TOTAL: int,
    },
}

SECTIONS: Final = tuple(_SCHEMA.keys())


def validate_section(section: str) -> None:
    if section not in _SCHEMA:
        raise InvalidConfigSectionError(section)


def get_expected_type_for_config_key(key: str | Sequence[str]) -> type:
    parsed_key = parse_config_key(key)
    if len(parsed_key) != 2:
        # there's no nested config option
        raise InvalidConfigKeyError(key)

    section, sel = parsed_key
    try:
        return _SCHEMA[section][sel]
    except KeyError:
        raise InvalidConfigKeyError(key) from None


def ensure_valid_config_kv(key: str | Sequence[str], val: object) -> None:
    expected = get_expected_type_for_config_key(key)
    ensure_value_type(key, val, expected)

    section, sel = parse_config_key(key)
    if section == SECTION_BUILD and sel == KEY_BUILD_JOBS:
        # value type is already ensured earlier
        assert isinstance(val, int)
        if val < 1:
            raise InvalidConfigValueError(key, val, "must be at least 1")
    elif section == SECTION_REPORT and sel == KEY_REPORT_EXPECTED_TOTAL:
        assert isinstance(val, int)
        if val < 0:
            raise InvalidConfigValueError(key, val, "must not be negative")


def ensure_value_type(
    key: str | Sequence[str],
    val: object,
    expected: type,
) -> None:
    # TOML booleans are not integers for our purposes
    if isinstance(val, bool) and expected is not bool:
        raise InvalidConfigValueTypeError(key, val, expected)

    if not isinstance(val, expected):
        raise InvalidConfigValueTypeError(key, val, expected)

    if expected is list and not all(isinstance(i, str) for i in val):  # type: ignore[attr-defined]
        raise InvalidConfigValueTypeError(key, val, (list, str))


def encode_value(v: object) -> str:
    """Encodes the given config value into a string representation suitable for
    display."""

    if isinstance(v, bool):
        return "true" if v else "false"
    elif isinstance(v, int):
        return str(v)
    elif isinstance(v, str):
        return v
    elif isinstance(v, (list, tuple)):
        return ",".join(encode_value(i) for i in v)
    else:
        raise NotImplementedError(f"invalid type for config value: {type(v)}")
