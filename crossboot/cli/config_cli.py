import argparse
from typing import TYPE_CHECKING

from .build_cli import add_spec_args, spec_from_args
from .cmd import RootCommand

if TYPE_CHECKING:
    import tomlkit

    from ..config import GlobalConfig
    from ..toolchain.spec import ToolchainSpec


# Config inspection commands
class ConfigCommand(
    RootCommand,
    cmd="config",
    has_subcommands=True,
    help="Inspect crossboot's config options",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        pass


class ConfigGetCommand(
    ConfigCommand,
    cmd="get",
    help="Query the value of a crossboot config option",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "key",
            type=str,
            help="The config option to query, e.g. versions.gcc",
        )

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        from ..config.errors import InvalidConfigKeyError
        from ..config.schema import encode_value

        key: str = args.key

        try:
            val = cfg.get_by_key(key)
        except InvalidConfigKeyError:
            cfg.logger.F(f"unknown config key [yellow]{key}[/]")
            return 1

        if val is None:
            # unset, and derived from other options at build time
            return 1

        cfg.logger.stdout(encode_value(val))
        return 0


class ConfigShowCommand(
    ConfigCommand,
    cmd="show",
    help="Print the fully resolved build configuration as TOML",
):
    @classmethod
    def configure_args(cls, gc: "GlobalConfig", p: argparse.ArgumentParser) -> None:
        add_spec_args(p)

    @classmethod
    def main(cls, cfg: "GlobalConfig", args: argparse.Namespace) -> int:
        import tomlkit
        from rich.text import Text

        spec = spec_from_args(cfg, args)
        if spec is None:
            return 1

        doc = dump_resolved_config(cfg, spec)
        # TOML table headers would otherwise be parsed as markup
        cfg.logger.stdout(Text(tomlkit.dumps(doc)), end="")
        return 0


def dump_resolved_config(
    cfg: "GlobalConfig",
    spec: "ToolchainSpec",
) -> "tomlkit.TOMLDocument":
    import tomlkit

    from ..config import schema
    from ..toolchain.spec import Component

    doc = tomlkit.document()
    doc.add(tomlkit.comment("crossboot configuration, as resolved from all sources"))
    for path in cfg.applied_files:
        doc.add(tomlkit.comment(f"applied: {path}"))

    versions = tomlkit.table()
    for c in Component:
        versions.add(c.value, spec.versions[c])
    doc.add(schema.SECTION_VERSIONS, versions)

    target = tomlkit.table()
    target.add(schema.KEY_TARGET_TRIPLET, spec.target)
    if spec.arch_flags.arch:
        target.add(schema.KEY_TARGET_ARCH, spec.arch_flags.arch)
    if spec.arch_flags.tune:
        target.add(schema.KEY_TARGET_TUNE, spec.arch_flags.tune)
    try:
        target.add(schema.KEY_TARGET_FILE_ARCH, spec.expected_file_arch)
    except ValueError:
        pass
    doc.add(schema.SECTION_TARGET, target)

    paths = tomlkit.table()
    paths.add(schema.KEY_PATHS_PREFIX, str(spec.prefix))
    paths.add(schema.KEY_PATHS_SYSROOT, str(spec.sysroot))
    paths.add(schema.KEY_PATHS_WORKDIR, str(spec.workdir))
    doc.add(schema.SECTION_PATHS, paths)

    mirrors = tomlkit.table()
    mirrors.add(schema.KEY_MIRRORS_GNU, spec.mirrors.gnu)
    mirrors.add(schema.KEY_MIRRORS_KERNEL, spec.mirrors.kernel)
    doc.add(schema.SECTION_MIRRORS, mirrors)

    build = tomlkit.table()
    build.add(schema.KEY_BUILD_JOBS, spec.jobs)
    build.add(schema.KEY_BUILD_LANGUAGES, list(spec.languages))
    build.add(schema.KEY_BUILD_HOST_CC, spec.host_cc)
    build.add(schema.KEY_BUILD_HOST_CXX, spec.host_cxx)
    doc.add(schema.SECTION_BUILD, build)

    recipe = tomlkit.table()
    recipe.add(schema.KEY_RECIPE_LIMITS_FRAGMENTS, list(spec.recipe.limits_fragments))
    recipe.add(schema.KEY_RECIPE_STARTFILES, list(spec.recipe.startfiles))
    recipe.add(schema.KEY_RECIPE_DUMMY_FILES, list(spec.recipe.dummy_files))
    doc.add(schema.SECTION_RECIPE, recipe)

    report = tomlkit.table()
    report.add(schema.KEY_REPORT_SUM_FILES, list(cfg.sum_files))
    report.add(schema.KEY_REPORT_EXPECTED_TOTAL, cfg.expected_total)
    doc.add(schema.SECTION_REPORT, report)

    return doc
