# make the shared fixtures visible to every test module
from .fixtures import (  # noqa: F401
    crossboot_cli_runner,
    crossboot_logger,
    mock_gm,
    pipeline_harness,
    toolchain_spec,
)
