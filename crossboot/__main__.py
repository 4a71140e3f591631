#!/usr/bin/env python3

import os
import sys

from crossboot.utils.global_mode import EnvGlobalModeProvider


def entrypoint() -> None:
    gm = EnvGlobalModeProvider(os.environ, sys.argv)

    # NOTE: rich is heavy at import time, so initialization of logging is
    # deferred as late as possible

    if not sys.argv:
        from crossboot.log import CrossbootConsoleLogger

        logger = CrossbootConsoleLogger(gm)
        logger.F("no argv?")
        sys.exit(1)

    gm.record_argv0(sys.argv[0])

    from crossboot.cli.main import main
    from crossboot.config import GlobalConfig
    from crossboot.config.errors import (
        InvalidConfigValueError,
        InvalidConfigValueTypeError,
        MalformedConfigFileError,
    )
    from crossboot.log import CrossbootConsoleLogger

    logger = CrossbootConsoleLogger(gm)
    try:
        gc = GlobalConfig.load_from_config(gm, logger)
    except (
        InvalidConfigValueError,
        InvalidConfigValueTypeError,
        MalformedConfigFileError,
    ) as e:
        logger.F(f"{e}")
        sys.exit(1)
    sys.exit(main(gm, gc, sys.argv))


if __name__ == "__main__":
    entrypoint()
