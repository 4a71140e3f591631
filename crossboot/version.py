from typing import Final

CROSSBOOT_SEMVER: Final = "0.3.0"
CROSSBOOT_USER_AGENT: Final = f"crossboot/{CROSSBOOT_SEMVER}"

COPYRIGHT_NOTICE: Final = """\
License: Apache-2.0 <https://www.apache.org/licenses/LICENSE-2.0>
\
"""
