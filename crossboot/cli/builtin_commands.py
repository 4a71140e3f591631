# Importing these modules registers their commands with RootCommand.
from . import build_cli
from . import config_cli
from . import report_cli
from . import stages_cli
from . import version_cli

del build_cli
del config_cli
del report_cli
del stages_cli
del version_cli
