from contextlib import AbstractContextManager
import enum
import json
import sys
from types import TracebackType
from typing import BinaryIO, TypedDict, TYPE_CHECKING

if TYPE_CHECKING:
    from typing_extensions import Self

if sys.version_info >= (3, 11):

    class PorcelainEntityType(enum.StrEnum):
        LogV1 = "log-v1"
        StageV1 = "stage-v1"
        ReportV1 = "report-v1"

else:

    class PorcelainEntityType(str, enum.Enum):
        LogV1 = "log-v1"
        StageV1 = "stage-v1"
        ReportV1 = "report-v1"


class PorcelainEntity(TypedDict):
    ty: PorcelainEntityType


class PorcelainOutput(AbstractContextManager["PorcelainOutput"]):
    def __init__(self, out: BinaryIO | None = None) -> None:
        self.out = sys.stdout.buffer if out is None else out

    def __enter__(self) -> "Self":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None:
        self.out.flush()
        return None

    def emit(self, obj: PorcelainEntity) -> None:
        s = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
        self.out.write(s.encode("utf-8"))
        self.out.write(b"\n")


class PorcelainStage(PorcelainEntity):
    name: str
    """Name of the bootstrap stage"""

    state: str
    """Pipeline state reached once the stage completed"""

    log: str
    """Path to the stage's captured log file"""


class PorcelainReport(PorcelainEntity):
    file: str | None
    """The summarized result file, or None for the aggregate totals"""

    counts: dict[str, int]
    """Number of lines per outcome keyword"""

    executed: int
    expected: int
