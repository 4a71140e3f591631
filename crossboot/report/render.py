import os
from typing import Any, Final, Sequence

from rich import box
from rich.table import Table
from rich.text import Text

from ..log import CrossbootLogger
from ..utils.porcelain import PorcelainEntityType, PorcelainReport
from . import OUTCOME_KINDS, progress_bar, tally_files

KIND_STYLES: Final = {
    "PASS": "green",
    "FAIL": "red",
    "XPASS": "yellow",
    "XFAIL": "yellow",
    "UNSUPPORTED": "blue",
    "UNRESOLVED": "red",
}


def make_counts_table(counts: dict[str, int]) -> Table:
    tbl = Table(box=box.SIMPLE, show_edge=False)
    tbl.add_column("KIND")
    tbl.add_column("COUNT", justify="right")

    for kind in OUTCOME_KINDS:
        style = KIND_STYLES[kind]
        tbl.add_row(f"{kind}:", f"[{style}]{counts[kind]}[/]")

    return tbl


def format_progress_line(executed: int, expected: int) -> str:
    bar, percent = progress_bar(executed, expected)
    return f"Progress (approx): [{bar}] {percent:3d}%  ({executed} / {expected} counted tests)"


def do_report(
    logger: CrossbootLogger,
    files: Sequence[str | os.PathLike[Any]],
    expected_total: int,
) -> int:
    per_file, totals = tally_files(files)

    if logger.is_porcelain:
        for path, t in per_file:
            file_record: PorcelainReport = {
                "ty": PorcelainEntityType.ReportV1,
                "file": str(path),
                "counts": t.counts if t is not None else {},
                "executed": t.executed if t is not None else 0,
                "expected": expected_total,
            }
            logger.emit_porcelain(file_record)

        total_record: PorcelainReport = {
            "ty": PorcelainEntityType.ReportV1,
            "file": None,
            "counts": totals.counts,
            "executed": totals.executed,
            "expected": expected_total,
        }
        logger.emit_porcelain(total_record)
        return 0

    for path, t in per_file:
        if t is None:
            logger.stdout(f"[cyan]=== {path} (not found) ===[/]\n")
            continue

        logger.stdout(f"[cyan]=== {path} ===[/]")
        logger.stdout(make_counts_table(t.counts))

    logger.stdout("[magenta]=== TOTAL ACROSS ALL SUITES ===[/]")
    logger.stdout(make_counts_table(totals.counts))
    # the bar is bracketed, so keep it from being parsed as markup
    logger.stdout(Text(format_progress_line(totals.executed, expected_total)))

    if totals.files_found == 0:
        logger.W("none of the given result files could be found")

    return 0
