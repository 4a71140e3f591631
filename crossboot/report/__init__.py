"""Tallies of DejaGnu ``.sum`` result files.

Each line of a ``.sum`` file that records a test outcome starts with the
outcome keyword followed by a colon, e.g. ``PASS: gcc.dg/foo.c (test for
excess errors)``. Only the text before the first colon is considered, and
it must equal one of :data:`OUTCOME_KINDS` exactly.
"""

from dataclasses import dataclass, field
import os
import pathlib
from typing import Any, Final, Iterable

OUTCOME_KINDS: Final = (
    "PASS",
    "FAIL",
    "XPASS",
    "XFAIL",
    "UNSUPPORTED",
    "UNRESOLVED",
)

# UNSUPPORTED tests were skipped rather than run
EXECUTED_KINDS: Final = ("PASS", "FAIL", "XPASS", "XFAIL", "UNRESOLVED")

PROGRESS_BAR_WIDTH: Final = 40


def _zero_counts() -> dict[str, int]:
    return {k: 0 for k in OUTCOME_KINDS}


@dataclass
class SumFileTally:
    path: pathlib.Path
    counts: dict[str, int] = field(default_factory=_zero_counts)

    @property
    def executed(self) -> int:
        return sum(self.counts[k] for k in EXECUTED_KINDS)


def count_outcomes(lines: Iterable[str]) -> dict[str, int]:
    counts = _zero_counts()
    for line in lines:
        kind = line.rstrip("\n").split(":", 1)[0]
        if kind in counts:
            counts[kind] += 1
    return counts


def tally_file(path: str | os.PathLike[Any]) -> SumFileTally | None:
    """Returns the per-kind counts of one file, or ``None`` if it does not exist."""

    p = pathlib.Path(path)
    try:
        with open(p, "r", encoding="utf-8", errors="replace") as fp:
            return SumFileTally(p, count_outcomes(fp))
    except FileNotFoundError:
        return None


@dataclass
class ReportTotals:
    counts: dict[str, int] = field(default_factory=_zero_counts)
    files_found: int = 0

    def add(self, tally: SumFileTally) -> None:
        for k, n in tally.counts.items():
            self.counts[k] += n
        self.files_found += 1

    @property
    def executed(self) -> int:
        return sum(self.counts[k] for k in EXECUTED_KINDS)


def tally_files(
    paths: Iterable[str | os.PathLike[Any]],
) -> tuple[list[tuple[pathlib.Path, SumFileTally | None]], ReportTotals]:
    per_file: list[tuple[pathlib.Path, SumFileTally | None]] = []
    totals = ReportTotals()
    for path in paths:
        t = tally_file(path)
        per_file.append((pathlib.Path(path), t))
        if t is not None:
            totals.add(t)
    return per_file, totals


def progress_bar(
    executed: int,
    expected: int,
    width: int = PROGRESS_BAR_WIDTH,
) -> tuple[str, int]:
    """Renders a fixed-width ``#``/``.`` bar and the integer percentage, both
    capped at full. An expected count of zero or less renders as empty."""

    filled = 0
    percent = 0
    if expected > 0:
        percent = min(executed * 100 // expected, 100)
        filled = min(executed * width // expected, width)
    return "#" * filled + "." * (width - filled), percent
