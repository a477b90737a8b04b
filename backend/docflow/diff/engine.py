"""Positional line diff.

Lines are compared index by index, not aligned by longest common
subsequence: inserting one line shifts every later line, so each of those
reports as ``modified``. The change review UI renders exactly these entry
types, so the algorithm's shape is kept as is.
"""

from collections.abc import Iterable

from backend.docflow.models.diff import (
    AddedLine,
    DiffEntry,
    DiffSummary,
    ModifiedLine,
    RemovedLine,
)


def compute_diff(original: str, proposed: str) -> list[DiffEntry]:
    """Compute the positional diff between two texts.

    Args:
        original: Current text
        proposed: Candidate text

    Returns:
        Entries in line order; empty when the texts are line-for-line equal
    """
    original_lines = original.split("\n")
    proposed_lines = proposed.split("\n")

    entries: list[DiffEntry] = []
    for index in range(max(len(original_lines), len(proposed_lines))):
        old = original_lines[index] if index < len(original_lines) else ""
        new = proposed_lines[index] if index < len(proposed_lines) else ""
        if old == new:
            continue

        line_number = index + 1
        if old and not new:
            entries.append(RemovedLine(line=old, line_number=line_number))
        elif new and not old:
            entries.append(AddedLine(line=new, line_number=line_number))
        else:
            entries.append(ModifiedLine(old_line=old, new_line=new, line_number=line_number))

    return entries


def summarize_diff(entries: Iterable[DiffEntry]) -> DiffSummary:
    """Count diff entries by type."""
    summary = DiffSummary()
    for entry in entries:
        if entry.type == "added":
            summary.added += 1
        elif entry.type == "removed":
            summary.removed += 1
        else:
            summary.modified += 1
    return summary
