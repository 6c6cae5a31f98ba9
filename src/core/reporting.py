"""Submission report model and its reply text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ItemResult:
    """Outcome of one submitted rule item."""

    index: int
    kind: Optional[str]
    reason: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class SubmissionReport:
    items: List[ItemResult]

    @property
    def succeeded(self) -> List[ItemResult]:
        return [item for item in self.items if item.ok]

    @property
    def failed(self) -> List[ItemResult]:
        return [item for item in self.items if not item.ok]


def _item_label(item: ItemResult) -> str:
    label = f"Item {item.index + 1}"
    if item.kind:
        label = f"{label} ({item.kind} rule)"
    return label


def format_report(report: SubmissionReport) -> str:
    """Return the private message sent back to the submitter."""

    total = len(report.items)
    failed = report.failed
    if total == 0:
        return "The submission did not contain any rules. Nothing was changed."

    if not failed:
        return f"AutoMod configuration updated successfully! {total} rule(s) saved."

    lines: List[str] = []
    if len(failed) == total:
        lines.append(f"AutoMod configuration was not updated: all {total} rule(s) were rejected.")
    else:
        saved = total - len(failed)
        lines.append(
            f"AutoMod configuration partially updated: {saved} of {total} rule(s) saved, "
            f"{len(failed)} rejected."
        )
    lines.append("")
    for item in failed:
        reason = item.reason if not item.detail else f"{item.reason} ({item.detail})"
        lines.append(f"- {_item_label(item)}: {reason}")
    return "\n".join(lines)
