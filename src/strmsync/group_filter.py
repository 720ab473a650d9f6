from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

DEFAULT_GROUP = "Dummy"


def normalize_group(label: Optional[str]) -> str:
    return (label or "").strip().lower()


def group_keys(labels: Iterable[str]) -> frozenset[str]:
    return frozenset(key for key in (normalize_group(label) for label in labels) if key)


def ensure_disjoint(include: Iterable[str], exclude: Iterable[str]) -> None:
    """Raise ``ValueError`` when a group is both included and excluded."""
    overlap = group_keys(include) & group_keys(exclude)
    if overlap:
        names = ", ".join(sorted(overlap))
        raise ValueError(f"include_groups and exclude_groups cannot share group names: {names}")


@dataclass(frozen=True, slots=True)
class GroupDecision:
    accepted: bool
    label: str
    reason: Optional[str] = None


class GroupFilter:
    """Decides whether a record's group participates in the run.

    Matching is case-insensitive and ignores surrounding whitespace. An empty
    group label is replaced by ``default_group`` before matching.
    """

    def __init__(
        self,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        default_group: str = DEFAULT_GROUP,
    ) -> None:
        self.include = group_keys(include)
        self.exclude = group_keys(exclude)
        self.default_group = default_group

    def resolve_label(self, raw_label: Optional[str]) -> str:
        label = normalize_group(raw_label)
        return label or self.default_group

    def evaluate(self, raw_label: Optional[str]) -> GroupDecision:
        label = self.resolve_label(raw_label)
        key = normalize_group(label)
        if key in self.exclude:
            return GroupDecision(False, label, "excluded")
        if self.include and key not in self.include:
            return GroupDecision(False, label, "not-included")
        return GroupDecision(True, label)
