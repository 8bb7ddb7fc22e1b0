"""Filter predicates for the reference gallery.

``matches`` is a pure predicate over one record; the gallery re-runs it over
the full snapshot every time the store pushes or the filters change.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.photo import (
    CountedChildTag,
    LegacyChildTag,
    PhotoRecord,
    change_child_count,
    toggle_child_tag,
)

ALL = "all"


@dataclass
class FilterConfig:
    """Session-local filter settings; scalar fields accept ``"all"``."""

    head_count: int | str = ALL
    grandparents: str = ALL
    parents: str = ALL
    children: list[CountedChildTag] = field(default_factory=list)
    include_pets: bool = False
    only_favorites: bool = False

    def toggle_child(self, age_group: str) -> None:
        self.children = toggle_child_tag(self.children, age_group)

    def change_child_count(self, age_group: str, delta: int) -> None:
        self.children = change_child_count(self.children, age_group, delta)

    def reset(self) -> None:
        """Restore every field to its default."""
        self.head_count = ALL
        self.grandparents = ALL
        self.parents = ALL
        self.children = []
        self.include_pets = False
        self.only_favorites = False


def _head_count_value(value: int | str) -> int | str:
    if value == ALL:
        return ALL
    return int(value)


def _child_constraint_met(record: PhotoRecord, constraint: CountedChildTag) -> bool:
    for child in record.children:
        if child.age_group != constraint.age_group:
            continue
        if isinstance(child, LegacyChildTag):
            # Legacy tags carry no count
            return True
        return child.count == constraint.count
    return False


def matches(record: PhotoRecord, config: FilterConfig) -> bool:
    """
    Check whether a record passes every active filter.

    Child constraints match a counted tag only on equal age group and count;
    a legacy tag matches on age group alone.

    Args:
        record: Photo record to test
        config: Active filter settings

    Returns:
        True if the record should be visible
    """
    if config.only_favorites and not record.is_favorite:
        return False

    head_count = _head_count_value(config.head_count)
    if head_count != ALL and record.head_count != head_count:
        return False

    if config.grandparents != ALL and record.grandparents != config.grandparents:
        return False

    if config.parents != ALL and record.parents != config.parents:
        return False

    if config.include_pets and (not record.pet_count or record.pet_count < 1):
        return False

    if config.children:
        return all(_child_constraint_met(record, constraint) for constraint in config.children)

    return True


def filter_records(records: Iterable[PhotoRecord], config: FilterConfig) -> list[PhotoRecord]:
    """Visible subset of ``records`` in their original order."""
    return [record for record in records if matches(record, config)]


def active_filter_count(config: FilterConfig) -> int:
    """Number of active filters, counting each child constraint separately."""
    count = 0
    if config.only_favorites:
        count += 1
    if config.head_count != ALL:
        count += 1
    if config.grandparents != ALL:
        count += 1
    if config.parents != ALL:
        count += 1
    if config.include_pets:
        count += 1
    return count + len(config.children)
