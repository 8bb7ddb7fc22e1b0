"""
Photo record model for posinglib application.

This module contains the PhotoRecord dataclass stored in DuckDB, the
composition tag options, and the child tag variants. Child tags come in two
stored shapes: the current ``{"id", "count"}`` objects and the legacy bare
age-group ids written before per-tag counts existed. Both are decoded once,
in ``parse_children``, into explicit variants.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Union

# Composition tag options (value, label)
GRANDPARENT_OPTIONS = [
    ("none", "없음"),
    ("grandfather", "👴 할아버지"),
    ("grandmother", "👵 할머니"),
    ("both", "👴👵 조부모 모두"),
]

PARENT_OPTIONS = [
    ("none", "없음"),
    ("mom", "👩 엄마"),
    ("dad", "👨 아빠"),
    ("both", "👩‍❤️‍👨 부모 모두"),
]

CHILD_OPTIONS = [
    ("newborn", "👶 신생아 (0–100일)"),
    ("toddler", "🍼 영유아 (돌~4세)"),
    ("kid", "🎒 유아·초등 (5–13세)"),
    ("teen", "🧑 중·고등학생"),
    ("adult_child", "🧑‍🎓 성인 자녀 (20대 이상)"),
]

GRANDPARENT_VALUES = tuple(value for value, _ in GRANDPARENT_OPTIONS)
PARENT_VALUES = tuple(value for value, _ in PARENT_OPTIONS)
AGE_GROUPS = tuple(value for value, _ in CHILD_OPTIONS)


@dataclass(frozen=True)
class CountedChildTag:
    """Age group with the number of children of that age in the photo."""

    age_group: str
    count: int = 1

    def to_dict(self) -> dict:
        return {"id": self.age_group, "count": self.count}


@dataclass(frozen=True)
class LegacyChildTag:
    """Age group stored without a count by older records."""

    age_group: str

    def to_dict(self) -> str:
        return self.age_group


ChildTag = Union[CountedChildTag, LegacyChildTag]


def parse_children(raw_children: Any, raw_tags: Any = None) -> tuple[ChildTag, ...]:
    """
    Decode stored child tags into explicit variants.

    A ``children`` list whose first element is not a bare string is read as
    counted tags, including the empty list. Bare strings, or a missing
    ``children`` field, are read as legacy tags, falling back to
    ``children_tags`` when ``children`` is absent.

    Args:
        raw_children: Stored ``children`` value (list, JSON text or None)
        raw_tags: Stored ``children_tags`` value (list, JSON text or None)

    Returns:
        Tuple of CountedChildTag or LegacyChildTag entries
    """
    children = _load_json_list(raw_children)
    if children is not None and (not children or not isinstance(children[0], str)):
        return tuple(
            CountedChildTag(age_group=str(item["id"]), count=int(item.get("count", 1)))
            for item in children
            if isinstance(item, dict) and "id" in item
        )

    legacy_ids = children if children is not None else (_load_json_list(raw_tags) or [])
    return tuple(LegacyChildTag(age_group=str(age_group)) for age_group in legacy_ids)


def _load_json_list(value: Any) -> list | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value)
    return list(value) if value is not None else None


def serialize_children(children: tuple[ChildTag, ...] | list[ChildTag]) -> list:
    """Convert child tags to their stored JSON shape."""
    return [child.to_dict() for child in children]


def derive_children_tags(children: tuple[ChildTag, ...] | list[ChildTag]) -> list[str]:
    """Age-group ids of the given child tags, kept alongside ``children`` for querying."""
    return [child.age_group for child in children]


def toggle_child_tag(children: list[CountedChildTag], age_group: str) -> list[CountedChildTag]:
    """Remove the age group if present, otherwise append it with a count of 1."""
    if any(child.age_group == age_group for child in children):
        return [child for child in children if child.age_group != age_group]
    return [*children, CountedChildTag(age_group=age_group, count=1)]


def change_child_count(children: list[CountedChildTag], age_group: str, delta: int) -> list[CountedChildTag]:
    """Shift one age group's count by ``delta``, never below 1."""
    return [
        CountedChildTag(age_group=child.age_group, count=max(1, child.count + delta))
        if child.age_group == age_group
        else child
        for child in children
    ]


@dataclass
class TagMetadata:
    """
    Composition tags shared by every image of an upload batch.

    Also backs the edit form, where saving replaces all tag fields of a
    record at once.
    """

    head_count: int = 3
    grandparents: str = "none"
    parents: str = "both"
    children: list[CountedChildTag] = field(default_factory=list)
    pet_count: int = 0
    memo: str = ""

    @classmethod
    def from_record(cls, record: "PhotoRecord") -> "TagMetadata":
        """
        Start an edit form from a stored record.

        Legacy child tags become counted tags with a count of 1, so saving the
        edit migrates the record to the current shape.
        """
        return cls(
            head_count=record.head_count or 1,
            grandparents=record.grandparents or "none",
            parents=record.parents or "none",
            children=[
                child if isinstance(child, CountedChildTag) else CountedChildTag(child.age_group, 1)
                for child in record.children
            ],
            pet_count=record.pet_count or 0,
            memo=record.memo or "",
        )

    @property
    def children_tags(self) -> list[str]:
        return derive_children_tags(self.children)

    def toggle_child(self, age_group: str) -> None:
        self.children = toggle_child_tag(self.children, age_group)

    def change_child_count(self, age_group: str, delta: int) -> None:
        self.children = change_child_count(self.children, age_group, delta)

    def toggle_pet(self) -> None:
        self.pet_count = 0 if self.pet_count > 0 else 1

    def change_pet_count(self, delta: int) -> None:
        self.pet_count = max(1, self.pet_count + delta)

    def validate(self) -> list[str]:
        """
        Check tag values.

        Returns:
            List of problems, empty when the tags are valid
        """
        problems = []
        if int(self.head_count) < 1:
            problems.append("head_count must be at least 1")
        if self.grandparents not in GRANDPARENT_VALUES:
            problems.append(f"unknown grandparents value '{self.grandparents}'")
        if self.parents not in PARENT_VALUES:
            problems.append(f"unknown parents value '{self.parents}'")
        for child in self.children:
            if child.age_group not in AGE_GROUPS:
                problems.append(f"unknown age group '{child.age_group}'")
            if child.count < 1:
                problems.append(f"child count for '{child.age_group}' must be at least 1")
        if self.pet_count < 0:
            problems.append("pet_count must not be negative")
        return problems

    def to_fields(self) -> dict[str, Any]:
        """Tag fields as written to the store, with ``children_tags`` derived."""
        return {
            "head_count": int(self.head_count),
            "grandparents": self.grandparents,
            "parents": self.parents,
            "children": list(self.children),
            "children_tags": self.children_tags,
            "pet_count": int(self.pet_count),
            "memo": self.memo,
        }


@dataclass
class PhotoRecord:
    """
    One uploaded reference image with its composition tags.

    ``id`` and ``created_at`` are assigned by the store.
    """

    id: str
    user_id: str
    image_url: str
    head_count: int
    grandparents: str
    parents: str
    children: tuple[ChildTag, ...]
    children_tags: list[str]
    pet_count: int
    memo: str
    is_favorite: bool
    created_at: datetime

    @property
    def has_legacy_children(self) -> bool:
        return any(isinstance(child, LegacyChildTag) for child in self.children)

    def to_dict(self) -> dict:
        """
        Convert PhotoRecord to dictionary for database storage.

        Returns:
            Dictionary representation with JSON-encoded child tags
        """
        return {
            "id": self.id,
            "user_id": self.user_id,
            "image_url": self.image_url,
            "head_count": self.head_count,
            "grandparents": self.grandparents,
            "parents": self.parents,
            "children": json.dumps(serialize_children(self.children)),
            "children_tags": json.dumps(self.children_tags),
            "pet_count": self.pet_count,
            "memo": self.memo,
            "is_favorite": self.is_favorite,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PhotoRecord":
        """
        Create PhotoRecord from dictionary (e.g., from database).

        Args:
            data: Dictionary containing record fields; missing tag fields fall
                back to the same defaults the edit form uses

        Returns:
            PhotoRecord instance
        """
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if created_at is None:
            created_at = datetime.now(UTC)
        elif created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)

        children = parse_children(data.get("children"), data.get("children_tags"))
        raw_tags = data.get("children_tags")
        children_tags = _load_json_list(raw_tags) if raw_tags is not None else derive_children_tags(children)

        return cls(
            id=data["id"],
            user_id=data.get("user_id", ""),
            image_url=data.get("image_url", ""),
            head_count=int(data.get("head_count") or 0),
            grandparents=data.get("grandparents") or "none",
            parents=data.get("parents") or "none",
            children=children,
            children_tags=[str(tag) for tag in children_tags or []],
            pet_count=int(data.get("pet_count") or 0),
            memo=data.get("memo") or "",
            is_favorite=bool(data.get("is_favorite")),
            created_at=created_at,
        )
