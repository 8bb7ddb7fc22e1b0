"""Tag editing widgets shared by the upload form, the edit dialog and the filter panel."""

from typing import Any

import streamlit as st

from ...models.photo import CHILD_OPTIONS, GRANDPARENT_OPTIONS, PARENT_OPTIONS, TagMetadata

GRANDPARENT_LABELS = dict(GRANDPARENT_OPTIONS)
PARENT_LABELS = dict(PARENT_OPTIONS)
CHILD_LABELS = dict(CHILD_OPTIONS)

MAX_HEAD_COUNT = 30
MAX_CHILD_COUNT = 10
MAX_PET_COUNT = 10


def render_child_selector(holder: Any, key_prefix: str) -> None:
    """
    Age-group chips with a per-group count.

    Args:
        holder: TagMetadata or FilterConfig; its ``children`` are updated in place
        key_prefix: Unique widget key prefix
    """
    for age_group, label in CHILD_OPTIONS:
        counts = {child.age_group: child.count for child in holder.children}
        col1, col2 = st.columns([3, 2])
        with col1:
            checked = st.checkbox(label, value=age_group in counts, key=f"{key_prefix}_child_{age_group}")
        if checked != (age_group in counts):
            holder.toggle_child(age_group)
            counts = {child.age_group: child.count for child in holder.children}

        if checked:
            with col2:
                count = st.number_input(
                    f"{label} 인원",
                    min_value=1,
                    max_value=MAX_CHILD_COUNT,
                    value=min(counts[age_group], MAX_CHILD_COUNT),
                    step=1,
                    key=f"{key_prefix}_child_count_{age_group}",
                    label_visibility="collapsed",
                )
            if count != counts[age_group]:
                holder.change_child_count(age_group, int(count) - counts[age_group])


def render_tag_form(tags: TagMetadata, key_prefix: str) -> None:
    """
    Edit every tag field of ``tags`` in place.

    Widget keys include the object identity, so a fresh TagMetadata (after a
    reset) starts from clean widgets.
    """
    prefix = f"{key_prefix}_{id(tags)}"

    tags.head_count = int(
        st.number_input(
            "👥 총 인원",
            min_value=1,
            max_value=MAX_HEAD_COUNT,
            value=max(1, min(int(tags.head_count), MAX_HEAD_COUNT)),
            step=1,
            key=f"{prefix}_head_count",
        )
    )

    col1, col2 = st.columns(2)
    with col1:
        grandparent_values = list(GRANDPARENT_LABELS)
        tags.grandparents = st.selectbox(
            "조부모",
            grandparent_values,
            index=grandparent_values.index(tags.grandparents) if tags.grandparents in GRANDPARENT_LABELS else 0,
            format_func=GRANDPARENT_LABELS.get,
            key=f"{prefix}_grandparents",
        )
    with col2:
        parent_values = list(PARENT_LABELS)
        tags.parents = st.selectbox(
            "부모",
            parent_values,
            index=parent_values.index(tags.parents) if tags.parents in PARENT_LABELS else 0,
            format_func=PARENT_LABELS.get,
            key=f"{prefix}_parents",
        )

    st.markdown("**자녀 구성**")
    render_child_selector(tags, prefix)

    has_pet = st.checkbox("🐶 반려동물", value=tags.pet_count > 0, key=f"{prefix}_has_pet")
    if has_pet != (tags.pet_count > 0):
        tags.toggle_pet()
    if has_pet:
        pet_count = st.number_input(
            "반려동물 수",
            min_value=1,
            max_value=MAX_PET_COUNT,
            value=max(1, min(tags.pet_count, MAX_PET_COUNT)),
            step=1,
            key=f"{prefix}_pet_count",
        )
        tags.change_pet_count(int(pet_count) - tags.pet_count)

    tags.memo = st.text_area(
        "📝 메모",
        value=tags.memo,
        placeholder="포즈, 조명, 배경 등 메모",
        key=f"{prefix}_memo",
    )
