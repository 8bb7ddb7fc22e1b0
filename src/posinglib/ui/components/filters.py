"""Sidebar filter panel for the gallery."""

import streamlit as st

from ...services.filters import ALL
from ...services.gallery import LiveGallery
from .tag_form import GRANDPARENT_LABELS, PARENT_LABELS, render_child_selector

HEAD_COUNT_OPTIONS: list[int | str] = [ALL, *range(1, 16)]


def _with_all(labels: dict[str, str]) -> dict[str, str]:
    return {ALL: "전체", **labels}


def filter_badge(count: int) -> str:
    """Sidebar title carrying the active filter count."""
    return f"🔍 필터 ({count})" if count else "🔍 필터"


def render_filter_panel(gallery: LiveGallery) -> None:
    """Render the filter controls and apply them to the gallery."""
    filters = gallery.filters
    # Bumped on reset so every widget starts again from the defaults
    generation = st.session_state.setdefault("filter_generation", 0)
    prefix = f"filter_{generation}"

    with st.sidebar:
        st.markdown(f"### {filter_badge(gallery.active_filter_count)}")

        filters.only_favorites = st.toggle("⭐ 즐겨찾기만 보기", value=filters.only_favorites, key=f"{prefix}_fav")

        filters.head_count = st.selectbox(
            "👥 총 인원",
            HEAD_COUNT_OPTIONS,
            index=HEAD_COUNT_OPTIONS.index(filters.head_count) if filters.head_count in HEAD_COUNT_OPTIONS else 0,
            format_func=lambda value: "전체" if value == ALL else f"{value}명",
            key=f"{prefix}_head_count",
        )

        grandparent_labels = _with_all(GRANDPARENT_LABELS)
        grandparent_values = list(grandparent_labels)
        filters.grandparents = st.selectbox(
            "조부모",
            grandparent_values,
            index=grandparent_values.index(filters.grandparents) if filters.grandparents in grandparent_labels else 0,
            format_func=grandparent_labels.get,
            key=f"{prefix}_grandparents",
        )

        parent_labels = _with_all(PARENT_LABELS)
        parent_values = list(parent_labels)
        filters.parents = st.selectbox(
            "부모",
            parent_values,
            index=parent_values.index(filters.parents) if filters.parents in parent_labels else 0,
            format_func=parent_labels.get,
            key=f"{prefix}_parents",
        )

        st.markdown("**자녀 구성**")
        render_child_selector(filters, prefix)

        filters.include_pets = st.checkbox("🐶 반려동물 포함", value=filters.include_pets, key=f"{prefix}_pets")

        if gallery.active_filter_count and st.button("필터 초기화", use_container_width=True):
            gallery.reset_filters()
            st.session_state.filter_generation = generation + 1
            st.rerun()

    gallery.refresh()
