"""Gallery components for posinglib application."""

import streamlit as st

from ...error_handling import ImageDecodeError
from ...logging_config import get_logger
from ...models.photo import CountedChildTag, PhotoRecord, TagMetadata
from ...services.gallery import LiveGallery
from ...services.image_processor import decode_data_url
from ..handlers.gallery import delete_record, dismiss_viewer, save_record_tags, toggle_favorite
from .tag_form import CHILD_LABELS, GRANDPARENT_LABELS, PARENT_LABELS, render_tag_form

logger = get_logger(__name__)

COLS_PER_ROW = 4


def describe_record_tags(record: PhotoRecord) -> list[str]:
    """Short tag labels shown under a thumbnail."""
    labels = [f"👥 {record.head_count}명"]
    if record.grandparents != "none":
        labels.append(GRANDPARENT_LABELS.get(record.grandparents, record.grandparents))
    if record.parents != "none":
        labels.append(PARENT_LABELS.get(record.parents, record.parents))
    for child in record.children:
        label = CHILD_LABELS.get(child.age_group, child.age_group)
        labels.append(f"{label} ×{child.count}" if isinstance(child, CountedChildTag) else label)
    if record.pet_count:
        labels.append(f"🐶 ×{record.pet_count}")
    return labels


def render_record_image(record: PhotoRecord) -> None:
    try:
        st.image(decode_data_url(record.image_url), use_container_width=True)
    except ImageDecodeError:
        st.error("📷 이미지를 표시할 수 없습니다")


def render_photo_grid(gallery: LiveGallery, records: list[PhotoRecord]) -> None:
    """
    Render records in a grid layout.

    Args:
        gallery: Live gallery the records come from
        records: Visible records, in display order
    """
    for i in range(0, len(records), COLS_PER_ROW):
        cols = st.columns(COLS_PER_ROW)
        for col, record in zip(cols, records[i : i + COLS_PER_ROW]):
            with col:
                render_photo_card(gallery, record)


def render_photo_card(gallery: LiveGallery, record: PhotoRecord) -> None:
    render_record_image(record)
    st.caption(" · ".join(describe_record_tags(record)))
    if record.memo:
        st.caption(f"📝 {record.memo}")

    col1, col2 = st.columns([3, 1])
    with col1:
        st.button(
            "🔍 크게 보기",
            key=f"view_{record.id}",
            use_container_width=True,
            on_click=gallery.open_viewer,
            args=(record.id,),
        )
    with col2:
        st.button(
            "⭐" if record.is_favorite else "☆",
            key=f"fav_{record.id}",
            use_container_width=True,
            on_click=toggle_favorite,
            args=(gallery, record),
        )


def _start_edit(record: PhotoRecord) -> None:
    st.session_state.editing_record_id = record.id
    st.session_state.edit_tags = TagMetadata.from_record(record)


def _cancel_edit() -> None:
    st.session_state.pop("editing_record_id", None)
    st.session_state.pop("edit_tags", None)


def render_edit_form(gallery: LiveGallery, record: PhotoRecord) -> None:
    """Edit form for the record shown in the viewer."""
    tags: TagMetadata = st.session_state.edit_tags
    if record.has_legacy_children:
        st.info("예전 형식의 자녀 태그입니다. 저장하면 인원수가 1명으로 기록됩니다.")
    render_tag_form(tags, key_prefix=f"edit_{record.id}")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("💾 저장", type="primary", use_container_width=True, key=f"save_{record.id}"):
            save_record_tags(gallery, record.id, tags)
            st.rerun()
    with col2:
        st.button("취소", use_container_width=True, key=f"cancel_edit_{record.id}", on_click=_cancel_edit)


def render_delete_confirmation(gallery: LiveGallery, record: PhotoRecord) -> None:
    st.warning("이 레퍼런스를 삭제할까요? 되돌릴 수 없습니다.")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("🗑️ 삭제", type="primary", use_container_width=True, key=f"confirm_delete_{record.id}"):
            delete_record(gallery, record.id)
            st.rerun()
    with col2:
        if st.button("취소", use_container_width=True, key=f"cancel_delete_{record.id}"):
            st.session_state.pop("confirm_delete_id", None)
            st.rerun(scope="fragment")


@st.dialog("레퍼런스 보기", width="large", on_dismiss=dismiss_viewer)
def render_viewer_dialog(gallery: LiveGallery) -> None:
    """Full-screen viewer with circular navigation over the visible records."""
    record = gallery.current_record
    if record is None:
        gallery.close_viewer()
        st.rerun()
        return

    visible_ids = gallery.visible_ids
    if record.id in visible_ids:
        st.caption(f"{visible_ids.index(record.id) + 1} / {len(visible_ids)}")

    render_record_image(record)
    st.markdown(" · ".join(describe_record_tags(record)))
    if record.memo:
        st.markdown(f"📝 {record.memo}")

    nav_disabled = len(visible_ids) < 2
    col1, col2, col3, col4, col5, col6 = st.columns(6)
    with col1:
        st.button("◀ 이전", key="viewer_prev", on_click=gallery.prev, disabled=nav_disabled, use_container_width=True)
    with col2:
        st.button("다음 ▶", key="viewer_next", on_click=gallery.next, disabled=nav_disabled, use_container_width=True)
    with col3:
        st.button(
            "⭐ 해제" if record.is_favorite else "☆ 즐겨찾기",
            key="viewer_favorite",
            on_click=toggle_favorite,
            args=(gallery, record),
            use_container_width=True,
        )
    with col4:
        st.button("✏️ 편집", key="viewer_edit", on_click=_start_edit, args=(record,), use_container_width=True)
    with col5:
        if st.button("🗑️ 삭제", key="viewer_delete", use_container_width=True):
            st.session_state.confirm_delete_id = record.id
    with col6:
        st.button("✖ 닫기", key="viewer_close", on_click=dismiss_viewer, use_container_width=True)

    if st.session_state.get("confirm_delete_id") == record.id:
        render_delete_confirmation(gallery, record)

    if st.session_state.get("editing_record_id") == record.id:
        st.divider()
        render_edit_form(gallery, record)
