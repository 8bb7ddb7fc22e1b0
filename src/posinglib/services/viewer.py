"""Full-screen viewer navigation state.

The viewer is either closed (``current_id is None``) or open on one record id.
Navigation walks the currently visible (filtered) sequence circularly.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from ..logging_config import get_logger

logger = get_logger(__name__)

SWIPE_THRESHOLD_PX = 50


@dataclass
class ViewerState:
    """Open/closed state of the full-screen viewer."""

    current_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.current_id is not None

    def open(self, record_id: str) -> None:
        self.current_id = record_id

    def close(self) -> None:
        self.current_id = None

    def _step(self, visible_ids: Sequence[str], offset: int) -> None:
        if self.current_id is None or len(visible_ids) < 2:
            return
        try:
            index = list(visible_ids).index(self.current_id)
        except ValueError:
            return
        length = len(visible_ids)
        self.current_id = visible_ids[(index + offset + length) % length]

    def next(self, visible_ids: Sequence[str]) -> None:
        """Advance to the following visible record, wrapping to the first."""
        self._step(visible_ids, 1)

    def prev(self, visible_ids: Sequence[str]) -> None:
        """Go back to the preceding visible record, wrapping to the last."""
        self._step(visible_ids, -1)

    def handle_key(self, key: str, visible_ids: Sequence[str]) -> None:
        """Arrow keys navigate, Escape closes; ignored while closed."""
        if not self.is_open:
            return
        if key == "ArrowRight":
            self.next(visible_ids)
        elif key == "ArrowLeft":
            self.prev(visible_ids)
        elif key == "Escape":
            self.close()

    def handle_swipe(self, start_x: float | None, end_x: float | None, visible_ids: Sequence[str]) -> None:
        """
        Apply a horizontal drag.

        A leftward drag of at least the threshold shows the next record, a
        rightward one the previous record. Shorter drags do nothing.
        """
        if start_x is None or end_x is None:
            return
        distance = start_x - end_x
        if distance >= SWIPE_THRESHOLD_PX:
            self.next(visible_ids)
        elif distance <= -SWIPE_THRESHOLD_PX:
            self.prev(visible_ids)

    def on_record_deleted(self, record_id: str) -> None:
        if self.current_id == record_id:
            logger.debug("viewer_closed_on_delete", record_id=record_id)
            self.close()
