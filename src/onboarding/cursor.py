"""Cursor Advancer.

The cursor is (current_question_id, current_question_index) within the
visible question list of a step. Out-of-range cursors are healed by
clamping, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cursor:
    question_id: Optional[str]
    index: int


def clamp_index(index: Any, visible_ids: List[str]) -> int:
    if not visible_ids:
        return 0
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        return 0
    return min(index, len(visible_ids) - 1)


def resolve_cursor(visible_ids: List[str], stored_id: Optional[str], stored_index: Any) -> Cursor:
    """Locate the stored cursor in a freshly resolved question list."""
    if stored_id and stored_id in visible_ids:
        return Cursor(stored_id, visible_ids.index(stored_id))

    index = clamp_index(stored_index, visible_ids)
    if stored_id:
        logger.debug("Cursor question %s no longer visible; clamped to index %d", stored_id, index)
    question_id = visible_ids[index] if visible_ids else None
    return Cursor(question_id, index)


def advance(visible_ids: List[str], current_id: str, succeeded: bool, stored_index: Any = 0) -> Cursor:
    """Move to the question after current_id; stay put on failure or at the end."""
    if not succeeded:
        return resolve_cursor(visible_ids, current_id, stored_index)
    if current_id not in visible_ids:
        return resolve_cursor(visible_ids, None, stored_index)

    next_index = min(visible_ids.index(current_id) + 1, max(len(visible_ids) - 1, 0))
    return Cursor(visible_ids[next_index], next_index)
