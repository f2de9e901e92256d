"""Generation history tracking.

The history is a linear undo/redo list: navigating back and then producing a
new image discards everything after the cursor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from modules.utils.image_utils import EncodedImage

logger = logging.getLogger(__name__)

INITIAL_GENERATION_LABEL = "Initial Generation"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A generated image and the instruction that produced it."""

    image: EncodedImage
    label: str

    @property
    def is_initial(self) -> bool:
        return self.label == INITIAL_GENERATION_LABEL


@dataclass(frozen=True, slots=True)
class HistoryPosition:
    """1-based position for display; (0, 0) when empty."""

    index: int
    total: int


class GenerationHistory:
    """In-memory list of generated versions with a cursor."""

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def can_move_back(self) -> bool:
        return self._cursor > 0

    @property
    def can_move_forward(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def append(self, entry: HistoryEntry) -> int:
        """Drop entries after the cursor, append, and move the cursor to the tail."""
        discarded = len(self._entries) - (self._cursor + 1)
        if discarded:
            logger.debug("Discarding %d version(s) after cursor %d", discarded, self._cursor)
        del self._entries[self._cursor + 1 :]
        self._entries.append(entry)
        self._cursor = len(self._entries) - 1
        return self._cursor

    def current(self) -> Optional[HistoryEntry]:
        """Return the entry under the cursor, or None when empty."""
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    def move_back(self) -> bool:
        if not self.can_move_back:
            return False
        self._cursor -= 1
        return True

    def move_forward(self) -> bool:
        if not self.can_move_forward:
            return False
        self._cursor += 1
        return True

    def position(self) -> HistoryPosition:
        if self._cursor < 0:
            return HistoryPosition(index=0, total=0)
        return HistoryPosition(index=self._cursor + 1, total=len(self._entries))

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = -1
