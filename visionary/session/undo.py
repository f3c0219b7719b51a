"""Bounded undo chain of prior full-resolution images."""
from typing import List, Optional

from ..config import MAX_UNDO_STEPS
from ..models import ImageState


class UndoChain:
    """Last-in-first-out stack of image states, most recent first."""

    def __init__(self, capacity: int = MAX_UNDO_STEPS):
        self._capacity = capacity
        self._entries: List[ImageState] = []

    def push(self, image: ImageState):
        """Record a state; the oldest entry is dropped beyond capacity."""
        self._entries.insert(0, image)
        self._entries = self._entries[:self._capacity]

    def pop(self) -> Optional[ImageState]:
        """Remove and return the most recent state, or None when empty."""
        if not self._entries:
            return None
        return self._entries.pop(0)

    def peek(self) -> Optional[ImageState]:
        if self._entries:
            return self._entries[0]
        return None

    def clear(self):
        self._entries = []

    def entries(self) -> List[ImageState]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
