"""Persisted history of recent image thumbnails."""
import errno
import json
import logging
import os
import tempfile
from typing import Callable, List

from ..config import HISTORY_FILE, HISTORY_QUOTA_BYTES, MAX_HISTORY_LENGTH
from ..errors import PersistenceError, ValidationError
from ..models import ImageState
from ..tools.thumbnail import create_thumbnail

logger = logging.getLogger(__name__)

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class HistoryStore:
    """
    Most-recent-first list of thumbnail data URIs backed by one JSON file.

    The whole list is rewritten on every change. Writes are best effort: when
    saving fails the in-memory list keeps the update and PersistenceError is
    raised for the caller to report.
    """

    def __init__(
        self,
        path: str = HISTORY_FILE,
        capacity: int = MAX_HISTORY_LENGTH,
        quota_bytes: int = HISTORY_QUOTA_BYTES,
        encoder: Callable[[ImageState], str] = create_thumbnail,
    ):
        self.path = path
        self._capacity = capacity
        self._quota_bytes = quota_bytes
        self._encoder = encoder
        self._entries: List[str] = []

    def load(self):
        """
        Read the storage slot into memory.

        A missing file is an empty history. A malformed one also leaves the
        history empty, but raises PersistenceError so the caller can warn.
        """
        self._entries = []
        if not os.path.exists(self.path):
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(
                f"Could not load your image history: {e}", title="History Load Failed"
            ) from e

        if not isinstance(stored, list) or not all(isinstance(item, str) for item in stored):
            raise PersistenceError(
                "Could not load your image history: unexpected file contents.",
                title="History Load Failed",
            )

        for item in stored:
            if item not in self._entries:
                self._entries.append(item)
        self._entries = self._entries[:self._capacity]
        logger.info("Loaded %d history entries from %s", len(self._entries), self.path)

    def record(self, image: ImageState):
        """
        Add a thumbnail of `image` to the front of the history.

        Raises:
            EncodingError: no thumbnail could be made; history is unchanged
            PersistenceError: the updated history could not be saved
        """
        thumbnail = self._encoder(image)
        entries = [entry for entry in self._entries if entry != thumbnail]
        self._entries = [thumbnail] + entries
        self._entries = self._entries[:self._capacity]
        self._save()

    def list(self) -> List[str]:
        return list(self._entries)

    def get(self, index: int) -> str:
        """Return the entry at a 0-based index."""
        if not 0 <= index < len(self._entries):
            raise ValidationError(
                f"No history entry at index {index} ({len(self._entries)} available)."
            )
        return self._entries[index]

    def clear(self):
        self._entries = []
        self._save()

    def __len__(self) -> int:
        return len(self._entries)

    def _save(self):
        try:
            document = json.dumps(self._entries)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"An error occurred while saving image history: {e}") from e

        if len(document.encode("utf-8")) > self._quota_bytes:
            raise self._quota_error()

        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".history-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                raise self._quota_error() from e
            raise PersistenceError(f"An error occurred while saving image history: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def _quota_error(self) -> PersistenceError:
        return PersistenceError(
            "Could not save to image history as storage is full. The history is limited "
            f"to {self._capacity} images, but current images may be too large. Older "
            "images are automatically removed.",
            quota_exceeded=True,
        )
