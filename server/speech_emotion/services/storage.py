"""In-memory analysis history backing the dashboard's records view."""

import logging
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any

from speech_emotion.config import settings
from speech_emotion.models.emotion import AnalysisRecord

logger = logging.getLogger(__name__)


def discard_audio(audio_path: str | None) -> None:
    """Remove a stored upload, if there is one."""
    if audio_path:
        Path(audio_path).unlink(missing_ok=True)
        logger.debug("Removed upload %s", audio_path)


class RecordStore:
    """Thread-safe, size-bounded record store.

    The oldest record is evicted once ``max_records`` is exceeded. A record's
    upload file lives exactly as long as the record does.
    """

    def __init__(self, max_records: int = 100) -> None:
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self._records: OrderedDict[str, AnalysisRecord] = OrderedDict()
        self._max_records = max_records
        self._lock = threading.Lock()

    def add(self, record: AnalysisRecord) -> None:
        with self._lock:
            previous = self._records.pop(record.record_id, None)
            if previous is not None and previous.audio_path != record.audio_path:
                discard_audio(previous.audio_path)
            self._records[record.record_id] = record
            while len(self._records) > self._max_records:
                _, evicted = self._records.popitem(last=False)
                discard_audio(evicted.audio_path)

    def get(self, record_id: str) -> AnalysisRecord | None:
        with self._lock:
            return self._records.get(record_id)

    def update(self, record_id: str, **changes: Any) -> AnalysisRecord | None:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return None
            updated = record.model_copy(update=changes)
            self._records[record_id] = updated
            return updated

    def delete(self, record_id: str) -> bool:
        with self._lock:
            record = self._records.pop(record_id, None)
            if record is None:
                return False
            discard_audio(record.audio_path)
            return True

    def list_records(self) -> list[AnalysisRecord]:
        """Records, newest first."""
        with self._lock:
            return list(reversed(self._records.values()))

    def clear(self) -> None:
        with self._lock:
            for record in self._records.values():
                discard_audio(record.audio_path)
            self._records.clear()


# Singleton instance
record_store = RecordStore(max_records=settings.max_records)
