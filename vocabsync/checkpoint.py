"""Checkpoint system for resumable batch imports."""

import fcntl
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from vocabsync.models import CheckpointData


def item_key(word: str, hint: Optional[str] = None) -> str:
    """Identify one import row; the same word under another hint is another item."""
    return f"{(hint or '').strip().lower()}|{word.strip()}"


class CheckpointManager:
    """Records which import rows were reconciled and which failed."""

    def __init__(self, checkpoint_path: Path):
        """
        Initialize checkpoint manager.

        Args:
            checkpoint_path: Path to the checkpoint JSON file
        """
        self.checkpoint_path = checkpoint_path
        self._lock_path = checkpoint_path.with_suffix(".lock")
        self._data: Optional[CheckpointData] = None

    @contextmanager
    def _file_lock(self):
        """Context manager for file locking using fcntl."""
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def load(self) -> CheckpointData:
        """Load checkpoint data from file, or start empty if none exists."""
        if self._data is not None:
            return self._data

        with self._file_lock():
            if self.checkpoint_path.exists():
                with open(self.checkpoint_path, "r", encoding="utf-8") as f:
                    self._data = CheckpointData(**json.load(f))
            else:
                self._data = CheckpointData()

        return self._data

    def save(self) -> None:
        if self._data is None:
            return

        with self._file_lock():
            self.checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.checkpoint_path, "w", encoding="utf-8") as f:
                json.dump(self._data.model_dump(), f, ensure_ascii=False, indent=2)

    def mark_processed(self, item: str, index: int, status: str) -> None:
        """
        Record a reconciled row.

        Args:
            item: Row identity from item_key()
            index: Row index in the import file
            status: Reconcile status (added, updated, unchanged)
        """
        data = self.load()
        data.processed[item] = status
        data.failed.pop(item, None)
        data.last_index = index
        self.save()

    def mark_failed(self, item: str, step: str) -> None:
        """Record a row whose reconciliation failed at ``step``."""
        data = self.load()
        data.failed[item] = step
        self.save()

    def is_processed(self, item: str) -> bool:
        return item in self.load().processed

    def get_failed_items(self) -> dict[str, str]:
        return dict(self.load().failed)

    def reset(self) -> None:
        """Reset checkpoint to initial state."""
        self._data = CheckpointData()
        if self.checkpoint_path.exists():
            self.checkpoint_path.unlink()

    @property
    def processed_count(self) -> int:
        return len(self.load().processed)

    @property
    def failed_count(self) -> int:
        return len(self.load().failed)
