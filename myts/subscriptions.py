import os
import logging
import tempfile
from pathlib import Path
from typing import Iterator

from .channels import is_valid_channel_id
from .utils import ensure_directory


class StorageError(Exception):
    """Raised when the subscriptions file cannot be read or written."""


class SubscriptionStore:
    """Subscribed channel IDs kept in a plain text file, one per line."""

    def __init__(self, storage_file: str):
        self.storage_file = Path(storage_file)
        self.logger = logging.getLogger(__name__)

    def init(self):
        """Create an empty storage file if it does not exist yet."""
        if self.storage_file.exists():
            return
        try:
            ensure_directory(str(self.storage_file.parent))
            self.storage_file.touch()
        except OSError as e:
            raise StorageError(
                f"Could not create storage file {self.storage_file}: {e}"
            ) from e
        self.logger.debug(f"Created empty storage file at {self.storage_file}")

    def list_all(self) -> Iterator[str]:
        """Yield subscribed channel IDs in file order, skipping blank lines."""
        try:
            with open(self.storage_file, "r", encoding="utf-8") as f:
                for line in f:
                    channel_id = line.strip()
                    if channel_id:
                        yield channel_id
        except OSError as e:
            raise StorageError(
                f"Could not read storage file {self.storage_file}: {e}"
            ) from e

    def __iter__(self) -> Iterator[str]:
        return self.list_all()

    def __contains__(self, channel_id: str) -> bool:
        return any(existing == channel_id for existing in self.list_all())

    def _ends_without_newline(self) -> bool:
        """True when a hand-edited file lacks its final line break."""
        with open(self.storage_file, "rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return False
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"

    def add(self, channel_id: str) -> bool:
        """Append a channel ID. Returns False when it was skipped."""
        if not is_valid_channel_id(channel_id):
            self.logger.warning(
                f"Skipped adding {channel_id} to storage file, because it is an invalid YouTube channel ID."
            )
            return False
        if channel_id in self:
            self.logger.warning(
                f"Skipped adding YouTube channel ID to storage file, because it is already present: {channel_id}"
            )
            return False

        try:
            prefix = "\n" if self._ends_without_newline() else ""
            with open(self.storage_file, "a", encoding="utf-8") as f:
                f.write(f"{prefix}{channel_id}\n")
        except OSError as e:
            raise StorageError(
                f"Could not write storage file {self.storage_file}: {e}"
            ) from e

        self.logger.debug(f"Added {channel_id} to storage file {self.storage_file}")
        return True

    def remove(self, channel_id: str) -> bool:
        """Remove a channel ID. Returns False when it was skipped."""
        if not is_valid_channel_id(channel_id):
            self.logger.warning(
                f"Skipped removing {channel_id} from storage file, because it is an invalid YouTube channel ID."
            )
            return False
        if channel_id not in self:
            self.logger.warning(
                f"Skipped removing YouTube channel ID from storage file, because it is not present: {channel_id}"
            )
            return False

        remaining = [existing for existing in self.list_all() if existing != channel_id]

        # Write next to the original so os.replace stays on one filesystem
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.storage_file.parent),
                prefix=f".{self.storage_file.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for existing in remaining:
                    f.write(f"{existing}\n")
            os.replace(tmp_path, self.storage_file)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(
                f"Could not rewrite storage file {self.storage_file}: {e}"
            ) from e

        self.logger.debug(f"Removed {channel_id} from storage file {self.storage_file}")
        return True
