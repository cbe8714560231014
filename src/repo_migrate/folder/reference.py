"""References for folder origins."""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

FOLDER_ORIGIN_LABEL = 'FolderOrigin-RevId'


@dataclass(frozen=True)
class FolderReference:
    """A reference to a plain directory used as an origin."""

    path: Path
    timestamp: Optional[datetime] = None
    label_name: str = FOLDER_ORIGIN_LABEL

    def as_string(self) -> str:
        return str(self.path)

    def read_timestamp(self) -> Optional[datetime]:
        return self.timestamp

    @classmethod
    def from_path(
        cls, path: Path, label_name: str = FOLDER_ORIGIN_LABEL
    ) -> 'FolderReference':
        """Create a reference stamped with the directory modification time."""
        path = Path(path)
        timestamp = None
        if path.exists():
            timestamp = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return cls(path=path, timestamp=timestamp, label_name=label_name)
