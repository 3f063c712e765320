"""Preview resources owned by photo items."""

import logging
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_SUFFIXES = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
    'image/heic': '.heic',
    'image/heif': '.heif',
}


class PreviewHandle:
    """Renderable reference to a photo's source bytes.

    Backed by a temporary file. ``release`` deletes it; calling it again is
    harmless and does not count as a second release.
    """

    def __init__(self, path: Optional[Path]) -> None:
        self.path = path
        self.release_count = 0

    @property
    def released(self) -> bool:
        return self.release_count > 0

    def release(self) -> None:
        if self.released:
            return
        self.release_count += 1
        if self.path is not None and self.path.exists():
            try:
                self.path.unlink()
            except OSError as e:
                logger.warning(f"Could not delete preview {self.path}: {e}")
        logger.debug(f"Released preview {self.path}")

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"PreviewHandle({self.path}, {state})"


def create_preview(data: bytes, mime_type: str) -> PreviewHandle:
    """Write source bytes to a private temp file and wrap it in a handle."""
    suffix = _SUFFIXES.get(mime_type, '.img')
    with tempfile.NamedTemporaryFile(prefix="timeprint-", suffix=suffix, delete=False) as tmp:
        tmp.write(data)
        path = Path(tmp.name)
    return PreviewHandle(path)
