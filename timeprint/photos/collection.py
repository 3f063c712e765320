"""Owned collection of photo items.

All mutation goes through whole-collection replacement: the tuple of items is
rebuilt and swapped in one statement, so a snapshot taken earlier is never
modified underneath its reader.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from timeprint.preprocessing.loader import SourceImage, load_photo
from timeprint.photos.item import (
    PhotoItem,
    PhotoStatus,
    with_adjustment,
)
from timeprint.photos.preview import PreviewHandle, create_preview

logger = logging.getLogger(__name__)

PreviewFactory = Callable[[bytes, str], PreviewHandle]


class PhotoCollection:
    """The session's photos, in the order they were added."""

    def __init__(self, preview_factory: Optional[PreviewFactory] = None) -> None:
        self._preview_factory = preview_factory or create_preview
        self._items: Tuple[PhotoItem, ...] = ()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def snapshot(self) -> Tuple[PhotoItem, ...]:
        return self._items

    def get(self, item_id: str) -> Optional[PhotoItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add(self, source: SourceImage) -> PhotoItem:
        """Add one photo in ``pending`` state with default adjustments."""
        item = PhotoItem(source=source, preview=self._preview_factory(source.data, source.mime_type))
        self._items = self._items + (item,)
        logger.debug(f"Added {source.name} as {item.id}")
        return item

    def add_files(self, paths: Iterable[Path]) -> List[PhotoItem]:
        """Load and add photo files; files that fail to load are logged and skipped."""
        added = []
        for path in paths:
            try:
                source = load_photo(str(path))
            except (OSError, ValueError, ImportError) as e:
                logger.error(f"Skipping {path}: {e}")
                continue
            added.append(self.add(source))
        return added

    def remove(self, item_id: str) -> bool:
        """Drop an item for good and release its preview.

        Returns:
            True if an item was removed, False if the id was unknown.
        """
        item = self.get(item_id)
        if item is None:
            return False
        self._items = tuple(p for p in self._items if p.id != item_id)
        item.preview.release()
        logger.debug(f"Removed {item.id} ({item.name})")
        return True

    def replace(self, new_item: PhotoItem) -> Optional[PhotoItem]:
        """Swap in a new version of an existing item; no-op if it was removed."""
        if self.get(new_item.id) is None:
            logger.debug(f"Dropping update for removed item {new_item.id}")
            return None
        self._items = tuple(new_item if p.id == new_item.id else p for p in self._items)
        return new_item

    def update(self, item_id: str, transition: Callable[[PhotoItem], PhotoItem]) -> Optional[PhotoItem]:
        """Apply ``transition`` to the current version of an item."""
        current = self.get(item_id)
        if current is None:
            return None
        updated = transition(current)
        if updated is current:
            return current
        return self.replace(updated)

    def update_adjustment(self, item_id: str, name: str, value: float) -> Optional[PhotoItem]:
        return self.update(item_id, lambda item: with_adjustment(item, name, value))

    def eligible(self) -> Tuple[PhotoItem, ...]:
        """Items a batch run would process right now."""
        return tuple(p for p in self._items if p.is_eligible)

    def counts(self) -> Dict[PhotoStatus, int]:
        tally = Counter(p.status for p in self._items)
        return {status: tally.get(status, 0) for status in PhotoStatus}

    def close(self) -> None:
        """Remove every item, releasing all previews."""
        for item in self._items:
            item.preview.release()
        self._items = ()
