"""Photo items, their lifecycle, and the collection that owns them."""

from timeprint.photos.item import (
    ADJUSTMENT_RANGES,
    Adjustments,
    InvalidTransitionError,
    PhotoItem,
    PhotoStatus,
    RestoredImage,
    clamp_adjustment,
    fail,
    start,
    succeed,
    with_adjustment,
)
from timeprint.photos.collection import PhotoCollection
from timeprint.photos.preview import PreviewHandle, create_preview

__all__ = [
    # Items and state machine
    'ADJUSTMENT_RANGES',
    'Adjustments',
    'InvalidTransitionError',
    'PhotoItem',
    'PhotoStatus',
    'RestoredImage',
    'clamp_adjustment',
    'fail',
    'start',
    'succeed',
    'with_adjustment',
    # Ownership
    'PhotoCollection',
    'PreviewHandle',
    'create_preview',
]
