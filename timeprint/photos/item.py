"""Photo item model and its processing state machine.

Items are immutable: every transition returns a new ``PhotoItem`` and the
owning collection swaps it in. This keeps each transition atomic with respect
to anyone holding a snapshot.

    pending ──start──▶ processing ──succeed──▶ completed
       ▲                   │
       │                   └─────fail────▶ error ──start──▶ processing
"""

import base64
import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple

from timeprint.preprocessing.loader import SourceImage, to_data_url
from timeprint.photos.preview import PreviewHandle

logger = logging.getLogger(__name__)


class PhotoStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


# name -> (minimum, maximum, default)
ADJUSTMENT_RANGES: Dict[str, Tuple[float, float, float]] = {
    'brightness': (50.0, 150.0, 100.0),
    'contrast': (50.0, 150.0, 100.0),
    'saturation': (0.0, 200.0, 100.0),
    'sharpness': (0.0, 100.0, 0.0),
}


class InvalidTransitionError(ValueError):
    """A success/failure transition was applied outside ``processing``."""


def clamp_adjustment(name: str, value: float) -> float:
    """Clamp ``value`` into the declared range for adjustment ``name``.

    Raises:
        ValueError: If ``name`` is not a known adjustment.
    """
    if name not in ADJUSTMENT_RANGES:
        raise ValueError(f"Unknown adjustment: {name!r}")
    lo, hi, _ = ADJUSTMENT_RANGES[name]
    return float(min(max(float(value), lo), hi))


@dataclass(frozen=True)
class Adjustments:
    """Display/export-only overlay; never alters the stored result bytes."""

    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    sharpness: float = 0.0

    def __post_init__(self) -> None:
        for name in ADJUSTMENT_RANGES:
            object.__setattr__(self, name, clamp_adjustment(name, getattr(self, name)))

    def with_value(self, name: str, value: float) -> "Adjustments":
        clamped = clamp_adjustment(name, value)
        return replace(self, **{name: clamped})

    @property
    def is_identity(self) -> bool:
        return self == Adjustments()


@dataclass(frozen=True)
class RestoredImage:
    """Restored image payload returned by the remote model."""

    data: bytes
    mime_type: str

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)

    @classmethod
    def from_base64(cls, b64: str, mime_type: str) -> "RestoredImage":
        return cls(data=base64.b64decode(b64), mime_type=mime_type)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PhotoItem:
    """One uploaded photo and where it is in its restoration lifecycle."""

    source: SourceImage
    preview: PreviewHandle
    id: str = field(default_factory=_new_id)
    status: PhotoStatus = PhotoStatus.PENDING
    result: Optional[RestoredImage] = None
    error: Optional[str] = None
    adjustments: Adjustments = field(default_factory=Adjustments)

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def is_eligible(self) -> bool:
        """Whether a batch run should pick this item up."""
        return self.status in (PhotoStatus.PENDING, PhotoStatus.ERROR)


def start(item: PhotoItem) -> PhotoItem:
    """Move a pending or failed item into ``processing``.

    Starting an item that is already processing or completed is a no-op and
    returns the very same object, so callers can detect it with ``is``.
    """
    if item.status in (PhotoStatus.PROCESSING, PhotoStatus.COMPLETED):
        logger.debug(f"Ignoring start for {item.id}: already {item.status.value}")
        return item
    return replace(item, status=PhotoStatus.PROCESSING, result=None, error=None)


def succeed(item: PhotoItem, result: RestoredImage) -> PhotoItem:
    """Record a restored image for a processing item."""
    if item.status is not PhotoStatus.PROCESSING:
        raise InvalidTransitionError(
            f"Cannot complete {item.id} from status {item.status.value}"
        )
    return replace(item, status=PhotoStatus.COMPLETED, result=result, error=None)


def fail(item: PhotoItem, message: str) -> PhotoItem:
    """Record a classified failure message for a processing item."""
    if item.status is not PhotoStatus.PROCESSING:
        raise InvalidTransitionError(
            f"Cannot fail {item.id} from status {item.status.value}"
        )
    return replace(item, status=PhotoStatus.ERROR, result=None, error=message)


def with_adjustment(item: PhotoItem, name: str, value: float) -> PhotoItem:
    """Change one adjustment (clamped); allowed in any status."""
    return replace(item, adjustments=item.adjustments.with_value(name, value))
