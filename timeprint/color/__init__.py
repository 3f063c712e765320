"""Export-time display adjustments for restored photos."""

from timeprint.color.adjustments import (
    apply_adjustments,
    decode_image,
    export_photo,
)

__all__ = [
    'apply_adjustments',
    'decode_image',
    'export_photo',
]
