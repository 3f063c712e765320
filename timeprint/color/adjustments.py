"""Export-time adjustment overlay.

Brightness, contrast and saturation follow the CSS filter functions of the same
name so an exported file matches what a browser preview shows. Sharpness is an
unsharp mask. None of this touches the stored restoration result.
"""

import io
import logging
from pathlib import Path
from typing import Optional, Set, Union

import numpy as np
from PIL import Image
from scipy.ndimage import gaussian_filter

from timeprint.photos.item import Adjustments, PhotoItem

logger = logging.getLogger(__name__)

# Rec. 709 luma weights used by CSS saturate()
_LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


def _brightness(image: np.ndarray, percent: float) -> np.ndarray:
    return np.clip(image * (percent / 100.0), 0.0, 1.0)


def _contrast(image: np.ndarray, percent: float) -> np.ndarray:
    factor = percent / 100.0
    return np.clip((image - 0.5) * factor + 0.5, 0.0, 1.0)


def _saturate(image: np.ndarray, percent: float) -> np.ndarray:
    """Luminance-preserving saturation, equivalent to the CSS saturate matrix."""
    s = percent / 100.0
    luma = image @ _LUMA
    return np.clip(luma[..., None] + s * (image - luma[..., None]), 0.0, 1.0)


def _unsharp_mask(
    image: np.ndarray,
    radius: float = 1.5,
    amount: float = 0.5
) -> np.ndarray:
    """Apply unsharp mask sharpening.

    Unsharp mask: sharp = original + amount * (original - blurred)

    Args:
        image: float32 RGB [0, 1], shape (H, W, 3)
        radius: Gaussian blur radius in pixels
        amount: Sharpening strength

    Returns:
        Sharpened image, float32 RGB [0, 1]
    """
    # Blur spatially only, never across channels
    blurred = gaussian_filter(image, sigma=(radius, radius, 0))
    return np.clip(image + amount * (image - blurred), 0.0, 1.0)


def apply_adjustments(image: np.ndarray, adjustments: Adjustments) -> np.ndarray:
    """Apply the photo's display adjustments to an image.

    Args:
        image: float32 RGB [0, 1], shape (H, W, 3)
        adjustments: Clamped adjustment values

    Returns:
        Adjusted image as float32 RGB [0, 1]. Default adjustments return the
        input unchanged.
    """
    if adjustments.is_identity:
        return image

    result = image.astype(np.float32)
    if adjustments.brightness != 100.0:
        result = _brightness(result, adjustments.brightness)
    if adjustments.contrast != 100.0:
        result = _contrast(result, adjustments.contrast)
    if adjustments.saturation != 100.0:
        result = _saturate(result, adjustments.saturation)
    if adjustments.sharpness > 0.0:
        result = _unsharp_mask(result, amount=adjustments.sharpness / 100.0)

    logger.debug(
        f"Adjustments applied: brightness={adjustments.brightness:.0f}, "
        f"contrast={adjustments.contrast:.0f}, saturation={adjustments.saturation:.0f}, "
        f"sharpness={adjustments.sharpness:.0f}"
    )
    return result.astype(np.float32)


def decode_image(data: bytes) -> np.ndarray:
    """Decode image bytes to float32 RGB [0, 1]."""
    with Image.open(io.BytesIO(data)) as img:
        rgb = np.array(img.convert("RGB"))
    return rgb.astype(np.float32) / 255.0


def export_photo(
    item: PhotoItem,
    output_dir: Union[str, Path],
    taken: Optional[Set[str]] = None,
) -> Path:
    """Write a restored photo with its adjustments baked in, as PNG.

    Args:
        item: A completed photo item
        output_dir: Directory to write into (created if missing)
        taken: File names already written in this export run. A clashing
            name gets a numeric suffix and the chosen name is added to the set.

    Returns:
        Path of the written file, ``restored-enhanced-<file name>.png``

    Raises:
        ValueError: If the item has no restoration result
    """
    if item.result is None:
        raise ValueError(f"Photo {item.name} has no restored result to export")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    image = apply_adjustments(decode_image(item.result.data), item.adjustments)
    uint8 = (np.clip(image, 0, 1) * 255).round().astype(np.uint8)

    base = f"restored-enhanced-{item.name}"
    filename = f"{base}.png"
    if taken is not None:
        counter = 2
        while filename in taken:
            filename = f"{base}-{counter}.png"
            counter += 1
        taken.add(filename)
    output_path = output_dir / filename
    Image.fromarray(uint8, mode="RGB").save(output_path, format="PNG")

    logger.info(f"Exported {output_path.name} ({uint8.shape[1]}x{uint8.shape[0]})")
    return output_path
