"""Source photo loading and transport encoding.

Formats the remote model accepts directly are passed through byte for byte.
Everything else is re-encoded once at load time so the restoration call
never has to care about the original container.
"""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

# Sent to the remote API unchanged
_PASSTHROUGH_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.webp': 'image/webp',
    '.heic': 'image/heic',
    '.heif': 'image/heif',
}

# Re-encoded to PNG with Pillow
_PIL_REENCODE = ('.tif', '.tiff', '.bmp', '.gif')

# Demosaiced with rawpy, re-encoded to JPEG
_RAW_FORMATS = ('.dng', '.cr2', '.nef', '.arw')

SUPPORTED_EXTENSIONS = tuple(_PASSTHROUGH_TYPES) + _PIL_REENCODE + _RAW_FORMATS


@dataclass(frozen=True)
class SourceImage:
    """Immutable original photo payload."""

    data: bytes
    mime_type: str
    name: str


def _reencode_standard(path: Path) -> bytes:
    """Re-encode a TIFF/BMP/GIF as PNG bytes."""
    with Image.open(path) as img:
        buf = io.BytesIO()
        img.convert("RGB").save(buf, format="PNG")
    return buf.getvalue()


def _reencode_raw(path: Path, quality: int = 95) -> bytes:
    """Demosaic a RAW file and encode it as JPEG bytes."""
    try:
        import rawpy
    except ImportError as e:
        raise ImportError(
            "rawpy is required for DNG/RAW support. "
            "Install with: pip install rawpy"
        ) from e

    with rawpy.imread(str(path)) as raw:
        # 8-bit sRGB is enough for the remote model
        rgb = raw.postprocess(
            use_camera_wb=True,
            output_color=rawpy.ColorSpace.sRGB,
            output_bps=8,
            no_auto_bright=False,
        )

    buf = io.BytesIO()
    Image.fromarray(rgb, mode="RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def load_photo(path: str) -> SourceImage:
    """Load a photo file into a transport-ready payload.

    Args:
        path: Path to image file

    Returns:
        SourceImage with the bytes to send and their mime type

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If file format is not supported
    """
    path_obj = Path(path)

    if not path_obj.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    ext = path_obj.suffix.lower()

    if ext in _PASSTHROUGH_TYPES:
        data = path_obj.read_bytes()
        mime_type = _PASSTHROUGH_TYPES[ext]
    elif ext in _PIL_REENCODE:
        data = _reencode_standard(path_obj)
        mime_type = 'image/png'
    elif ext in _RAW_FORMATS:
        data = _reencode_raw(path_obj)
        mime_type = 'image/jpeg'
    else:
        raise ValueError(f"Unsupported image format: {ext}")

    logger.info(f"Loaded {path_obj.name} as {mime_type} ({len(data) / 1024:.0f} KiB)")

    return SourceImage(data=data, mime_type=mime_type, name=path_obj.name)


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a self-describing ``data:`` URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_url(payload: str) -> Tuple[Optional[str], str]:
    """Split a data URL into ``(mime_type, base64_data)``.

    A bare base64 string comes back with ``None`` for the mime type.
    """
    if payload.startswith("data:") and "," in payload:
        header, b64 = payload.split(",", 1)
        mime_type = header[len("data:"):].split(";", 1)[0] or None
        return mime_type, b64
    return None, payload


def find_photos(input_paths: Iterable[str], pattern: Optional[str] = None) -> List[Path]:
    """Expand files and directories into a sorted, de-duplicated photo list.

    Args:
        input_paths: Files or directories
        pattern: Optional glob applied inside directories (e.g. "*.jpg")

    Returns:
        Photo paths in input order; files inside a directory are sorted by name.
    """
    found: List[Path] = []
    seen = set()

    for input_path_str in input_paths:
        input_path = Path(input_path_str)

        if input_path.is_dir():
            if pattern:
                candidates = sorted(input_path.glob(pattern))
            else:
                candidates = sorted(
                    p for p in input_path.iterdir()
                    if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
                )
        else:
            candidates = [input_path]

        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                found.append(candidate)

    return found
