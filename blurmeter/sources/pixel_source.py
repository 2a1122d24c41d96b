"""Rasterize images, arrays and video frames into RGBA byte buffers.

The sharpness core only understands `(pixels, width, height)`; everything that
decodes a source into that triple lives here.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Union

import numpy as np
from numpy.typing import NDArray

from blurmeter.quality.blur_meter import ConfigLike, SharpnessResult, evaluate_sharpness
from blurmeter.quality.errors import InvalidDimensions

if TYPE_CHECKING:
    from PIL import Image as PILImage

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp", ".gif"}
VIDEO_EXTS = {".mp4", ".avi", ".mov", ".mkv", ".webm", ".m4v"}


@dataclass(frozen=True)
class RGBAFrame:
    pixels: bytes
    width: int
    height: int


Source = Union[RGBAFrame, NDArray[np.generic], str, Path, "PILImage.Image"]


def _pil_modules():
    try:
        from PIL import Image, ImageOps  # type: ignore
    except ImportError as e:
        raise RuntimeError("Decoding image files requires Pillow. Install 'pillow'.") from e
    return Image, ImageOps


def frame_from_array(arr: NDArray[np.generic]) -> RGBAFrame:
    """Build an RGBA frame from an HxW, HxWx3 (RGB) or HxWx4 (RGBA) array.

    Float input in [0,1] is scaled to [0,255]; alpha defaults to opaque.
    """
    img = np.asarray(arr)
    if img.ndim == 2:
        img = img[..., None]
    if img.ndim != 3 or img.shape[2] not in (1, 3, 4):
        raise ValueError(f"Expected HxW, HxWx3 or HxWx4 image, got shape={img.shape}")

    h, w = int(img.shape[0]), int(img.shape[1])
    if h == 0 or w == 0:
        raise InvalidDimensions(f"Source has invalid dimensions {w}x{h}")

    if img.dtype != np.uint8:
        img_f = img.astype(np.float32)
        if np.issubdtype(img.dtype, np.floating) and float(img_f.max(initial=0.0)) <= 1.5:
            img_f = img_f * 255.0
        img = (np.clip(img_f, 0.0, 255.0) + 0.5).astype(np.uint8)

    if img.shape[2] == 1:
        img = np.repeat(img, 3, axis=2)
    if img.shape[2] == 3:
        alpha = np.full((h, w, 1), 255, dtype=np.uint8)
        img = np.concatenate([img, alpha], axis=2)

    return RGBAFrame(pixels=np.ascontiguousarray(img).tobytes(), width=w, height=h)


def frame_from_pil(im: "PILImage.Image") -> RGBAFrame:
    _, ImageOps = _pil_modules()
    im = ImageOps.exif_transpose(im)
    return frame_from_array(np.asarray(im.convert("RGBA")))


def frame_from_image(path: str | Path) -> RGBAFrame:
    Image, _ = _pil_modules()
    try:
        with Image.open(str(path)) as im:
            return frame_from_pil(im)
    except Image.DecompressionBombError as e:
        raise ValueError(f"Refusing to decode {path}: {e}") from e


def frame_from_video(path: str | Path, frame_index: int = 0) -> RGBAFrame:
    """Decode a single frame of a video file with OpenCV."""
    if frame_index < 0:
        raise ValueError(f"frame_index must be >= 0, got {frame_index}")
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Video not found: {p}")

    try:
        import cv2  # type: ignore
    except ImportError as e:
        raise RuntimeError("Reading video frames requires OpenCV. Install 'opencv-python-headless'.") from e

    cap = cv2.VideoCapture(str(p))
    try:
        if not cap.isOpened():
            raise ValueError(f"Failed to open video: {p}")
        if frame_index > 0:
            cap.set(cv2.CAP_PROP_POS_FRAMES, int(frame_index))
        ok, frame = cap.read()
        if not ok or frame is None:
            raise ValueError(f"Failed to read frame {frame_index} from {p}")
        # OpenCV decodes BGR
        rgba = cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)
    except cv2.error as e:
        raise ValueError(f"OpenCV failed on frame {frame_index} of {p}: {e}") from e
    finally:
        cap.release()

    return frame_from_array(rgba)


def load_frame(source: Source, frame_index: int = 0) -> RGBAFrame:
    if isinstance(source, RGBAFrame):
        return source
    if isinstance(source, np.ndarray):
        return frame_from_array(source)
    if isinstance(source, (str, Path)):
        p = Path(source)
        if p.suffix.lower() in VIDEO_EXTS:
            return frame_from_video(p, frame_index=frame_index)
        return frame_from_image(p)

    Image, _ = _pil_modules()
    if isinstance(source, Image.Image):
        return frame_from_pil(source)
    raise TypeError(f"Unsupported pixel source: {type(source).__name__}")


def blur_meter(source: Source, options: ConfigLike = None, *, frame_index: int = 0) -> SharpnessResult:
    """Rasterize `source` and score its sharpness from 1 (very blurry) to 10."""
    frame = load_frame(source, frame_index=frame_index)
    return evaluate_sharpness(frame.pixels, frame.width, frame.height, options)


def iter_sources(paths: Iterable[str | Path]) -> list[Path]:
    """Expand directories to the image and video files they contain."""
    out: list[Path] = []
    exts = IMAGE_EXTS | VIDEO_EXTS
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            found = (q for q in p.rglob("*") if q.is_file() and q.suffix.lower() in exts)
            out.extend(sorted(found, key=lambda q: str(q).lower()))
        else:
            out.append(p)
    return out
