from __future__ import annotations

import math
from dataclasses import dataclass
from io import BytesIO
from typing import Literal

import numpy as np
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from src.domain.entities.design_session import Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import DecodeError, DimensionReadError, RenderError

TARGET_SIZE = 1024
JPEG_QUALITY = 95
PAD_COLOR = (0, 0, 0)
THUMBNAIL_EDGE = 256
MAX_TRIM_PERCENT = 45
MAX_EXPAND_PERCENT = 50
BLUR_RADIUS = 20

# EXIF orientations that swap width and height
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}

FillStyle = Literal["blur", "white", "black", "transparent"]

_FILL_COLORS: dict[str, tuple[int, int, int, int]] = {
    "white": (255, 255, 255, 255),
    "black": (0, 0, 0, 255),
    "transparent": (0, 0, 0, 0),
}


@dataclass(frozen=True)
class Margins:
    """Edge margins in percent of the image's own width/height."""

    top: float = 0.0
    bottom: float = 0.0
    left: float = 0.0
    right: float = 0.0

    def validate(self, limit: float) -> None:
        for side in ("top", "bottom", "left", "right"):
            value = getattr(self, side)
            if value < 0 or value > limit:
                raise ValueError(f"{side} margin must be between 0 and {limit} percent")

    def to_pixels(self, width: int, height: int) -> tuple[int, int, int, int]:
        """Return (top, bottom, left, right) in pixels, floored."""
        return (
            math.floor(height * self.top / 100),
            math.floor(height * self.bottom / 100),
            math.floor(width * self.left / 100),
            math.floor(width * self.right / 100),
        )


class GeometryService:
    """Letterboxing and canvas edits. Pixel buffers are uint8 NumPy arrays.

    Channel convention:
    - RGB: (H, W, 3)
    - RGBA: (H, W, 4), only while expanding with transparent fill

    Every square image sent to or received from the model is produced by
    `normalize` and undone by `restore`, which share `content_box`.
    """

    # Content rectangle (x, y, w, h) of a width x height image letterboxed into S x S
    @staticmethod
    def content_box(width: int, height: int, target_size: int) -> tuple[int, int, int, int]:
        if width <= 0 or height <= 0:
            raise ValueError("image dimensions must be > 0")
        if target_size <= 0:
            raise ValueError("target_size must be > 0")
        aspect = width / height
        if aspect > 1:
            content_w = target_size
            content_h = max(1, round(target_size / aspect))
        else:
            content_h = target_size
            content_w = max(1, round(target_size * aspect))
        x = (target_size - content_w) // 2
        y = (target_size - content_h) // 2
        return x, y, content_w, content_h

    # Letterbox: scale the longer edge to S, center on an opaque black S x S canvas
    @staticmethod
    def normalize(asset: ImageAsset, target_size: int = TARGET_SIZE) -> ImageAsset:
        img = _decode(asset)
        x, y, content_w, content_h = GeometryService.content_box(*img.size, target_size)
        resized = img.resize((content_w, content_h), Image.Resampling.LANCZOS)
        canvas = _allocate_canvas(target_size, target_size, PAD_COLOR)
        canvas[y : y + content_h, x : x + content_w] = np.asarray(resized, dtype=np.uint8)
        return _encode_jpeg(canvas)

    # Inverse letterbox: crop the content box, resample to the original size
    @staticmethod
    def restore(
        asset: ImageAsset,
        original_width: int,
        original_height: int,
        target_size: int = TARGET_SIZE,
    ) -> ImageAsset:
        img = _decode(asset)
        if img.size != (target_size, target_size):
            # models occasionally answer at a different square resolution
            img = img.resize((target_size, target_size), Image.Resampling.LANCZOS)
        x, y, content_w, content_h = GeometryService.content_box(
            original_width, original_height, target_size
        )
        content = np.asarray(img, dtype=np.uint8)[y : y + content_h, x : x + content_w]
        if (content_w, content_h) != (original_width, original_height):
            cropped = Image.fromarray(np.ascontiguousarray(content))
            content = np.asarray(
                cropped.resize((original_width, original_height), Image.Resampling.LANCZOS)
            )
        return _encode_jpeg(content)

    @staticmethod
    def read_dimensions(asset: ImageAsset) -> Dimensions:
        try:
            with Image.open(BytesIO(asset.data)) as img:
                width, height = img.size
                orientation = img.getexif().get(0x0112)
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            raise DimensionReadError(f"Could not read image dimensions: {exc}") from exc
        if width <= 0 or height <= 0:
            raise DimensionReadError("Image has no pixels")
        if orientation in _TRANSPOSED_ORIENTATIONS:
            width, height = height, width
        return Dimensions(width=width, height=height)

    @staticmethod
    def make_thumbnail(asset: ImageAsset, max_edge: int = THUMBNAIL_EDGE) -> str:
        img = _decode(asset)
        img.thumbnail((max_edge, max_edge), Image.Resampling.LANCZOS)
        return _encode_jpeg(np.asarray(img, dtype=np.uint8)).to_data_url()

    # Trim: remove floor(dim * pct / 100) pixels from each edge, at least 1x1 remains
    @staticmethod
    def trim(asset: ImageAsset, margins: Margins) -> ImageAsset:
        margins.validate(MAX_TRIM_PERCENT)
        arr = np.asarray(_decode(asset, keep_alpha=True), dtype=np.uint8)
        h, w = arr.shape[:2]
        top, bottom, left, right = margins.to_pixels(w, h)
        new_w = max(1, w - left - right)
        new_h = max(1, h - top - bottom)
        return _encode_png(arr[top : top + new_h, left : left + new_w])

    # Expand: grow each edge by floor(dim * pct / 100) pixels, original pasted at (left, top)
    @staticmethod
    def expand(asset: ImageAsset, margins: Margins, fill: FillStyle = "blur") -> ImageAsset:
        margins.validate(MAX_EXPAND_PERCENT)
        img = _decode(asset, keep_alpha=True).convert("RGBA")
        w, h = img.size
        top, bottom, left, right = margins.to_pixels(w, h)
        new_w, new_h = w + left + right, h + top + bottom

        if fill == "blur":
            stretched = img.resize((new_w, new_h), Image.Resampling.BILINEAR)
            canvas = np.array(stretched.filter(ImageFilter.GaussianBlur(BLUR_RADIUS)), dtype=np.uint8)
        elif fill in _FILL_COLORS:
            canvas = _allocate_canvas(new_h, new_w, _FILL_COLORS[fill])
        else:
            raise ValueError(f"Unsupported fill style: {fill}")

        background = Image.fromarray(canvas)
        background.alpha_composite(img, dest=(left, top))
        if fill != "transparent":
            background = background.convert("RGB")
        return _encode_png(np.asarray(background, dtype=np.uint8))


# --------- helpers ---------
def _decode(asset: ImageAsset, keep_alpha: bool = False) -> Image.Image:
    try:
        with Image.open(BytesIO(asset.data)) as src:
            src.load()
            img = ImageOps.exif_transpose(src)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc

    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    if has_alpha and keep_alpha:
        return img.convert("RGBA")
    if has_alpha:
        # transparent pixels land on the padding color
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, PAD_COLOR)
        flat.paste(rgba, mask=rgba.getchannel("A"))
        return flat
    return img.convert("RGB")


def _allocate_canvas(height: int, width: int, color: tuple[int, ...]) -> np.ndarray:
    try:
        canvas = np.empty((height, width, len(color)), dtype=np.uint8)
    except (MemoryError, ValueError) as exc:
        raise RenderError(f"Could not allocate a {width}x{height} canvas: {exc}") from exc
    canvas[...] = color
    return canvas


def _encode(array: np.ndarray, fmt: str, **params) -> bytes:
    buf = BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(array)).save(buf, format=fmt, **params)
    except (OSError, ValueError, MemoryError) as exc:
        raise RenderError(f"Could not encode {fmt} image: {exc}") from exc
    return buf.getvalue()


def _encode_jpeg(array: np.ndarray) -> ImageAsset:
    return ImageAsset(data=_encode(array, "JPEG", quality=JPEG_QUALITY), mime_type="image/jpeg")


def _encode_png(array: np.ndarray) -> ImageAsset:
    return ImageAsset(data=_encode(array, "PNG"), mime_type="image/png")
