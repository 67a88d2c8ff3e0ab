import io

import numpy as np
import pytest
from PIL import Image

from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import DecodeError, DimensionReadError
from src.domain.services.geometry_service import GeometryService as GS
from src.domain.services.geometry_service import Margins


def open_rgb(asset: ImageAsset) -> np.ndarray:
    return np.asarray(Image.open(io.BytesIO(asset.data)).convert("RGB")).astype(np.int32)


def two_tone(w: int, h: int) -> ImageAsset:
    # left half red, right half blue
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, : w // 2] = (220, 20, 20)
    arr[:, w // 2 :] = (20, 20, 220)
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return ImageAsset(data=buf.getvalue(), mime_type="image/png")


def test_content_box_landscape_portrait_square():
    assert GS.content_box(2000, 1000, 1024) == (0, 256, 1024, 512)
    assert GS.content_box(500, 1000, 1024) == (256, 0, 512, 1024)
    assert GS.content_box(300, 300, 1024) == (0, 0, 1024, 1024)


def test_content_box_rejects_bad_sizes():
    with pytest.raises(ValueError):
        GS.content_box(0, 10, 64)
    with pytest.raises(ValueError):
        GS.content_box(10, 10, 0)


def test_normalize_pads_with_black_and_centers(make_asset):
    out = GS.normalize(make_asset(40, 20, color=(200, 120, 40)), 64)
    assert out.mime_type == "image/jpeg"
    arr = open_rgb(out)
    assert arr.shape == (64, 64, 3)
    # content box is (0, 16, 64, 32)
    assert arr[4, 32].max() < 16
    assert arr[60, 32].max() < 16
    assert np.allclose(arr[32, 32], (200, 120, 40), atol=12)


def test_normalize_portrait_pads_left_and_right(make_asset):
    arr = open_rgb(GS.normalize(make_asset(20, 40, color=(90, 200, 90)), 64))
    assert arr[32, 4].max() < 16
    assert arr[32, 60].max() < 16
    assert np.allclose(arr[32, 32], (90, 200, 90), atol=12)


def test_normalize_is_reproducible(make_asset):
    asset = make_asset(37, 23)
    assert GS.normalize(asset, 64).data == GS.normalize(asset, 64).data


@pytest.mark.parametrize("w,h", [(40, 20), (20, 40), (33, 17), (50, 50), (64, 10)])
def test_restore_round_trip_has_original_size(w, h):
    restored = GS.restore(GS.normalize(two_tone(w, h), 64), w, h, 64)
    with Image.open(io.BytesIO(restored.data)) as img:
        assert img.size == (w, h)


def test_restore_round_trip_keeps_content_in_place():
    restored = open_rgb(GS.restore(GS.normalize(two_tone(40, 20), 64), 40, 20, 64))
    # no residual padding on any edge, halves still on their side
    assert restored[10, 5, 0] > 150 and restored[10, 5, 2] < 90
    assert restored[10, 35, 2] > 150 and restored[10, 35, 0] < 90
    assert restored[0, 5].max() > 100
    assert restored[19, 35].max() > 100


def test_restore_accepts_off_size_square(make_asset):
    square = make_asset(32, 32)
    restored = GS.restore(square, 40, 20, 64)
    with Image.open(io.BytesIO(restored.data)) as img:
        assert img.size == (40, 20)


def test_decode_errors():
    garbage = ImageAsset(data=b"not an image", mime_type="image/png")
    with pytest.raises(DecodeError):
        GS.normalize(garbage, 64)
    with pytest.raises(DecodeError):
        GS.restore(garbage, 10, 10, 64)


def test_read_dimensions(make_asset):
    dims = GS.read_dimensions(make_asset(40, 20))
    assert (dims.width, dims.height) == (40, 20)
    with pytest.raises(DimensionReadError):
        GS.read_dimensions(ImageAsset(data=b"\x00\x01", mime_type="image/png"))


def test_read_dimensions_applies_exif_rotation():
    img = Image.new("RGB", (40, 20), (10, 10, 10))
    exif = Image.Exif()
    exif[0x0112] = 6
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    asset = ImageAsset(data=buf.getvalue(), mime_type="image/jpeg")
    dims = GS.read_dimensions(asset)
    assert (dims.width, dims.height) == (20, 40)
    with Image.open(io.BytesIO(GS.restore(GS.normalize(asset, 64), 20, 40, 64).data)) as out:
        assert out.size == (20, 40)


def test_transparent_pixels_become_black():
    img = Image.new("RGBA", (20, 20), (255, 255, 255, 0))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    arr = open_rgb(GS.normalize(ImageAsset(data=buf.getvalue(), mime_type="image/png"), 32))
    assert arr.max() < 16


def test_thumbnail_is_jpeg_data_url(make_asset):
    url = GS.make_thumbnail(make_asset(600, 300), max_edge=256)
    assert url.startswith("data:image/jpeg;base64,")
    thumb = ImageAsset.from_data_url(url)
    with Image.open(io.BytesIO(thumb.data)) as img:
        assert img.size == (256, 128)


def test_trim_removes_floored_margins(make_asset):
    out = GS.trim(make_asset(100, 50), Margins(top=20, left=10, right=10.5))
    assert out.mime_type == "image/png"
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.size == (80, 40)


def test_trim_limit():
    with pytest.raises(ValueError):
        GS.trim(two_tone(10, 10), Margins(top=46))


def test_expand_black_fill_places_original_at_offset(make_asset):
    out = GS.expand(make_asset(100, 50, color=(200, 120, 40)), Margins(top=20, left=10), "black")
    arr = open_rgb(out)
    assert arr.shape == (60, 110, 3)
    assert tuple(arr[0, 0]) == (0, 0, 0)
    assert tuple(arr[5, 50]) == (0, 0, 0)
    assert tuple(arr[30, 50]) == (200, 120, 40)
    assert tuple(arr[30, 5]) == (0, 0, 0)


def test_expand_transparent_keeps_alpha(make_asset):
    out = GS.expand(make_asset(20, 20), Margins(right=50), "transparent")
    with Image.open(io.BytesIO(out.data)) as img:
        assert img.mode == "RGBA"
        assert img.size == (30, 20)
        assert img.getpixel((29, 10))[3] == 0
        assert img.getpixel((5, 10))[3] == 255


def test_expand_blur_fill_has_no_black_margin(make_asset):
    arr = open_rgb(GS.expand(make_asset(40, 40, color=(120, 180, 60)), Margins(left=25), "blur"))
    assert arr.shape == (40, 50, 3)
    assert arr[20, 2].max() > 50


def test_expand_rejects_unknown_fill(make_asset):
    with pytest.raises(ValueError):
        GS.expand(make_asset(), Margins(top=10), "sparkle")
