import numpy as np
import pytest
from PIL import Image, ImageOps

from upright.bitmap import Bitmap
from upright.loader import (
    _supported_image,
    load_bitmap,
    output_path_for,
    pil_format,
    read_orientation,
    resize_bitmap,
    save_bitmap,
)
from upright.normalizer import normalize
from upright.orientation import Orientation

EXIF_ORIENTATION_TAG = 0x0112


def _write_tagged_png(path, code, size=(3, 2)):
    width, height = size
    pixels = (np.arange(width * height * 3, dtype=np.uint8) * 9).reshape(
        height, width, 3
    )
    exif = Image.Exif()
    exif[EXIF_ORIENTATION_TAG] = code
    Image.fromarray(pixels).save(path, "PNG", exif=exif.tobytes())
    return pixels


@pytest.mark.parametrize("code", range(1, 9))
def test_load_and_normalize_matches_exif_transpose(tmp_path, code):
    path = tmp_path / f"tagged_{code}.png"
    _write_tagged_png(path, code)

    bitmap = load_bitmap(path)
    assert bitmap.orientation is Orientation.from_exif(code)
    assert bitmap.size == (3, 2)

    with Image.open(path) as img:
        expected = np.array(ImageOps.exif_transpose(img))
    np.testing.assert_array_equal(normalize(bitmap).pixels, expected)


def test_untagged_file_is_upright(tmp_path):
    path = tmp_path / "plain.png"
    Image.new("L", (2, 2)).save(path)
    assert read_orientation(path) is Orientation.UP
    assert load_bitmap(path).orientation is Orientation.UP


def test_explicit_orientation_wins(tmp_path):
    path = tmp_path / "tagged.png"
    _write_tagged_png(path, 6)
    assert load_bitmap(path, Orientation.DOWN).orientation is Orientation.DOWN


@pytest.mark.parametrize(
    "mode, expected", [("RGBa", "RGBA"), ("PA", "RGBA"), ("RGBX", "RGB"), ("L", "L")]
)
def test_unsupported_modes_are_converted(mode, expected):
    assert _supported_image(Image.new(mode, (2, 2))).mode == expected


def test_saved_copy_is_tagged_upright(tmp_path):
    source = tmp_path / "in.png"
    pixels = _write_tagged_png(source, 6)
    upright = normalize(load_bitmap(source))

    target = save_bitmap(upright, tmp_path / "out" / "in.png", "PNG")
    with Image.open(target) as img:
        assert img.getexif().get(EXIF_ORIENTATION_TAG) == 1
        assert img.size == (2, 3)
        saved = np.array(img)
    np.testing.assert_array_equal(saved, np.rot90(pixels, -1))


def test_save_without_exif(tmp_path):
    source = tmp_path / "in.png"
    _write_tagged_png(source, 3)
    upright = normalize(load_bitmap(source))
    target = save_bitmap(upright, tmp_path / "out.png", "PNG", keep_exif=False)
    with Image.open(target) as img:
        assert EXIF_ORIENTATION_TAG not in img.getexif()


def test_jpeg_output_drops_alpha(tmp_path):
    bitmap = Bitmap.from_pil(Image.new("RGBA", (4, 4), (10, 20, 30, 128)))
    target = save_bitmap(bitmap, tmp_path / "out.jpg", "JPEG", quality=80)
    with Image.open(target) as img:
        assert img.mode == "RGB"
        assert img.size == (4, 4)


def test_resize_bitmap_limits_long_edge():
    bitmap = Bitmap.from_pil(Image.new("RGB", (400, 200)))
    bitmap.exif = b"Exif\x00\x00"
    resized = resize_bitmap(bitmap, 100)
    assert resized.size == (100, 50)
    assert resized.exif == b"Exif\x00\x00"
    assert resize_bitmap(bitmap, 0) is bitmap
    assert resize_bitmap(bitmap, 500) is bitmap


def test_resize_keeps_portrait_aspect():
    bitmap = Bitmap.from_pil(Image.new("L", (30, 90)))
    assert resize_bitmap(bitmap, 45).size == (15, 45)


@pytest.mark.parametrize(
    "fmt, name, expected",
    [
        ("keep", "a.jpg", "JPEG"),
        ("keep", "a.TIFF", "TIFF"),
        ("keep", "a.arw", "JPEG"),
        ("png", "a.jpg", "PNG"),
        ("WEBP", "a.png", "WEBP"),
    ],
)
def test_pil_format(tmp_path, fmt, name, expected):
    assert pil_format(fmt, tmp_path / name) == expected


def test_pil_format_rejects_unknown(tmp_path):
    with pytest.raises(ValueError):
        pil_format("bmp", tmp_path / "a.jpg")


def test_output_path_preserves_structure(tmp_path):
    input_dir = tmp_path / "in"
    output_dir = input_dir / "upright"
    path = input_dir / "2024" / "a.JPG"

    keep = output_path_for(path, input_dir, output_dir, {"format": "keep"})
    assert keep == output_dir / "2024" / "a.JPG"

    cfg = {"format": "png", "suffix": "_up"}
    png = output_path_for(path, input_dir, output_dir, cfg)
    assert png == output_dir / "2024" / "a_up.png"

    raw = output_path_for(input_dir / "b.arw", input_dir, output_dir, {})
    assert raw == output_dir / "b.jpg"


def test_output_path_outside_input_dir(tmp_path):
    path = tmp_path / "elsewhere" / "c.png"
    out = output_path_for(path, tmp_path / "in", tmp_path / "out", {})
    assert out == tmp_path / "out" / "c.png"
