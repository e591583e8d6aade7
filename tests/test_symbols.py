import io

import numpy as np
import pytest
from PIL import Image

from qr_payloads import PayloadKind, PayloadRecords, WifiRecord, build
from qr_symbols import (
    STYLE_PRESETS, RecentFilter, RenderOptions, RenderSequencer, SymbolError, export_filename,
    load_image, read_image, read_pixels, render_image, render_svg, save_image,
)

OPTIONS = RenderOptions(error_correction="M", size=400, margin=4)


def test_render_then_read_back():
    payload = build(PayloadKind.WIFI, PayloadRecords(wifi=WifiRecord("Home", "p@ss", "WPA")))
    img = render_image(payload, OPTIONS)
    assert img.size == (400, 400)
    assert read_image(img) == payload


def test_read_pixels_rgba():
    img = render_image("https://example.com", OPTIONS).convert("RGBA")
    assert read_pixels(img.tobytes(), img.width, img.height) == "https://example.com"


def test_read_encoded_bytes_and_path(tmp_path):
    img = render_image("tel:+1555", OPTIONS)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    assert read_image(buf.getvalue()) == "tel:+1555"

    path = save_image(img, str(tmp_path / "code"))
    assert path.endswith(".png")
    assert read_image(path) == "tel:+1555"


def test_blank_image_has_no_code():
    blank = Image.new("RGB", (200, 200), "white")
    assert read_image(blank) is None


def test_blank_payload_is_refused():
    with pytest.raises(SymbolError):
        render_image("   ", OPTIONS)
    with pytest.raises(SymbolError):
        render_svg("", OPTIONS)


@pytest.mark.parametrize("kwargs", [
    {"error_correction": "X"},
    {"size": 0},
    {"margin": -1},
])
def test_invalid_options(kwargs):
    with pytest.raises(ValueError):
        render_image("hello", RenderOptions(**kwargs))


def test_style_presets():
    opts = RenderOptions.for_style("organic", size=300)
    assert (opts.foreground, opts.background) == STYLE_PRESETS["organic"]
    assert RenderOptions.for_style("unknown").foreground == "#000000"


def test_logo_overlay_still_reads():
    logo = Image.new("RGBA", (64, 64), (124, 58, 237, 255))
    img = render_image("https://example.com/with-logo", OPTIONS, logo=logo)
    assert read_image(img) == "https://example.com/with-logo"


def test_svg_export():
    data = render_svg("https://example.com", RenderOptions.for_style("pixel"))
    assert b"<svg" in data
    assert b"#dc2626" in data


def test_export_filename():
    assert export_filename("png", now_ms=1700000000123) == "qr-code-1700000000123.png"
    assert export_filename(".SVG", now_ms=5) == "qr-code-5.svg"
    with pytest.raises(ValueError):
        export_filename("gif")


def test_save_jpeg_flattens_alpha(tmp_path):
    img = render_image("hello", OPTIONS)
    path = save_image(img, str(tmp_path / "code.jpg"))
    with Image.open(path) as saved:
        assert saved.mode == "RGB"


def test_load_image_errors(tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"not an image")
    with pytest.raises(SymbolError):
        load_image(str(bad))
    with pytest.raises(SymbolError):
        load_image(b"")
    with pytest.raises(SymbolError):
        load_image(42)


def test_read_pixels_rejects_wrong_size():
    with pytest.raises(SymbolError):
        read_pixels(b"\x00" * 10, 4, 4)
    with pytest.raises(SymbolError):
        read_pixels(b"", 0, 0)


def test_grey_pixels():
    img = render_image("grey", OPTIONS).convert("L")
    arr = np.asarray(img)
    assert read_pixels(arr.tobytes(), img.width, img.height) == "grey"


def test_sequencer_last_write_wins():
    seq = RenderSequencer()
    first = seq.issue()
    second = seq.issue()
    assert second > first
    assert not seq.is_current(first)
    assert seq.is_current(second)


def test_recent_filter_suppresses_repeats_and_forgets_old_codes():
    recent = RecentFilter(window=1.5)
    assert recent.fresh(["a", "b", "a"], now=10.0) == ["a", "b"]
    assert recent.fresh(["a"], now=11.0) == []
    assert recent.fresh(["c"], now=12.0) == ["c"]
    assert set(recent.seen) == {"c"}
    assert recent.fresh(["a"], now=12.0) == ["a"]
