"""
Symbol rendering and reading.

Rendering: qrcode + Pillow (PNG/raster), qrcode.image.svg (vector).
Reading: OpenCV QRCodeDetector on numpy frames, Pillow for formats OpenCV
was not compiled with.
"""

import io
import itertools
import logging
import os
import time
from dataclasses import dataclass, replace

import cv2
import numpy as np
import qrcode
import qrcode.image.svg
from PIL import Image
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

import qr_config

logger = logging.getLogger(__name__)

ERROR_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

# style -> (dark, light)
STYLE_PRESETS = {
    "minimal": ("#000000", "#FFFFFF"),
    "gradient": ("#0891b2", "#FFFFFF"),
    "artdeco": ("#1e293b", "#f8fafc"),
    "organic": ("#059669", "#ecfdf5"),
    "logo": ("#7c3aed", "#faf5ff"),
    "pixel": ("#dc2626", "#fef2f2"),
}

EXPORT_EXTS = ("png", "svg")
LOGO_RATIO = 0.15
BOX_SIZE = 10


class SymbolError(Exception):
    """Rendering or reading a QR symbol failed."""


# ---------------- Options ----------------
@dataclass
class RenderOptions:
    error_correction: str = qr_config.ERROR_LEVEL
    size: int = qr_config.SIZE
    margin: int = qr_config.MARGIN
    foreground: str = "#000000"
    background: str = "#FFFFFF"

    @classmethod
    def for_style(cls, style: str, **kwargs) -> "RenderOptions":
        fg, bg = STYLE_PRESETS.get(style, STYLE_PRESETS["minimal"])
        return cls(foreground=fg, background=bg, **kwargs)

    def validate(self) -> "RenderOptions":
        if self.error_correction not in ERROR_LEVELS:
            raise ValueError(f"error correction must be one of L, M, Q, H, got {self.error_correction!r}")
        if not isinstance(self.size, int) or self.size <= 0:
            raise ValueError(f"size must be a positive integer, got {self.size!r}")
        if not isinstance(self.margin, int) or self.margin < 0:
            raise ValueError(f"margin must be a non-negative integer, got {self.margin!r}")
        return self


def export_filename(ext: str, now_ms: int | None = None) -> str:
    ext = ext.lower().lstrip(".")
    if ext not in EXPORT_EXTS:
        raise ValueError(f"unsupported export format: {ext}")
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"qr-code-{now_ms}.{ext}"


# ---------------- Render ----------------
def _make_qr(payload: str, options: RenderOptions) -> qrcode.QRCode:
    if not (payload or "").strip():
        raise SymbolError("refusing to render a blank payload")
    options.validate()
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_LEVELS[options.error_correction],
        box_size=BOX_SIZE,
        border=options.margin,
    )
    try:
        qr.add_data(payload)
        qr.make(fit=True)
    except Exception as e:  # DataOverflowError and friends
        raise SymbolError(str(e)) from e
    return qr


def render_image(payload: str, options: RenderOptions | None = None,
                 logo: Image.Image | None = None) -> Image.Image:
    options = options or RenderOptions()
    if logo is not None:
        # logo hides modules; only H has room for that
        options = replace(options, error_correction="H")
    qr = _make_qr(payload, options)
    img = qr.make_image(fill_color=options.foreground, back_color=options.background).convert("RGBA")
    img = img.resize((options.size, options.size), Image.Resampling.NEAREST)

    if logo is not None:
        logo = logo.copy().convert("RGBA")
        w, h = img.size
        target = max(1, int(min(w, h) * LOGO_RATIO))
        logo.thumbnail((target, target))
        lw, lh = logo.size

        # white backing behind logo for contrast
        bg = Image.new("RGBA", (lw + 10, lh + 10), (255, 255, 255, 255))
        bg.paste(logo, (5, 5), logo)
        img.alpha_composite(bg, dest=((w - bg.width) // 2, (h - bg.height) // 2))

    logger.debug("Rendered %d chars at %dpx (EC %s)", len(payload), options.size, options.error_correction)
    return img


def _svg_factory(fg: str, bg: str):
    class _StyledSvg(qrcode.image.svg.SvgPathFillImage):
        QR_PATH_STYLE = {**qrcode.image.svg.SvgPathImage.QR_PATH_STYLE, "fill": fg}
        background = bg
    return _StyledSvg


def render_svg(payload: str, options: RenderOptions | None = None) -> bytes:
    options = options or RenderOptions()
    qr = _make_qr(payload, options)
    img = qr.make_image(image_factory=_svg_factory(options.foreground, options.background))
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()


def save_image(img: Image.Image, path: str) -> str:
    """Write `img` to `path`, format from the extension (.png when missing)."""
    root, ext = os.path.splitext(path)
    if not ext:
        path = f"{path}.png"
        ext = ".png"

    ext = ext.lower()
    ext_to_fmt = {
        ".png": "PNG",
        ".jpg": "JPEG",
        ".jpeg": "JPEG",
        ".bmp": "BMP",
        ".webp": "WEBP",
        ".tif": "TIFF",
        ".tiff": "TIFF",
        ".ico": "ICO",
    }
    fmt = ext_to_fmt.get(ext, "PNG")

    # JPEG and BMP do not support alpha; flatten on white
    if fmt in {"JPEG", "BMP"} and img.mode in ("RGBA", "LA"):
        flat = Image.new("RGB", img.size, (255, 255, 255))
        flat.paste(img, mask=img.split()[-1])
        img = flat

    save_kwargs = {}
    if fmt == "JPEG":
        save_kwargs.update({"quality": 95, "optimize": True})
    if fmt == "PNG":
        save_kwargs.update({"optimize": True})

    img.save(path, fmt, **save_kwargs)
    return path


# ---------------- Last-write-wins ----------------
class RenderSequencer:
    """Hands out increasing tokens; only the newest token's result is shown."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = 0

    def issue(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest


class RecentFilter:
    """Suppresses repeats of the same decoded text within `window` seconds."""

    def __init__(self, window: float | None = None):
        self.window = qr_config.DUP_WINDOW if window is None else window
        self.seen: dict[str, float] = {}

    def fresh(self, texts, now: float | None = None) -> list[str]:
        now = time.monotonic() if now is None else now
        # expired entries go first so a long camera session stays bounded
        self.seen = {s: t for s, t in self.seen.items() if now - t < self.window}
        out = []
        for s in texts:
            if s not in self.seen:
                self.seen[s] = now
                out.append(s)
        return out


# ---------------- Read ----------------
_detector = None


def _get_detector():
    global _detector
    if _detector is None:
        _detector = cv2.QRCodeDetector()
    return _detector


def _pil_to_bgr(pil: Image.Image) -> np.ndarray:
    if pil.mode in ("RGBA", "LA"):
        arr = np.array(pil.convert("RGBA"))
        return cv2.cvtColor(arr, cv2.COLOR_RGBA2BGRA)
    arr = np.array(pil.convert("RGB"))
    return cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)


def load_image(image) -> np.ndarray:
    """Path, encoded bytes, PIL image or ndarray -> OpenCV frame."""
    if isinstance(image, np.ndarray):
        return image
    if isinstance(image, Image.Image):
        return _pil_to_bgr(image)
    if isinstance(image, (bytes, bytearray)):
        if not image:
            raise SymbolError("empty image data")
        frame = cv2.imdecode(np.frombuffer(bytes(image), dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        source = io.BytesIO(bytes(image))
    elif isinstance(image, (str, os.PathLike)):
        frame = cv2.imread(os.fspath(image), cv2.IMREAD_UNCHANGED)
        source = os.fspath(image)
    else:
        raise SymbolError(f"unsupported image input: {type(image).__name__}")
    if frame is not None:
        return frame
    # Fallback via Pillow for formats not compiled into OpenCV, e.g., WebP
    try:
        with Image.open(source) as pil:
            return _pil_to_bgr(pil)
    except (OSError, ValueError) as e:
        raise SymbolError(f"failed to open image: {e}") from e


def _normalize(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 3 and frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame


def read_all(frame: np.ndarray) -> list[str]:
    """Every decodable symbol in the frame, multi-detect first."""
    frame = _normalize(frame)
    detector = _get_detector()
    data_list: list[str] = []
    try:
        retval, infos, points, _ = detector.detectAndDecodeMulti(frame)
        if retval:
            data_list.extend(s for s in infos if s)
    except cv2.error as e:
        logger.debug("Multi decode failed, trying single: %s", e)
    if not data_list:
        try:
            s, points, _ = detector.detectAndDecode(frame)
        except cv2.error as e:
            raise SymbolError(f"decode failed: {e}") from e
        if s:
            data_list.append(s)
    return data_list


def read_image(image) -> str | None:
    """First decoded text in the image, None when no code is found."""
    found = read_all(load_image(image))
    return found[0] if found else None


def read_pixels(pixels, width: int, height: int) -> str | None:
    """Decode raw pixel bytes (RGBA, RGB or grey rows, top to bottom)."""
    if width <= 0 or height <= 0:
        raise SymbolError(f"invalid dimensions {width}x{height}")
    arr = np.frombuffer(bytes(pixels), dtype=np.uint8)
    channels, rem = divmod(arr.size, width * height)
    if rem or channels not in (1, 3, 4):
        raise SymbolError(f"{arr.size} bytes do not fit a {width}x{height} image")
    if channels == 1:
        frame = arr.reshape(height, width)
    else:
        frame = arr.reshape(height, width, channels)
        code = cv2.COLOR_RGBA2BGR if channels == 4 else cv2.COLOR_RGB2BGR
        frame = cv2.cvtColor(frame, code)
    found = read_all(frame)
    return found[0] if found else None
