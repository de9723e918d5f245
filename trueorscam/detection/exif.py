# detection/exif.py
from io import BytesIO

from PIL import Image, UnidentifiedImageError

EXIF_IFD = 0x8769

# output key -> (tag id, lives in the Exif sub-IFD)
EXIF_FIELDS = {
    "make": (0x010F, False),
    "model": (0x0110, False),
    "software": (0x0131, False),
    "modify_date": (0x0132, False),   # DateTime
    "orientation": (0x0112, False),
    "create_date": (0x9004, True),    # DateTimeDigitized
    "lens_model": (0xA434, True),
}


def _plain(value):
    """EXIF values as JSON-friendly scalars."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip("\x00").strip()
    if isinstance(value, str):
        return value.strip("\x00").strip()
    if isinstance(value, int):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return str(value)


def extract_exif(image_bytes: bytes) -> dict:
    """Pick camera/editing metadata out of an image. Never raises."""
    try:
        with Image.open(BytesIO(image_bytes or b"")) as img:
            exif = img.getexif()
            if not exif:
                return {"has_exif": False}
            sub = exif.get_ifd(EXIF_IFD)
            meta = {}
            for key, (tag, in_sub) in EXIF_FIELDS.items():
                meta[key] = _plain((sub if in_sub else exif).get(tag))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError, KeyError, TypeError):
        return {"has_exif": False}
    return {"has_exif": True, "meta": meta}
