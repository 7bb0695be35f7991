import io
import logging

from PIL import Image, UnidentifiedImageError

from .errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_WIDTH = 1920
WEBP_QUALITY = 85
OUTPUT_TYPE = "image/webp"


def validate_upload(content_type: str | None, size: int) -> None:
    if content_type not in ALLOWED_TYPES:
        raise ValidationFailed("Invalid file type")
    if size > MAX_UPLOAD_BYTES:
        raise ValidationFailed("File too large (max 10MB)")


def optimize_image(data: bytes, max_width: int = MAX_WIDTH, quality: int = WEBP_QUALITY) -> bytes:
    """Downscale to ``max_width`` (never upscale) and re-encode as WebP."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.width > max_width:
                height = max(1, round(img.height * max_width / img.width))
                img = img.resize((max_width, height), Image.LANCZOS)
            if img.mode not in ("RGB", "RGBA"):
                has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
                img = img.convert("RGBA" if has_alpha else "RGB")
            out = io.BytesIO()
            img.save(out, format="WEBP", quality=quality, method=4)
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Rejected unreadable image: %s", exc)
        raise ValidationFailed("Invalid image file") from exc
    return out.getvalue()
