import re
import time
import unicodedata
from uuid import uuid4

_UNSAFE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")


def category_slug(name: str) -> str:
    """
    Slug used when a category (or other admin entity) is saved without one:
    lowercase, drop anything but ASCII letters, digits, whitespace and
    hyphens, then turn whitespace runs into single hyphens.
    """
    value = _UNSAFE.sub("", name.strip().lower())
    return _WHITESPACE.sub("-", value).strip()


def filename_slug(value: str) -> str:
    ascii_value = (
        unicodedata.normalize("NFKD", value.lower()).encode("ascii", "ignore").decode("ascii")
    )
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_value).strip("-")
    return slug or uuid4().hex


def seo_filename(original_name: str, title: str | None = None, extension: str = "webp") -> str:
    base = title or original_name.rsplit(".", 1)[0]
    return f"{filename_slug(base)}-{int(time.time() * 1000)}.{extension}"
