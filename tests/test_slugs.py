import re

import pytest

from storefront.config import normalize_database_url
from storefront.slugs import category_slug, filename_slug, seo_filename


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Summer Sale", "summer-sale"),
        ("  Men's   Shoes ", "mens-shoes"),
        ("T-Shirts & Tops", "t-shirts-tops"),
        ("2024 Collection!", "2024-collection"),
    ],
)
def test_category_slug(name, slug):
    assert category_slug(name) == slug


def test_filename_slug_transliterates():
    assert filename_slug("Café Crème") == "cafe-creme"
    assert re.fullmatch(r"[0-9a-f]{32}", filename_slug("!!!"))


def test_seo_filename_prefers_title():
    assert re.fullmatch(r"photo-1-\d+\.webp", seo_filename("Photo 1.PNG"))
    assert re.fullmatch(r"blue-hat-\d+\.webp", seo_filename("IMG_0001.jpg", "Blue Hat"))


def test_database_url_normalisation():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert normalize_database_url("postgresql://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"
    assert normalize_database_url("").startswith("sqlite:///")
