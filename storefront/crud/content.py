import json
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..database_helper import db_helper, safe_query
from ..errors import Conflict, NotFound
from .common import Page, find_by, get_or_404, paginate, search_filter

logger = logging.getLogger(__name__)


def _check_image(db: Session, image_id: Optional[int]) -> None:
    if image_id is not None:
        get_or_404(db, models.Image, image_id, "Image not found")


# --- faqs ---

def list_faqs(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.FAQ,
        search_filter(search, models.FAQ.question, models.FAQ.answer),
        order_by=(models.FAQ.sort_order.asc(), models.FAQ.created_at.desc()),
        page=page,
        limit=limit,
    )


def get_faq(db: Session, faq_id: int) -> models.FAQ:
    return get_or_404(db, models.FAQ, faq_id, "FAQ not found")


def create_faq(db: Session, data: schemas.FAQIn) -> models.FAQ:
    return safe_query.create(db, models.FAQ(**data.model_dump()))


def update_faq(db: Session, faq_id: int, data: schemas.FAQIn) -> models.FAQ:
    return safe_query.update(db, get_faq(db, faq_id), **data.model_dump())


def delete_faq(db: Session, faq_id: int) -> None:
    safe_query.delete(db, get_faq(db, faq_id))


# --- sliders ---

def list_sliders(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.Slider,
        search_filter(search, models.Slider.title, models.Slider.subtitle, models.Slider.content),
        order_by=(models.Slider.sort_order.asc(), models.Slider.created_at.desc()),
        page=page,
        limit=limit,
        options=(selectinload(models.Slider.image),),
    )


def get_slider(db: Session, slider_id: int) -> models.Slider:
    return get_or_404(db, models.Slider, slider_id, "Slider not found")


def create_slider(db: Session, data: schemas.SliderIn) -> models.Slider:
    _check_image(db, data.image_id)
    return safe_query.create(db, models.Slider(**data.model_dump()))


def update_slider(db: Session, slider_id: int, data: schemas.SliderIn) -> models.Slider:
    slider = get_slider(db, slider_id)
    _check_image(db, data.image_id)
    return safe_query.update(db, slider, **data.model_dump())


def delete_slider(db: Session, slider_id: int) -> None:
    safe_query.delete(db, get_slider(db, slider_id))


# --- posts ---

def list_posts(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.Post,
        search_filter(search, models.Post.title, models.Post.excerpt, models.Post.content),
        order_by=(models.Post.sort_order.asc(), models.Post.created_at.desc()),
        page=page,
        limit=limit,
        options=(selectinload(models.Post.thumbnail),),
    )


def get_post(db: Session, post_id: int) -> models.Post:
    return get_or_404(db, models.Post, post_id, "Post not found")


def _check_post_slug(db: Session, slug: str, exclude_id: Optional[int] = None) -> None:
    criteria = [models.Post.slug == slug]
    if exclude_id is not None:
        criteria.append(models.Post.id != exclude_id)
    if find_by(db, models.Post, *criteria) is not None:
        raise Conflict("Slug already exists")


def create_post(db: Session, data: schemas.PostIn) -> models.Post:
    _check_post_slug(db, data.slug)
    _check_image(db, data.thumbnail_id)
    return safe_query.create(db, models.Post(**data.model_dump()))


def update_post(db: Session, post_id: int, data: schemas.PostIn) -> models.Post:
    post = get_post(db, post_id)
    _check_post_slug(db, data.slug, exclude_id=post_id)
    _check_image(db, data.thumbnail_id)
    return safe_query.update(db, post, **data.model_dump())


def delete_post(db: Session, post_id: int) -> None:
    safe_query.delete(db, get_post(db, post_id))


# --- images (metadata only; bytes live in storage) ---

def list_images(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.Image,
        search_filter(search, models.Image.title, models.Image.alt, models.Image.original_name),
        order_by=(models.Image.created_at.desc(), models.Image.id.desc()),
        page=page,
        limit=limit,
    )


def get_image(db: Session, image_id: int) -> models.Image:
    return get_or_404(db, models.Image, image_id, "Image not found")


def create_image(db: Session, **values) -> models.Image:
    return safe_query.create(db, models.Image(**values))


def update_image(db: Session, image_id: int, data: schemas.ImageUpdate) -> models.Image:
    image = get_image(db, image_id)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    return safe_query.update(db, image, **changes)


def delete_image(db: Session, image: models.Image) -> None:
    safe_query.delete(db, image)


# --- settings ---

def setting_text(value) -> str:
    """Store strings as given; booleans, numbers, lists and objects as JSON text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def list_settings(db: Session, group: Optional[str] = None):
    stmt = select(models.Setting)
    if group:
        stmt = stmt.where(models.Setting.group == group).order_by(models.Setting.key.asc())
    else:
        stmt = stmt.order_by(models.Setting.group.asc(), models.Setting.key.asc())
    return safe_query.find_many(db, stmt)


def get_setting(db: Session, key: str) -> models.Setting:
    setting = find_by(db, models.Setting, models.Setting.key == key)
    if setting is None:
        raise NotFound("Setting not found")
    return setting


def update_setting(db: Session, key: str, value) -> models.Setting:
    setting = get_setting(db, key)
    setting = safe_query.update(db, setting, value=setting_text(value))
    logger.info("Updated setting %s", key)
    return setting


def update_settings(db: Session, values: dict) -> int:
    """Write every key in one transaction; unknown keys are ignored. Returns rows touched."""

    def work(tx: Session) -> int:
        updated = 0
        for key, value in values.items():
            result = tx.execute(
                update(models.Setting)
                .where(models.Setting.key == key)
                .values(value=setting_text(value))
            )
            updated += result.rowcount or 0
        return updated

    updated = db_helper.transaction(db, work)
    logger.info("Updated %d settings", updated)
    return updated
