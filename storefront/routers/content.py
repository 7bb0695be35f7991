from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..responses import ok, one, paged
from ..schemas import dump

faqs_router = APIRouter(prefix="/api/admin/faqs", tags=["faqs"])
sliders_router = APIRouter(prefix="/api/admin/sliders", tags=["sliders"])
posts_router = APIRouter(prefix="/api/admin/posts", tags=["posts"])
settings_router = APIRouter(prefix="/api/admin/settings", tags=["settings"])


# --- faqs ---

@faqs_router.get("")
def list_faqs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.FAQOut, crud.content.list_faqs(db, page, limit, search))


@faqs_router.post("", status_code=201)
def create_faq(data: schemas.FAQIn, db: Session = Depends(get_db)):
    return one(schemas.FAQOut, crud.content.create_faq(db, data), message="FAQ created")


@faqs_router.get("/{faq_id}")
def read_faq(faq_id: int, db: Session = Depends(get_db)):
    return one(schemas.FAQOut, crud.content.get_faq(db, faq_id))


@faqs_router.put("/{faq_id}")
def update_faq(faq_id: int, data: schemas.FAQIn, db: Session = Depends(get_db)):
    return one(schemas.FAQOut, crud.content.update_faq(db, faq_id, data), message="FAQ updated")


@faqs_router.delete("/{faq_id}")
def delete_faq(faq_id: int, db: Session = Depends(get_db)):
    crud.content.delete_faq(db, faq_id)
    return ok(message="FAQ deleted")


# --- sliders ---

@sliders_router.get("")
def list_sliders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.SliderOut, crud.content.list_sliders(db, page, limit, search))


@sliders_router.post("", status_code=201)
def create_slider(data: schemas.SliderIn, db: Session = Depends(get_db)):
    return one(schemas.SliderOut, crud.content.create_slider(db, data), message="Slider created")


@sliders_router.get("/{slider_id}")
def read_slider(slider_id: int, db: Session = Depends(get_db)):
    return one(schemas.SliderOut, crud.content.get_slider(db, slider_id))


@sliders_router.put("/{slider_id}")
def update_slider(slider_id: int, data: schemas.SliderIn, db: Session = Depends(get_db)):
    slider = crud.content.update_slider(db, slider_id, data)
    return one(schemas.SliderOut, slider, message="Slider updated")


@sliders_router.delete("/{slider_id}")
def delete_slider(slider_id: int, db: Session = Depends(get_db)):
    crud.content.delete_slider(db, slider_id)
    return ok(message="Slider deleted")


# --- posts ---

@posts_router.get("")
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.PostOut, crud.content.list_posts(db, page, limit, search))


@posts_router.post("", status_code=201)
def create_post(data: schemas.PostIn, db: Session = Depends(get_db)):
    return one(schemas.PostOut, crud.content.create_post(db, data), message="Post created")


@posts_router.get("/{post_id}")
def read_post(post_id: int, db: Session = Depends(get_db)):
    return one(schemas.PostOut, crud.content.get_post(db, post_id))


@posts_router.put("/{post_id}")
def update_post(post_id: int, data: schemas.PostIn, db: Session = Depends(get_db)):
    return one(schemas.PostOut, crud.content.update_post(db, post_id, data), message="Post updated")


@posts_router.delete("/{post_id}")
def delete_post(post_id: int, db: Session = Depends(get_db)):
    crud.content.delete_post(db, post_id)
    return ok(message="Post deleted")


# --- settings ---

@settings_router.get("")
def list_settings(group: Optional[str] = None, db: Session = Depends(get_db)):
    grouped: Dict[str, List[dict]] = {}
    for setting in crud.content.list_settings(db, group):
        grouped.setdefault(setting.group, []).append(dump(schemas.SettingOut, setting))
    return ok(grouped)


@settings_router.put("")
def update_settings(data: schemas.SettingsBatch, db: Session = Depends(get_db)):
    updated = crud.content.update_settings(db, data.settings)
    return ok(message=f"Updated {updated} settings", updated=updated)


@settings_router.get("/{key}")
def read_setting(key: str, db: Session = Depends(get_db)):
    return one(schemas.SettingOut, crud.content.get_setting(db, key))


@settings_router.put("/{key}")
def update_setting(key: str, data: schemas.SettingValue, db: Session = Depends(get_db)):
    setting = crud.content.update_setting(db, key, data.value)
    return one(schemas.SettingOut, setting, message="Setting updated")
