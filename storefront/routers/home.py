from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, selectinload

from .. import crud, models, schemas
from ..config import settings
from ..database import get_db
from ..database_helper import db_helper
from ..responses import ok
from ..schemas import dump, dump_many

router = APIRouter(prefix="/api/home", tags=["home"])
health_router = APIRouter(prefix="/api", tags=["health"])


@router.get("/categories")
def home_categories(limit: int = Query(8, ge=1, le=100), db: Session = Depends(get_db)):
    return ok([
        {**dump(schemas.CategoryOut, row["category"]), "productCount": row["product_count"]}
        for row in crud.home.visible_categories(db, limit)
    ])


@router.get("/latest-products")
def home_latest_products(limit: int = Query(8, ge=1, le=100), db: Session = Depends(get_db)):
    return ok(crud.home.latest_products(db, limit))


@router.get("/reviews")
def home_reviews(limit: int = Query(6, ge=1, le=100), db: Session = Depends(get_db)):
    return ok(crud.home.visible_reviews(db, limit))


@router.get("/faqs")
def home_faqs(limit: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    return ok(dump_many(schemas.FAQOut, crud.home.visible_rows(db, models.FAQ, limit)))


@router.get("/sliders")
def home_sliders(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    sliders = crud.home.visible_rows(db, models.Slider, limit, selectinload(models.Slider.image))
    return ok(dump_many(schemas.SliderOut, sliders))


@router.get("/posts")
def home_posts(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    posts = crud.home.published_posts(db, limit)
    return ok(dump_many(schemas.PostOut, posts))


@router.get("/settings")
def home_settings(db: Session = Depends(get_db)):
    return ok(crud.home.public_settings(db))


@health_router.get("/health")
def health(db: Session = Depends(get_db)):
    healthy, elapsed_ms, error = db_helper.health_check(db)
    body = {
        "status": "ok" if healthy else "error",
        "database": "connected" if healthy else "disconnected",
        "responseTime": elapsed_ms,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if healthy:
        return body
    if settings.expose_error_details:
        body["details"] = error
    return JSONResponse(status_code=503, content=body)
