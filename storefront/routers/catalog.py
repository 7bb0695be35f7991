from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..errors import ValidationFailed
from ..responses import ok, one, paged
from ..schemas import dump_many

categories_router = APIRouter(prefix="/api/admin/categories", tags=["categories"])
products_router = APIRouter(prefix="/api/admin/products", tags=["products"])
reviews_router = APIRouter(prefix="/api/admin/reviews", tags=["reviews"])


# --- categories ---

@categories_router.get("")
def list_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.CategoryOut, crud.catalog.list_categories(db, page, limit, search))


@categories_router.post("", status_code=201)
def create_category(data: schemas.CategoryIn, db: Session = Depends(get_db)):
    return one(schemas.CategoryOut, crud.catalog.create_category(db, data), message="Category created")


@categories_router.get("/{category_id}")
def read_category(category_id: int, db: Session = Depends(get_db)):
    return one(schemas.CategoryOut, crud.catalog.get_category(db, category_id))


@categories_router.put("/{category_id}")
def update_category(category_id: int, data: schemas.CategoryIn, db: Session = Depends(get_db)):
    category = crud.catalog.update_category(db, category_id, data)
    return one(schemas.CategoryOut, category, message="Category updated")


@categories_router.delete("/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db)):
    crud.catalog.delete_category(db, category_id)
    return ok(message="Category deleted")


# --- products ---

@products_router.get("")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    category_id: Optional[int] = Query(None, alias="categoryId"),
    is_published: Optional[bool] = Query(None, alias="isPublished"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
):
    result = crud.catalog.list_products(
        db, page, limit, search, category_id, is_published, sort_by, sort_order
    )
    return paged(schemas.ProductOut, result)


@products_router.post("", status_code=201)
def create_product(data: schemas.ProductCreate, db: Session = Depends(get_db)):
    return one(schemas.ProductOut, crud.catalog.create_product(db, data), message="Product created")


# declared before /{product_id} so "variants" is not parsed as an id
@products_router.get("/variants")
def list_variants(
    product_id: Optional[int] = Query(None, alias="productId"),
    db: Session = Depends(get_db),
):
    if product_id is None:
        raise ValidationFailed("productId is required")
    return ok(dump_many(schemas.VariantOut, crud.catalog.list_variants(db, product_id)))


@products_router.get("/{product_id}")
def read_product(product_id: int, db: Session = Depends(get_db)):
    return one(schemas.ProductOut, crud.catalog.get_product(db, product_id))


@products_router.put("/{product_id}")
def update_product(product_id: int, data: schemas.ProductUpdate, db: Session = Depends(get_db)):
    product = crud.catalog.update_product(db, product_id, data)
    return one(schemas.ProductOut, product, message="Product updated")


@products_router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    crud.catalog.delete_product(db, product_id)
    return ok(message="Product deleted")


# --- reviews ---

@reviews_router.get("")
def list_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.ReviewOut, crud.catalog.list_reviews(db, page, limit, search))


@reviews_router.post("", status_code=201)
def create_review(data: schemas.ReviewIn, db: Session = Depends(get_db)):
    return one(schemas.ReviewOut, crud.catalog.create_review(db, data), message="Review created")


@reviews_router.get("/{review_id}")
def read_review(review_id: int, db: Session = Depends(get_db)):
    return one(schemas.ReviewOut, crud.catalog.get_review(db, review_id))


@reviews_router.put("/{review_id}")
def update_review(review_id: int, data: schemas.ReviewIn, db: Session = Depends(get_db)):
    return one(schemas.ReviewOut, crud.catalog.update_review(db, review_id, data), message="Review updated")


@reviews_router.delete("/{review_id}")
def delete_review(review_id: int, db: Session = Depends(get_db)):
    crud.catalog.delete_review(db, review_id)
    return ok(message="Review deleted")
