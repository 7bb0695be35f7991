import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..database_helper import db_helper, safe_query
from ..errors import Conflict, NotFound, ValidationFailed
from ..slugs import category_slug
from .common import Page, find_by, get_or_404, paginate, search_filter

logger = logging.getLogger(__name__)

PRODUCT_SORT_COLUMNS = {
    "createdAt": models.Product.created_at,
    "name": models.Product.name,
    "sortOrder": models.Product.sort_order,
}

_product_options = (
    selectinload(models.Product.category),
    selectinload(models.Product.variants),
    selectinload(models.Product.images).selectinload(models.ProductImage.image),
)


# --- categories ---

def list_categories(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.Category,
        search_filter(
            search, models.Category.name, models.Category.description, models.Category.slug
        ),
        order_by=(models.Category.sort_order.asc(), models.Category.created_at.desc()),
        page=page,
        limit=limit,
    )


def get_category(db: Session, category_id: int) -> models.Category:
    return get_or_404(db, models.Category, category_id, "Category not found")


def _check_slug(db: Session, model, slug: str, exclude_id: Optional[int] = None) -> None:
    criteria = [model.slug == slug]
    if exclude_id is not None:
        criteria.append(model.id != exclude_id)
    if find_by(db, model, *criteria) is not None:
        raise Conflict("Slug already exists")


def create_category(db: Session, data: schemas.CategoryIn) -> models.Category:
    slug = data.slug or category_slug(data.name)
    _check_slug(db, models.Category, slug)
    return safe_query.create(db, models.Category(
        name=data.name,
        slug=slug,
        description=data.description or None,
        sort_order=data.sort_order if data.sort_order is not None else 0,
        is_visible=data.is_visible if data.is_visible is not None else True,
    ))


def update_category(db: Session, category_id: int, data: schemas.CategoryIn) -> models.Category:
    category = get_category(db, category_id)
    slug = data.slug or category_slug(data.name)
    _check_slug(db, models.Category, slug, exclude_id=category_id)
    values = {"name": data.name, "slug": slug, "description": data.description or None}
    if data.sort_order is not None:
        values["sort_order"] = data.sort_order
    if data.is_visible is not None:
        values["is_visible"] = data.is_visible
    return safe_query.update(db, category, **values)


def delete_category(db: Session, category_id: int) -> None:
    category = get_category(db, category_id)
    if safe_query.count(db, models.Product, models.Product.category_id == category_id):
        raise ValidationFailed("Cannot delete category with products")
    safe_query.delete(db, category)


# --- products ---

def list_products(
    db: Session,
    page: int,
    limit: int,
    search: str = "",
    category_id: Optional[int] = None,
    is_published: Optional[bool] = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> Page:
    column = PRODUCT_SORT_COLUMNS.get(sort_by, models.Product.created_at)
    published = None
    if is_published is not None:
        published = (
            models.Product.status == "active" if is_published else models.Product.status != "active"
        )
    return paginate(
        db,
        models.Product,
        search_filter(
            search,
            models.Product.name,
            models.Product.description,
            models.Product.short_desc,
        ),
        models.Product.category_id == category_id if category_id is not None else None,
        published,
        order_by=(column.asc() if sort_order == "asc" else column.desc(), models.Product.id.desc()),
        page=page,
        limit=limit,
        options=_product_options,
    )


def get_product(db: Session, product_id: int) -> models.Product:
    stmt = (
        select(models.Product)
        .where(models.Product.id == product_id)
        .options(*_product_options)
    )
    product = safe_query.find_first(db, stmt)
    if product is None:
        raise NotFound("Product not found")
    return product


def _build_variants(variants: list[schemas.VariantIn]) -> list[models.ProductVariant]:
    has_default = any(v.is_default for v in variants)
    return [
        models.ProductVariant(
            name=variant.name,
            description=variant.description,
            price=variant.price,
            original_price=variant.original_price,
            stock=variant.stock,
            is_default=variant.is_default or (not has_default and index == 0),
            is_visible=variant.is_visible,
            sort_order=variant.sort_order if variant.sort_order is not None else index,
        )
        for index, variant in enumerate(variants)
    ]


def _build_images(db: Session, image_ids: list[int]) -> list[models.ProductImage]:
    links = []
    for index, image_id in enumerate(image_ids):
        if db.get(models.Image, image_id) is None:
            raise NotFound(f"Image {image_id} not found")
        links.append(models.ProductImage(image_id=image_id, sort_order=index))
    return links


def create_product(db: Session, data: schemas.ProductCreate) -> models.Product:
    _check_slug(db, models.Product, data.slug)
    get_or_404(db, models.Category, data.category_id, "Category not found")

    def work(tx: Session) -> int:
        product = models.Product(
            name=data.name,
            slug=data.slug,
            description=data.description,
            short_desc=data.short_desc,
            features=list(data.features),
            category_id=data.category_id,
            sort_order=data.sort_order,
            is_visible=data.is_visible,
            status=data.status,
            variants=_build_variants(data.variants),
            images=_build_images(tx, data.image_ids),
        )
        tx.add(product)
        tx.flush()
        return product.id

    product_id = db_helper.transaction(db, work)
    logger.info("Created product %s", data.name)
    return get_product(db, product_id)


def update_product(db: Session, product_id: int, data: schemas.ProductUpdate) -> models.Product:
    product = get_product(db, product_id)
    changes = data.model_dump(exclude_unset=True, exclude={"variants", "image_ids"})
    if "slug" in changes:
        _check_slug(db, models.Product, changes["slug"], exclude_id=product_id)
    if "category_id" in changes:
        get_or_404(db, models.Category, changes["category_id"], "Category not found")

    def work(tx: Session) -> None:
        for key, value in changes.items():
            if value is not None:
                setattr(product, key, value)
        if data.variants is not None:
            in_use = tx.scalar(
                select(models.OrderItem.id)
                .join(models.ProductVariant, models.OrderItem.variant_id == models.ProductVariant.id)
                .where(models.ProductVariant.product_id == product_id)
                .limit(1)
            )
            if in_use is not None:
                raise ValidationFailed("Cannot replace variants that appear in orders")
            product.variants = _build_variants(data.variants)
        if data.image_ids is not None:
            product.images = _build_images(tx, data.image_ids)

    db_helper.transaction(db, work)
    logger.info("Updated product %s", product_id)
    return get_product(db, product_id)


def delete_product(db: Session, product_id: int) -> None:
    product = get_or_404(db, models.Product, product_id, "Product not found")
    if safe_query.count(db, models.OrderItem, models.OrderItem.product_id == product_id):
        raise ValidationFailed("Cannot delete product with orders")
    safe_query.delete(db, product)
    logger.info("Deleted product %s", product_id)


def list_variants(db: Session, product_id: int):
    stmt = (
        select(models.ProductVariant)
        .where(models.ProductVariant.product_id == product_id)
        .order_by(models.ProductVariant.sort_order.asc())
    )
    return safe_query.find_many(db, stmt)


# --- reviews ---

_review_options = (
    selectinload(models.Review.customer),
    selectinload(models.Review.product),
)


def list_reviews(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.Review,
        search_filter(search, models.Review.title, models.Review.content),
        order_by=(models.Review.created_at.desc(), models.Review.id.desc()),
        page=page,
        limit=limit,
        options=_review_options,
    )


def get_review(db: Session, review_id: int) -> models.Review:
    stmt = select(models.Review).where(models.Review.id == review_id).options(*_review_options)
    review = safe_query.find_first(db, stmt)
    if review is None:
        raise NotFound("Review not found")
    return review


def _check_review_refs(db: Session, data: schemas.ReviewIn, exclude_id: Optional[int] = None) -> None:
    get_or_404(db, models.Customer, data.customer_id, "Customer not found")
    get_or_404(db, models.Product, data.product_id, "Product not found")
    criteria = [
        models.Review.customer_id == data.customer_id,
        models.Review.product_id == data.product_id,
    ]
    if exclude_id is not None:
        criteria.append(models.Review.id != exclude_id)
    if find_by(db, models.Review, *criteria) is not None:
        raise Conflict("This customer has already reviewed this product")


def create_review(db: Session, data: schemas.ReviewIn) -> models.Review:
    _check_review_refs(db, data)
    review = safe_query.create(db, models.Review(**data.model_dump()))
    return get_review(db, review.id)


def update_review(db: Session, review_id: int, data: schemas.ReviewIn) -> models.Review:
    review = get_or_404(db, models.Review, review_id, "Review not found")
    _check_review_refs(db, data, exclude_id=review_id)
    safe_query.update(db, review, **data.model_dump())
    return get_review(db, review_id)


def delete_review(db: Session, review_id: int) -> None:
    review = get_or_404(db, models.Review, review_id, "Review not found")
    safe_query.delete(db, review)
