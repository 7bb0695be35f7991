from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..database_helper import db_helper, safe_query

ANONYMOUS = "Anonymous"
PUBLIC_SETTING_GROUPS = ("general", "social")


def visible_categories(db: Session, limit: int) -> List[Dict[str, Any]]:
    counts = (
        select(models.Product.category_id, func.count(models.Product.id).label("product_count"))
        .where(models.Product.is_visible.is_(True), models.Product.status == "active")
        .group_by(models.Product.category_id)
        .subquery()
    )
    stmt = (
        select(models.Category, func.coalesce(counts.c.product_count, 0))
        .outerjoin(counts, counts.c.category_id == models.Category.id)
        .where(models.Category.is_visible.is_(True))
        .order_by(models.Category.sort_order.asc(), models.Category.created_at.desc())
        .limit(limit)
    )
    rows = db_helper.execute_with_retry(lambda: db.execute(stmt).all(), db)
    return [{"category": category, "product_count": count} for category, count in rows]


def _review_stats(db: Session, product_ids: List[int]) -> Dict[int, tuple]:
    if not product_ids:
        return {}
    stmt = (
        select(models.Review.product_id, func.count(models.Review.id), func.avg(models.Review.rating))
        .where(models.Review.is_visible.is_(True), models.Review.product_id.in_(product_ids))
        .group_by(models.Review.product_id)
    )
    rows = db_helper.execute_with_retry(lambda: db.execute(stmt).all(), db)
    return {product_id: (count, avg) for product_id, count, avg in rows}


def _storefront_variant(product: models.Product):
    visible = [v for v in product.variants if v.is_visible]
    for variant in visible:
        if variant.is_default:
            return variant
    return visible[0] if visible else None


def latest_products(db: Session, limit: int) -> List[Dict[str, Any]]:
    stmt = (
        select(models.Product)
        .where(models.Product.is_visible.is_(True), models.Product.status == "active")
        .order_by(models.Product.created_at.desc(), models.Product.id.desc())
        .limit(limit)
        .options(
            selectinload(models.Product.category),
            selectinload(models.Product.variants),
            selectinload(models.Product.images).selectinload(models.ProductImage.image),
        )
    )
    products = safe_query.find_many(db, stmt)
    stats = _review_stats(db, [p.id for p in products])

    result = []
    for product in products:
        variant = _storefront_variant(product)
        review_count, avg_rating = stats.get(product.id, (0, None))
        result.append({
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "shortDesc": product.short_desc,
            "features": product.features,
            "categoryId": product.category_id,
            "category": {
                "id": product.category.id,
                "name": product.category.name,
                "slug": product.category.slug,
            },
            "price": str(variant.price) if variant else "0",
            "originalPrice": (
                str(variant.original_price) if variant and variant.original_price is not None else None
            ),
            "imageUrl": product.images[0].image.url if product.images else None,
            "rating": round(float(avg_rating), 1) if avg_rating is not None else 0,
            "reviewCount": review_count,
            "createdAt": product.created_at.isoformat(),
        })
    return result


def visible_reviews(db: Session, limit: int) -> List[Dict[str, Any]]:
    stmt = (
        select(models.Review)
        .where(models.Review.is_visible.is_(True))
        .order_by(models.Review.sort_order.asc(), models.Review.created_at.desc())
        .limit(limit)
        .options(selectinload(models.Review.customer), selectinload(models.Review.product))
    )
    return [
        {
            "id": review.id,
            "rating": review.rating,
            "title": review.title,
            "content": review.content,
            "productId": review.product_id,
            "customerName": review.customer.name if review.customer else ANONYMOUS,
            "productName": review.product.name if review.product else "",
            "createdAt": review.created_at.isoformat(),
        }
        for review in safe_query.find_many(db, stmt)
    ]


def visible_rows(db: Session, model, limit: int, *options, criteria=()):
    stmt = (
        select(model)
        .where(model.is_visible.is_(True), *criteria)
        .order_by(model.sort_order.asc(), model.created_at.desc())
        .limit(limit)
    )
    if options:
        stmt = stmt.options(*options)
    return safe_query.find_many(db, stmt)


def published_posts(db: Session, limit: int):
    return visible_rows(
        db,
        models.Post,
        limit,
        selectinload(models.Post.thumbnail),
        criteria=(models.Post.status == "published",),
    )


def public_settings(db: Session) -> Dict[str, str]:
    stmt = (
        select(models.Setting)
        .where(models.Setting.group.in_(PUBLIC_SETTING_GROUPS))
        .order_by(models.Setting.key.asc())
    )
    return {s.key: s.value for s in safe_query.find_many(db, stmt)}


def dashboard(db: Session) -> Dict[str, Any]:
    revenue_stmt = select(func.coalesce(func.sum(models.Order.total_amount), 0)).where(
        models.Order.status != "cancelled"
    )
    revenue = db_helper.execute_with_retry(lambda: db.scalar(revenue_stmt), db)
    recent = safe_query.find_many(
        db,
        select(models.Order).order_by(models.Order.created_at.desc(), models.Order.id.desc()).limit(5),
    )
    return {
        "total_products": safe_query.count(db, models.Product),
        "total_customers": safe_query.count(db, models.Customer, models.Customer.role == "customer"),
        "total_orders": safe_query.count(db, models.Order),
        "total_revenue": Decimal(str(revenue or 0)),
        "recent_orders": recent,
    }


def sidebar_counts(db: Session) -> Dict[str, int]:
    return {
        "images": safe_query.count(db, models.Image),
        "categories": safe_query.count(db, models.Category),
    }
