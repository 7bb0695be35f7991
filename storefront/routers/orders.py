import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..errors import StorefrontError
from ..responses import error_body, ok, one, paged

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/orders", tags=["orders"])


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    status: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.OrderOut, crud.orders.list_orders(db, page, limit, search, status))


@router.post("/create", status_code=201)
def create_order(order: schemas.OrderCreate, db: Session = Depends(get_db)):
    try:
        new_order = crud.orders.create_order_with_outbox(db, order)
    except StorefrontError:
        raise
    except Exception as exc:
        logger.exception("Order creation failed")
        return JSONResponse(status_code=500, content=error_body("Failed to create order", exc))
    return one(schemas.OrderDetailOut, new_order, message="Order created successfully")


@router.get("/{order_id}")
def read_order(order_id: int, db: Session = Depends(get_db)):
    return one(schemas.OrderDetailOut, crud.orders.get_order(db, order_id))


@router.put("/{order_id}")
def update_order(order_id: int, changes: schemas.OrderUpdate, db: Session = Depends(get_db)):
    order = crud.orders.update_order(db, order_id, changes)
    return one(schemas.OrderDetailOut, order, message="Order updated")


@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)):
    crud.orders.delete_order(db, order_id)
    return ok(message="Order deleted")
