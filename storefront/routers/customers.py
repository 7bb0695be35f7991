from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..responses import ok, one, paged

router = APIRouter(prefix="/api/admin/customers", tags=["customers"])


@router.get("")
def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.CustomerOut, crud.customers.list_customers(db, page, limit, search))


@router.post("/create", status_code=201)
def create_customer(data: schemas.CustomerCreate, db: Session = Depends(get_db)):
    customer = crud.customers.create_customer(db, data)
    return one(schemas.CustomerOut, customer, message="Customer created")


@router.post("/bulk-delete")
def bulk_delete_customers(data: schemas.BulkDelete, db: Session = Depends(get_db)):
    deleted = crud.customers.bulk_delete_customers(db, data.customer_ids)
    return ok(message=f"Deleted {deleted} customers", deletedCount=deleted)


@router.get("/{customer_id}")
def read_customer(customer_id: int, db: Session = Depends(get_db)):
    return one(schemas.CustomerOut, crud.customers.get_customer(db, customer_id))


@router.put("/{customer_id}")
def update_customer(customer_id: int, data: schemas.CustomerUpdate, db: Session = Depends(get_db)):
    customer = crud.customers.update_customer(db, customer_id, data)
    return one(schemas.CustomerOut, customer, message="Customer updated")


@router.delete("/{customer_id}")
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    crud.customers.delete_customer(db, customer_id)
    return ok(message="Customer deleted")
