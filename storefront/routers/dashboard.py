from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..responses import ok
from ..schemas import dump_many

router = APIRouter(prefix="/api/admin", tags=["dashboard"])


@router.get("/dashboard")
def read_dashboard(db: Session = Depends(get_db)):
    stats = crud.home.dashboard(db)
    return ok({
        "totalProducts": stats["total_products"],
        "totalCustomers": stats["total_customers"],
        "totalOrders": stats["total_orders"],
        "totalRevenue": str(stats["total_revenue"]),
        "recentOrders": dump_many(schemas.OrderOut, stats["recent_orders"]),
    })


@router.get("/sidebar-counts")
def read_sidebar_counts(db: Session = Depends(get_db)):
    return ok(crud.home.sidebar_counts(db))
