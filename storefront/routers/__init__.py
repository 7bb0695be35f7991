from .catalog import categories_router, products_router, reviews_router
from .content import faqs_router, posts_router, settings_router, sliders_router
from .customers import router as customers_router
from .dashboard import router as dashboard_router
from .home import health_router
from .home import router as home_router
from .images import router as images_router
from .orders import router as orders_router

__all__ = [
    "categories_router",
    "customers_router",
    "dashboard_router",
    "faqs_router",
    "health_router",
    "home_router",
    "images_router",
    "orders_router",
    "posts_router",
    "products_router",
    "reviews_router",
    "settings_router",
    "sliders_router",
]
