from . import catalog, content, customers, home, orders
from .common import Page

__all__ = ["Page", "catalog", "content", "customers", "home", "orders"]
