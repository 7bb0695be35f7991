import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import database
from .config import settings
from .errors import StorefrontError
from .responses import error_body
from .routers import (
    categories_router,
    customers_router,
    dashboard_router,
    faqs_router,
    health_router,
    home_router,
    images_router,
    orders_router,
    posts_router,
    products_router,
    reviews_router,
    settings_router,
    sliders_router,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("storefront")

app = FastAPI(title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=settings.allowed_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    orders_router,
    customers_router,
    categories_router,
    products_router,
    reviews_router,
    faqs_router,
    sliders_router,
    posts_router,
    settings_router,
    images_router,
    dashboard_router,
    home_router,
    health_router,
):
    app.include_router(router)

if settings.storage_backend == "local":
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query"))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(_describe(error) for error in exc.errors()) or "Invalid request"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content=error_body(message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error", exc))


@app.on_event("startup")
def _on_startup() -> None:
    database.init_db()
    logger.info("Storefront API ready (storage=%s)", settings.storage_backend)
