import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..images import MAX_UPLOAD_BYTES, OUTPUT_TYPE, optimize_image, validate_upload
from ..responses import error_body, ok, one, paged
from ..slugs import seo_filename
from ..storage import StorageError, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/images", tags=["images"])


@router.get("")
def list_images(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: Session = Depends(get_db),
):
    return paged(schemas.ImageOut, crud.content.list_images(db, page, limit, search))


@router.post("/upload", status_code=201)
def upload_image(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    alt: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    # one byte past the limit is enough to reject an oversized file
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    validate_upload(file.content_type, len(data))
    optimized = optimize_image(data)

    original_name = file.filename or "image"
    filename = seo_filename(original_name, title)
    try:
        url = storage.upload(f"images/{filename}", optimized, OUTPUT_TYPE)
    except StorageError as exc:
        logger.error("Image upload failed: %s", exc)
        return JSONResponse(status_code=500, content=error_body("Upload failed", exc))

    image = crud.content.create_image(
        db,
        filename=filename,
        original_name=original_name,
        alt=alt or None,
        title=title or None,
        size=len(optimized),
        mime_type=OUTPUT_TYPE,
        url=url,
    )
    logger.info("Uploaded %s (%d -> %d bytes)", filename, len(data), len(optimized))
    return one(schemas.ImageOut, image, message="Image uploaded")


@router.get("/{image_id}")
def read_image(image_id: int, db: Session = Depends(get_db)):
    return one(schemas.ImageOut, crud.content.get_image(db, image_id))


@router.put("/{image_id}")
def update_image(image_id: int, data: schemas.ImageUpdate, db: Session = Depends(get_db)):
    return one(schemas.ImageOut, crud.content.update_image(db, image_id, data), message="Image updated")


@router.delete("/{image_id}")
def delete_image(image_id: int, db: Session = Depends(get_db), storage=Depends(get_storage)):
    image = crud.content.get_image(db, image_id)
    path = storage.path_from_url(image.url) or f"images/{image.filename}"
    try:
        storage.remove(path)
    except StorageError as exc:
        logger.error("Could not remove %s from storage: %s", path, exc)
    crud.content.delete_image(db, image)
    return ok(message="Image deleted")
