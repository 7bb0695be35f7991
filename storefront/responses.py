from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from .config import settings
from .crud import Page
from .schemas import dump, dump_many


def ok(data: Any = None, message: Optional[str] = None, **extra) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def one(schema: Type[BaseModel], obj: Any, message: Optional[str] = None) -> Dict[str, Any]:
    return ok(dump(schema, obj), message=message)


def paged(schema: Type[BaseModel], page: Page) -> Dict[str, Any]:
    return ok(dump_many(schema, page.items), pagination=page.meta())


def error_body(message: str, exc: Optional[BaseException] = None) -> Dict[str, Any]:
    """Error envelope. The exception text is attached only when explicitly enabled."""
    body: Dict[str, Any] = {"success": False, "error": message}
    if exc is not None and settings.expose_error_details:
        body["details"] = str(exc)
    return body
