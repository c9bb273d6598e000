"""
Error taxonomy and the JSON shapes they are rendered as.

  • request validation  → 400 {"errors": [{"msg", "param", "location"}, ...]}
  • ``BadRequest``      → 400 {"errors": [{"msg"}]} (``Conflict`` too)
  • ``Unauthorized``    → 401 {"msg"}
  • ``NotFound``        → 400 or 404 {"msg"} (status chosen by the route)
  • anything else       → 500 {"msg": "Server Error"}, details only in logs
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


class APIError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, msg: str, status_code: int | None = None) -> None:
        super().__init__(msg)
        self.msg = msg
        if status_code is not None:
            self.status_code = status_code

    def to_content(self) -> Dict[str, Any]:
        return {"msg": self.msg}


class Unauthorized(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(APIError):
    status_code = status.HTTP_400_BAD_REQUEST


class BadRequest(APIError):
    """Rendered in the same shape as validation errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def to_content(self) -> Dict[str, Any]:
        return {"errors": [{"msg": self.msg}]}


class Conflict(BadRequest):
    pass


def _validation_messages(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        # custom validators raise ValueError("Title is required"); keep the bare text
        original = (err.get("ctx") or {}).get("error")
        if isinstance(original, ValueError):
            msg = str(original)
        else:
            msg = str(err.get("msg", "Invalid value")).removeprefix(_VALUE_ERROR_PREFIX)
        errors.append({
            "msg": msg,
            "param": str(loc[-1]) if len(loc) > 1 else "",
            "location": str(loc[0]) if loc else "body",
        })
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error renderers to ``app``."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"errors": _validation_messages(exc)},
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"msg": "Server Error"},
        )
