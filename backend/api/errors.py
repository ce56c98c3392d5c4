"""Error taxonomy shared by all routes and the handlers that render it."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class Unauthorized(APIError):
    status_code = 401
    default_message = "Unauthorized"


class ValidationError(APIError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, issues: List[Dict[str, Any]] | str):
        if isinstance(issues, str):
            issues = [{"loc": [], "msg": issues, "type": "value_error"}]
        self.issues = issues
        super().__init__(issues[0].get("msg") if issues else None)

    def payload(self) -> Dict[str, Any]:
        return {"error": self.issues}


class NotFoundError(APIError):
    status_code = 404
    default_message = "Not found"


def parse_id(raw: Any, name: str = "id") -> int:
    """Parse a path or query identifier as an integer, raising ValidationError otherwise."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError([{"loc": [name], "msg": f"{name} is required", "type": "missing"}])
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError([{"loc": [name], "msg": f"Invalid {name}", "type": "int_parsing"}])


def _issues_from_validation(exc: RequestValidationError) -> List[Dict[str, Any]]:
    issues = []
    for err in exc.errors():
        issues.append({"loc": list(err.get("loc", [])), "msg": err.get("msg", ""), "type": err.get("type", "")})
    return issues


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def _api_error(request: Request, exc: APIError):
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.payload()))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=jsonable_encoder({"error": _issues_from_validation(exc)}))

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
