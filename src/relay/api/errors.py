"""Exception handlers rendering every failure as ``{error, message, code}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay.errors import DeliveryError, RelayError

logger = structlog.get_logger(__name__)


def _body(error: str, message: str, code: str, **extra) -> dict:
    return {"error": error, "message": message, "code": code, **extra}


def register_exception_handlers(app: FastAPI, expose_details: bool) -> None:
    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        if isinstance(exc, DeliveryError) and exc.status_code >= 500:
            logger.error("Delivery failed", path=request.url.path, code=exc.code, reason=exc.reason)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            content = _body("Not Found", "The requested endpoint does not exist", "not_found")
        else:
            content = _body(str(exc.detail), str(exc.detail), f"http_{exc.status_code}")
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
        return JSONResponse(
            status_code=400,
            content=_body(
                "Validation Error",
                first.get("msg", "Invalid request body"),
                "validation_error",
                field=field,
            ),
        )

    @app.exception_handler(ValidationError)
    async def domain_validation_handler(request: Request, exc: ValidationError):
        messages = exc.messages if isinstance(exc.messages, dict) else {}
        field, errors = next(iter(messages.items()), (None, [str(exc)]))
        return JSONResponse(
            status_code=400,
            content=_body("Validation Error", "; ".join(str(e) for e in errors), "validation_error", field=field),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path, method=request.method)
        message = str(exc) if expose_details else "Something went wrong"
        return JSONResponse(status_code=500, content=_body("Internal Server Error", message, "internal_error"))
