# app/core/exception_handlers.py
import logging

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import MarketServiceError

logger = logging.getLogger(__name__)


def error_body(error: str, message: str = None, **extra) -> dict:
    body = {"error": error}
    if message is not None:
        body["message"] = message
    body.update(extra)
    return body


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(MarketServiceError)
    async def market_error_handler(request: Request, exc: MarketServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.message, **exc.details),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("HTTP_ERROR", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content=error_body(
                "VALIDATION_ERROR", f"Invalid request: {', '.join(fields)}"
            ),
        )

    # Catch all unhandled exceptions; nothing internal leaks to the client
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content=error_body("INTERNAL_ERROR", "An unknown error occurred"),
        )
