import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from src.draw.errors import DrawError, RETRYABLE
from src.webapp.schemas import ErrorEnvelope

logger = logging.getLogger("webapp.errors")


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(ErrorEnvelope(error=message).model_dump(), status_code=status_code, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Every failure leaves the API as {"success": false, "error": ...}."""

    @app.exception_handler(DrawError)
    async def draw_error_handler(request: Request, exc: DrawError):
        if exc.status_code >= 500:
            log = logger.warning if isinstance(exc, RETRYABLE) else logger.error
            log("Winner selection failed for giveaway %s: %s", exc.giveaway_id, exc.message)
        else:
            logger.info("Winner selection rejected for giveaway %s: %s", exc.giveaway_id, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error")
