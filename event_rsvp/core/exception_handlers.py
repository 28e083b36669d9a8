from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from event_rsvp.services.errors import RSVPError


def _error_body(code: str, detail: str) -> dict:
    return {"success": False, "code": code, "detail": detail}


async def rsvp_error_handler(request: Request, exc: RSVPError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.debug(f"{request.method} {request.url.path} -> validation error: {errors}")
    code = "invalid_input"
    if any("capacity" in err.get("loc", ()) for err in errors):
        code = "invalid_capacity"
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in errors
    )
    return JSONResponse(status_code=422, content=_error_body(code, detail))


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_error", "Internal server error"),
    )


EXCEPTION_HANDLERS = {
    RSVPError: rsvp_error_handler,
    RequestValidationError: validation_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
