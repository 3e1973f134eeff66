"""
Exception handlers mapping core errors onto HTTP responses.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.errors import (
    InvalidContent, InvalidSession, MatchmakingError, NotFound, RaceLost, StoreUnavailable,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidSession: status.HTTP_409_CONFLICT,
    RaceLost: status.HTTP_409_CONFLICT,
    InvalidContent: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_body(exc: MatchmakingError) -> dict:
    return {"error": {"code": exc.code, "message": exc.message}}


async def matchmaking_error_handler(request: Request, exc: MatchmakingError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
    return JSONResponse(status_code=status_code, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MatchmakingError, matchmaking_error_handler)
