"""Error taxonomy for write and read paths, and how each surfaces over HTTP."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class MatchdayError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(MatchdayError):
    """League, team or match does not exist, or a roster is empty."""

    status_code = 404


class ValidationError(MatchdayError):
    """Malformed input: negative scores, missing identifiers."""

    status_code = 400


class InvalidStateError(MatchdayError):
    """Operation does not fit the match's current status."""

    status_code = 409


class PersistenceConflictError(MatchdayError):
    """A concurrent writer got there first. Re-fetch and retry."""

    status_code = 409
    retryable = True


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(MatchdayError)
    async def matchday_error_handler(request: Request, exc: MatchdayError):
        content = {"detail": exc.message}
        if isinstance(exc, PersistenceConflictError):
            content["retryable"] = True
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        # Never leak engine specifics to API consumers
        logger.error(f"❌ Storage failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
