import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from rentdesk.core.errors import InfrastructureError, RentDeskError, ValidationError
from rentdesk.schemas.common import ErrorResponse

log = logging.getLogger(__name__)

STORE_UNAVAILABLE_HINT = "The listing store is unavailable. Please try again later."


def _error_response(err: RentDeskError) -> JSONResponse:
    body = ErrorResponse(
        code=err.code,
        message=err.message,
        details=[{"field": f} for f in err.fields],
    )
    headers = {"WWW-Authenticate": "Bearer"} if err.status_code == 401 else None
    return JSONResponse(status_code=err.status_code, content=body.model_dump(), headers=headers)


async def _handle_domain_error(request: Request, exc: RentDeskError) -> JSONResponse:
    return _error_response(exc)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Wrong JSON types or an unparsable body: same 400 as a missing field.
    fields: list[str] = []
    for err in exc.errors():
        loc = [p for p in err.get("loc", ()) if isinstance(p, str) and p != "body"]
        if loc and loc[0] not in fields:
            fields.append(loc[0])
    return _error_response(ValidationError("Malformed request body", fields=fields))


async def _handle_store_failure(request: Request, exc: Exception) -> JSONResponse:
    # Log the real cause; the caller only gets a hint, never connection details.
    log.error("listing store failure on %s %s: %s", request.method, request.url.path, type(exc).__name__, exc_info=exc)
    return _error_response(InfrastructureError(STORE_UNAVAILABLE_HINT))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RentDeskError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(SQLAlchemyError, _handle_store_failure)
    app.add_exception_handler(ConnectionError, _handle_store_failure)
