"""HTTP mapping for storefront errors.

Protean's handlers cover ValidationError (400) and ObjectNotFoundError
(404); state conflicts answer 409 with their reason code and unexpected
failures 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.errors import ConflictError, InternalError

logger = structlog.get_logger(__name__)


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.to_dict()})


async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
    logger.error("Request failed", path=request.url.path, operation=exc.operation, error=str(exc.cause))
    return JSONResponse(status_code=500, content={"error": {"reason": "internal_error", "operation": exc.operation}})


def register_storefront_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(InternalError, internal_error_handler)
